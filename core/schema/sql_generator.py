# ============================================================================
# PYDANTIC TO SQL GENERATOR
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core - DDL generation from Pydantic models
# PURPOSE: Generate the clusterapp schema from the Cluster model
# CREATED: 08 OCT 2026
# EXPORTS: PydanticToSQL
# DEPENDENCIES: pydantic, psycopg
# ============================================================================
"""
Pydantic to PostgreSQL Schema Generator.

The Cluster model is the single source of truth for the table layout.
Models declare SQL metadata via ClassVar attributes:
    - __sql_table__: Table name
    - __sql_schema__: Schema name
    - __sql_primary_key__: Primary key column(s)
    - __sql_indexes__: (name, columns) or (name, columns, partial_where)

Usage:
    generator = PydanticToSQL()
    for stmt in generator.generate_all():
        cursor.execute(stmt)

Every statement is idempotent (IF NOT EXISTS / DO block / DROP+CREATE
trigger), so deploying twice is harmless.
"""

import logging
import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Type, Union, get_args, get_origin

from annotated_types import MaxLen
from psycopg import sql
from pydantic import BaseModel
from pydantic.fields import FieldInfo

logger = logging.getLogger(__name__)


def _enum_type_name(enum_class: Type[Enum]) -> str:
    """ClusterStatus -> cluster_status"""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", enum_class.__name__).lower()


def _unwrap_optional(field_type: Any) -> tuple:
    """Return (inner_type, is_optional)."""
    if get_origin(field_type) is Union:
        args = [a for a in get_args(field_type) if a is not type(None)]
        if len(args) == 1:
            return args[0], True
    return field_type, False


class PydanticToSQL:
    """
    Convert Pydantic models to PostgreSQL DDL statements.

    Analyzes models with __sql_* metadata and generates the matching
    CREATE SCHEMA / TYPE / TABLE / INDEX / TRIGGER statements.
    """

    TYPE_MAP = {
        str: "VARCHAR",
        int: "INTEGER",
        float: "DOUBLE PRECISION",
        bool: "BOOLEAN",
        bytes: "BYTEA",
        datetime: "TIMESTAMPTZ",
        dict: "JSONB",
        list: "JSONB",
    }

    def __init__(self, schema_name: str = "clusterapp"):
        self.schema_name = schema_name
        self.enums: Dict[str, Type[Enum]] = {}

    # =========================================================================
    # METADATA EXTRACTION
    # =========================================================================

    @staticmethod
    def get_model_metadata(model: Type[BaseModel]) -> Dict[str, Any]:
        """
        Extract SQL DDL metadata from a Pydantic model.

        ClassVar names with a double underscore prefix are mangled by Python
        to _ClassName__sql_*, so both spellings are looked up.
        """
        def get_attr(name: str, default=None):
            mangled = f"_{model.__name__}__{name}"
            return getattr(model, mangled, getattr(model, f"__{name}", default))

        primary_key = get_attr("sql_primary_key__", [])
        if isinstance(primary_key, str):
            primary_key = [primary_key]

        return {
            "table": get_attr("sql_table__"),
            "schema": get_attr("sql_schema__", "clusterapp"),
            "primary_key": list(primary_key),
            "indexes": get_attr("sql_indexes__", []),
        }

    # =========================================================================
    # TYPE CONVERSION
    # =========================================================================

    def python_type_to_sql(self, field_type: Any, field_info: FieldInfo) -> str:
        """
        Convert a Python annotation to a PostgreSQL type name.

        Enums are registered in self.enums and returned by their type name;
        the caller schema-qualifies them.
        """
        actual_type, _ = _unwrap_optional(field_type)

        if actual_type is str:
            for constraint in field_info.metadata or []:
                if isinstance(constraint, MaxLen):
                    return f"VARCHAR({constraint.max_length})"
            return "VARCHAR"

        if isinstance(actual_type, type) and issubclass(actual_type, Enum):
            enum_name = _enum_type_name(actual_type)
            self.enums[enum_name] = actual_type
            return enum_name

        return self.TYPE_MAP.get(actual_type, "JSONB")

    # =========================================================================
    # ENUM GENERATION
    # =========================================================================

    def generate_enum(self, enum_class: Type[Enum]) -> sql.Composed:
        """
        Generate an idempotent CREATE TYPE ... AS ENUM.

        Wrapped in a DO block because PostgreSQL has no
        CREATE TYPE IF NOT EXISTS.
        """
        enum_name = _enum_type_name(enum_class)
        values_sql = sql.SQL(", ").join(sql.Literal(m.value) for m in enum_class)

        return sql.SQL(
            "DO $$ BEGIN "
            "IF NOT EXISTS (SELECT 1 FROM pg_type t JOIN pg_namespace n ON n.oid = t.typnamespace "
            "WHERE t.typname = {type_literal} AND n.nspname = {schema_literal}) THEN "
            "CREATE TYPE {schema}.{type} AS ENUM ({values}); "
            "END IF; END $$"
        ).format(
            type_literal=sql.Literal(enum_name),
            schema_literal=sql.Literal(self.schema_name),
            schema=sql.Identifier(self.schema_name),
            type=sql.Identifier(enum_name),
            values=values_sql,
        )

    # =========================================================================
    # TABLE GENERATION
    # =========================================================================

    def _column(self, name: str, field_info: FieldInfo, schema: str, primary_key: List[str]) -> sql.Composed:
        sql_type = self.python_type_to_sql(field_info.annotation, field_info)
        _, is_optional = _unwrap_optional(field_info.annotation)

        parts = [sql.Identifier(name), sql.SQL(" ")]
        is_enum = sql_type in self.enums
        if is_enum:
            parts.append(sql.SQL("{}.{}").format(sql.Identifier(schema), sql.Identifier(sql_type)))
        else:
            parts.append(sql.SQL(sql_type))

        if not is_optional and name not in primary_key:
            parts.append(sql.SQL(" NOT NULL"))

        default = field_info.default
        if is_enum and isinstance(default, Enum):
            parts.append(sql.SQL(" DEFAULT {}::{}.{}").format(
                sql.Literal(default.value),
                sql.Identifier(schema),
                sql.Identifier(sql_type),
            ))
        elif name in ("created_at", "updated_at"):
            parts.append(sql.SQL(" DEFAULT NOW()"))

        return sql.Composed(parts)

    def generate_table(self, model: Type[BaseModel]) -> sql.Composed:
        """Generate CREATE TABLE IF NOT EXISTS from a model's fields."""
        meta = self.get_model_metadata(model)
        table_name = meta["table"]
        schema_name = meta["schema"]
        primary_key = meta["primary_key"]

        if not table_name:
            raise ValueError(f"Model {model.__name__} missing __sql_table__ attribute")

        logger.debug(f"Generating table {schema_name}.{table_name} from {model.__name__}")

        parts = [
            self._column(name, info, schema_name, primary_key)
            for name, info in model.model_fields.items()
        ]
        if primary_key:
            parts.append(sql.SQL("PRIMARY KEY ({})").format(
                sql.SQL(", ").join(sql.Identifier(c) for c in primary_key)
            ))

        return sql.SQL("CREATE TABLE IF NOT EXISTS {}.{} ({})").format(
            sql.Identifier(schema_name),
            sql.Identifier(table_name),
            sql.SQL(", ").join(parts),
        )

    # =========================================================================
    # INDEX GENERATION
    # =========================================================================

    def generate_indexes(self, model: Type[BaseModel]) -> List[sql.Composed]:
        """Generate CREATE INDEX IF NOT EXISTS for each __sql_indexes__ entry."""
        meta = self.get_model_metadata(model)
        result = []

        for idx_def in meta["indexes"]:
            name, columns = idx_def[0], idx_def[1]
            partial_where = idx_def[2] if len(idx_def) > 2 else None
            if isinstance(columns, str):
                columns = [columns]

            stmt = sql.SQL("CREATE INDEX IF NOT EXISTS {name} ON {schema}.{table} ({columns})").format(
                name=sql.Identifier(name),
                schema=sql.Identifier(meta["schema"]),
                table=sql.Identifier(meta["table"]),
                columns=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            )
            if partial_where:
                stmt = sql.SQL("{} WHERE {}").format(stmt, sql.SQL(partial_where))
            result.append(stmt)

        return result

    # =========================================================================
    # TRIGGERS
    # =========================================================================

    def generate_updated_at_trigger(self, table: str) -> List[sql.Composed]:
        """Function plus DROP/CREATE trigger keeping updated_at current."""
        schema = sql.Identifier(self.schema_name)
        trigger = sql.Identifier(f"trg_{table}_updated_at")

        return [
            sql.SQL(
                "CREATE OR REPLACE FUNCTION {schema}.touch_updated_at() "
                "RETURNS TRIGGER LANGUAGE plpgsql AS $$ "
                "BEGIN NEW.updated_at = NOW(); RETURN NEW; END; $$"
            ).format(schema=schema),
            sql.SQL("DROP TRIGGER IF EXISTS {trigger} ON {schema}.{table}").format(
                trigger=trigger, schema=schema, table=sql.Identifier(table),
            ),
            sql.SQL(
                "CREATE TRIGGER {trigger} BEFORE UPDATE ON {schema}.{table} "
                "FOR EACH ROW EXECUTE FUNCTION {schema}.touch_updated_at()"
            ).format(trigger=trigger, schema=schema, table=sql.Identifier(table)),
        ]

    # =========================================================================
    # COMPLETE SCHEMA GENERATION
    # =========================================================================

    def generate_all(self) -> List[sql.Composed]:
        """
        Generate complete DDL for the cluster store.

        Returns:
            List of sql.Composed statements ready for execution
        """
        from core.contracts import ClusterStatus
        from core.models import Cluster

        statements = [
            sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(self.schema_name)),
            self.generate_enum(ClusterStatus),
            self.generate_table(Cluster),
        ]
        statements.extend(self.generate_indexes(Cluster))
        statements.extend(self.generate_updated_at_trigger(Cluster.__sql_table__))

        logger.info(f"Generated {len(statements)} DDL statements for schema {self.schema_name}")
        return statements

    def execute(self, conn, dry_run: bool = False) -> int:
        """
        Execute all DDL statements on a psycopg connection.

        Args:
            conn: psycopg connection
            dry_run: If True, log statements but don't execute

        Returns:
            Number of statements generated (and executed unless dry_run)
        """
        statements = self.generate_all()

        if dry_run:
            for stmt in statements:
                logger.info(f"[DRY RUN] {stmt.as_string(conn)}")
            return len(statements)

        with conn.cursor() as cur:
            for stmt in statements:
                cur.execute(stmt)

        logger.info(f"Executed {len(statements)} DDL statements")
        return len(statements)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["PydanticToSQL"]
