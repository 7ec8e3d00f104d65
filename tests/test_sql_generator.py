# ============================================================================
# SQL GENERATOR TESTS
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Tests - Cluster DDL generation
# PURPOSE: Verify type mapping and the statement set, without a database
# CREATED: 15 OCT 2026
# ============================================================================
"""
PydanticToSQL Tests

Statements are inspected through their repr (psycopg Composed objects) so
no connection is needed.

Run with:
    pytest tests/test_sql_generator.py -v
"""

from datetime import datetime
from typing import Optional
from unittest.mock import MagicMock

from pydantic import BaseModel, Field

from core.contracts import ClusterStatus
from core.models import Cluster
from core.schema import PydanticToSQL


class _SampleModel(BaseModel):
    label: str = Field(..., max_length=12)
    note: Optional[str] = None
    count: int = 0
    ratio: float = 0.0
    flag: bool = False
    blob: Optional[bytes] = None
    when: datetime
    status: ClusterStatus = ClusterStatus.REQUESTED
    anything: dict = {}


def _sql_type(name):
    generator = PydanticToSQL()
    info = _SampleModel.model_fields[name]
    return generator.python_type_to_sql(info.annotation, info), generator


class TestTypeMapping:

    def test_scalar_types(self):
        assert _sql_type("label")[0] == "VARCHAR(12)"
        assert _sql_type("note")[0] == "VARCHAR"
        assert _sql_type("count")[0] == "INTEGER"
        assert _sql_type("ratio")[0] == "DOUBLE PRECISION"
        assert _sql_type("flag")[0] == "BOOLEAN"
        assert _sql_type("blob")[0] == "BYTEA"
        assert _sql_type("when")[0] == "TIMESTAMPTZ"

    def test_enum_registered(self):
        sql_type, generator = _sql_type("status")
        assert sql_type == "cluster_status"
        assert generator.enums == {"cluster_status": ClusterStatus}

    def test_dict_maps_to_jsonb(self):
        assert _sql_type("anything")[0] == "JSONB"


class TestClusterMetadata:

    def test_metadata(self):
        meta = PydanticToSQL.get_model_metadata(Cluster)
        assert meta["table"] == "clusters"
        assert meta["schema"] == "clusterapp"
        assert meta["primary_key"] == ["id"]
        assert [i[0] for i in meta["indexes"]] == [
            "idx_clusters_status",
            "idx_clusters_created",
            "idx_clusters_expiry",
        ]


class TestGenerateAll:

    def test_statement_set(self):
        statements = PydanticToSQL().generate_all()
        assert len(statements) == 9

        text = [repr(s) for s in statements]
        assert "CREATE SCHEMA IF NOT EXISTS" in text[0]
        assert "CREATE TYPE" in text[1] and "'provision_success'" in text[1]
        assert "CREATE TABLE IF NOT EXISTS" in text[2]
        assert all("CREATE INDEX IF NOT EXISTS" in t for t in text[3:6])
        assert "touch_updated_at" in text[6]
        assert "DROP TRIGGER IF EXISTS" in text[7]
        assert "CREATE TRIGGER" in text[8]

    def test_table_columns(self):
        generator = PydanticToSQL()
        generator.generate_enum(ClusterStatus)
        table = repr(generator.generate_table(Cluster))

        for column in ("id", "name", "status", "message", "terraform_config", "terraform_state", "outputs"):
            assert f"Identifier('{column}')" in table
        assert "BYTEA" in table
        assert "PRIMARY KEY" in table
        assert "is_terminal" not in table

    def test_expiry_index_is_partial(self):
        expiry = repr(PydanticToSQL().generate_indexes(Cluster)[2])
        assert "WHERE" in expiry
        assert "destroy_failed" in expiry

    def test_execute_runs_every_statement(self):
        conn = MagicMock()
        cursor = conn.cursor.return_value.__enter__.return_value

        count = PydanticToSQL().execute(conn)

        assert count == 9
        assert cursor.execute.call_count == 9
