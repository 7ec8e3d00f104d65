# ============================================================================
# CLUSTER REPOSITORY
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core - Cluster persistence on PostgreSQL
# PURPOSE: Database access for clusterapp.clusters
# CREATED: 08 OCT 2026
# ============================================================================
"""
Cluster Repository

PostgreSQL implementation of ClusterStore.

Status writes are conditional: the UPDATE only matches rows whose current
status may legally move to the new one, so two writers racing on the same
cluster cannot both win. When nothing matches, a follow-up read decides
between "not found" and "invalid transition".
"""

from typing import Any, Dict, List, Optional

from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.contracts import (
    INTERRUPTED_OUTCOMES,
    STABLE_STATUSES,
    ClusterStatus,
    allowed_sources,
)
from core.errors import (
    ClusterAlreadyDestroyedError,
    ClusterNotFoundError,
    InvalidTransitionError,
    WorkflowInProgressError,
)
from core.logging import log_context
from core.models import Cluster, ClusterFieldUpdate, StatusUpdate
from .cluster_store import ClusterStore
from .database import TABLE_CLUSTERS

_COLUMNS = (
    "id", "name", "status", "message", "project", "region", "timeout",
    "timeout_seconds", "terraform_config", "terraform_state", "outputs",
    "created_at", "updated_at",
)


class ClusterRepository(ClusterStore):
    """Repository for Cluster entities."""

    def __init__(self, pool: AsyncConnectionPool):
        super().__init__()
        self.pool = pool

    async def create_cluster(
        self,
        config: bytes,
        timeout: str,
        project: str,
        region: str,
        request_id: str,
        name: Optional[str] = None,
    ) -> Cluster:
        cluster = self._new_cluster(config, timeout, project, region, name)

        with log_context(cluster_id=cluster.id, request_id=request_id), \
                self._error_context("cluster creation", cluster.id):
            async with self.pool.connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(
                        sql.SQL("INSERT INTO {table} ({columns}) VALUES ({values}) RETURNING *").format(
                            table=TABLE_CLUSTERS,
                            columns=sql.SQL(", ").join(map(sql.Identifier, _COLUMNS)),
                            values=sql.SQL(", ").join(map(sql.Placeholder, _COLUMNS)),
                        ),
                        self._cluster_to_params(cluster),
                    )
                    row = await cur.fetchone()

            self._log_operation(True, "Created cluster", cluster.id, {"name": cluster.name})
            return self._row_to_cluster(row)

    async def get_cluster(self, cluster_id: str, request_id: str) -> Cluster:
        with log_context(cluster_id=cluster_id, request_id=request_id), \
                self._error_context("cluster lookup", cluster_id):
            async with self.pool.connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(
                        sql.SQL("SELECT * FROM {} WHERE id = %s").format(TABLE_CLUSTERS),
                        (cluster_id,),
                    )
                    row = await cur.fetchone()

            if row is None:
                raise ClusterNotFoundError(cluster_id)
            return self._row_to_cluster(row)

    async def get_clusters(self, request_id: str) -> List[Cluster]:
        with log_context(request_id=request_id), self._error_context("cluster listing"):
            async with self.pool.connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(
                        sql.SQL("SELECT * FROM {} ORDER BY created_at, id").format(TABLE_CLUSTERS)
                    )
                    rows = await cur.fetchall()

            return [self._row_to_cluster(row) for row in rows]

    async def get_expired_clusters(self, request_id: str) -> List[Cluster]:
        stable = [s.value for s in STABLE_STATUSES]

        with log_context(request_id=request_id), self._error_context("expired cluster scan"):
            async with self.pool.connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(
                        sql.SQL("""
                        SELECT * FROM {}
                        WHERE status::text = ANY(%s)
                          AND created_at + make_interval(secs => timeout_seconds) < NOW()
                        ORDER BY created_at, id
                        """).format(TABLE_CLUSTERS),
                        (stable,),
                    )
                    rows = await cur.fetchall()

            return [self._row_to_cluster(row) for row in rows]

    async def reclaim_orphaned_clusters(self, request_id: str) -> List[Cluster]:
        targets: Dict[ClusterStatus, List[str]] = {}
        for source, failed in INTERRUPTED_OUTCOMES.items():
            targets.setdefault(failed, []).append(source.value)

        reclaimed: List[Cluster] = []
        with log_context(request_id=request_id), self._error_context("orphan reclaim"):
            async with self.pool.connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    for failed, sources in targets.items():
                        prefix, suffix = self._orphan_message_parts(failed)
                        # SKIP LOCKED leaves rows a concurrent writer holds for the next scan
                        await cur.execute(
                            sql.SQL("""
                            WITH orphans AS (
                                SELECT id FROM {table}
                                WHERE status::text = ANY(%s)
                                  AND updated_at + make_interval(secs => timeout_seconds) < NOW()
                                FOR UPDATE SKIP LOCKED
                            )
                            UPDATE {table} AS c
                            SET status = %s, message = %s || c.timeout || %s
                            FROM orphans
                            WHERE c.id = orphans.id
                            RETURNING c.*
                            """).format(table=TABLE_CLUSTERS),
                            (sources, failed.value, prefix, suffix),
                        )
                        reclaimed.extend(self._row_to_cluster(row) for row in await cur.fetchall())

            if reclaimed:
                self.logger.info(
                    f"Reclaimed {len(reclaimed)} orphaned clusters: {[c.id for c in reclaimed]}"
                )
            return reclaimed

    async def update_cluster_field(
        self,
        cluster_id: str,
        update: ClusterFieldUpdate,
        request_id: str,
    ) -> None:
        operation = f"{update.field} update"

        with log_context(cluster_id=cluster_id, request_id=request_id), \
                self._error_context(operation, cluster_id):
            async with self.pool.connection() as conn:
                if isinstance(update, StatusUpdate):
                    sources = [s.value for s in allowed_sources(update.value)]
                    result = await conn.execute(
                        sql.SQL("""
                        UPDATE {} SET status = %s
                        WHERE id = %s AND status::text = ANY(%s)
                        """).format(TABLE_CLUSTERS),
                        (update.value.value, cluster_id, sources),
                    )
                else:
                    result = await conn.execute(
                        sql.SQL("UPDATE {} SET {} = %s WHERE id = %s").format(
                            TABLE_CLUSTERS, sql.Identifier(update.field)
                        ),
                        (update.value, cluster_id),
                    )

                if result.rowcount == 0:
                    current = await self._current_status(conn, cluster_id)
                    if current is None or not isinstance(update, StatusUpdate):
                        raise ClusterNotFoundError(cluster_id)
                    self._validate_status_transition(cluster_id, current, update.value)
                    # Status moved between UPDATE and re-read
                    raise InvalidTransitionError(
                        f"Concurrent status change for {cluster_id}",
                        entity_id=cluster_id,
                        value=f"{current.value} -> {update.value.value}",
                    )

            self.logger.debug(f"Updated {update.field} for cluster {cluster_id}")

    async def delete_cluster(self, cluster_id: str, request_id: str) -> Cluster:
        sources = [
            s.value for s in allowed_sources(ClusterStatus.DESTROYING)
            if s != ClusterStatus.DESTROYING
        ]

        with log_context(cluster_id=cluster_id, request_id=request_id), \
                self._error_context("cluster deletion", cluster_id):
            async with self.pool.connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(
                        sql.SQL("""
                        WITH prior AS (
                            SELECT * FROM {table} WHERE id = %s FOR UPDATE
                        )
                        UPDATE {table} AS c SET status = %s
                        FROM prior
                        WHERE c.id = prior.id AND prior.status::text = ANY(%s)
                        RETURNING prior.*
                        """).format(table=TABLE_CLUSTERS),
                        (cluster_id, ClusterStatus.DESTROYING.value, sources),
                    )
                    row = await cur.fetchone()

                if row is None:
                    current = await self._current_status(conn, cluster_id)
                    if current is None:
                        raise ClusterNotFoundError(cluster_id)
                    if current == ClusterStatus.DESTROYED:
                        raise ClusterAlreadyDestroyedError(cluster_id)
                    raise WorkflowInProgressError(cluster_id, current)

            self._log_operation(True, "Cluster marked destroying", cluster_id)
            return self._row_to_cluster(row)

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _current_status(self, conn, cluster_id: str) -> Optional[ClusterStatus]:
        result = await conn.execute(
            sql.SQL("SELECT status FROM {} WHERE id = %s").format(TABLE_CLUSTERS),
            (cluster_id,),
        )
        row = await result.fetchone()
        if row is None:
            return None
        return ClusterStatus(row[0])

    @staticmethod
    def _cluster_to_params(cluster: Cluster) -> Dict[str, Any]:
        params = {column: getattr(cluster, column) for column in _COLUMNS}
        params["status"] = cluster.status.value
        return params

    @staticmethod
    def _row_to_cluster(row: Dict[str, Any]) -> Cluster:
        """Convert database row to Cluster model."""
        data = {column: row[column] for column in _COLUMNS}
        for column in ("terraform_config", "terraform_state", "outputs"):
            if isinstance(data[column], memoryview):
                data[column] = data[column].tobytes()
        return Cluster(**data)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["ClusterRepository"]
