# ============================================================================
# IN-MEMORY CLUSTER REPOSITORY
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Repository - Process-local ClusterStore
# PURPOSE: Store for tests and STORE_BACKEND=memory local runs
# CREATED: 08 OCT 2026
# ============================================================================
"""
In-Memory Cluster Repository

Same contract as ClusterRepository, backed by a dict guarded by an
asyncio.Lock. Records handed out are deep copies, so callers can never
mutate stored state behind the store's back.

The clock is injectable so expiry can be tested without sleeping:

    now = [utcnow()]
    store = InMemoryClusterRepository(clock=lambda: now[0])
    now[0] += timedelta(hours=2)
"""

import asyncio
from typing import Callable, Dict, Iterable, List, Optional

from core.contracts import INTERRUPTED_OUTCOMES, ClusterStatus
from core.errors import (
    ClusterAlreadyDestroyedError,
    ClusterNotFoundError,
    WorkflowInProgressError,
)
from core.models import Cluster, ClusterFieldUpdate, StatusUpdate, utcnow
from .cluster_store import ClusterStore


class InMemoryClusterRepository(ClusterStore):
    """Dict-backed ClusterStore."""

    def __init__(
        self,
        clusters: Iterable[Cluster] = (),
        clock: Callable = utcnow,
    ):
        super().__init__()
        self._clock = clock
        self._lock = asyncio.Lock()
        self._clusters: Dict[str, Cluster] = {c.id: c.model_copy(deep=True) for c in clusters}

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
        now = self._clock()
        cluster.created_at = now
        cluster.updated_at = now

        async with self._lock:
            self._clusters[cluster.id] = cluster
            self._log_operation(True, "Created cluster", cluster.id, {"request_id": request_id})
            return cluster.model_copy(deep=True)

    async def get_cluster(self, cluster_id: str, request_id: str) -> Cluster:
        async with self._lock:
            return self._get(cluster_id).model_copy(deep=True)

    async def get_clusters(self, request_id: str) -> List[Cluster]:
        async with self._lock:
            ordered = sorted(self._clusters.values(), key=lambda c: (c.created_at, c.id))
            return [c.model_copy(deep=True) for c in ordered]

    async def get_expired_clusters(self, request_id: str) -> List[Cluster]:
        now = self._clock()
        async with self._lock:
            expired = [c for c in self._clusters.values() if c.is_expired(now)]
            expired.sort(key=lambda c: (c.created_at, c.id))
            return [c.model_copy(deep=True) for c in expired]

    async def reclaim_orphaned_clusters(self, request_id: str) -> List[Cluster]:
        now = self._clock()
        async with self._lock:
            orphans = [c for c in self._clusters.values() if c.is_orphaned(now)]
            orphans.sort(key=lambda c: (c.updated_at, c.id))

            for cluster in orphans:
                failed = INTERRUPTED_OUTCOMES[cluster.status]
                self._validate_status_transition(cluster.id, cluster.status, failed)
                prefix, suffix = self._orphan_message_parts(failed)
                cluster.status = failed
                cluster.message = f"{prefix}{cluster.timeout}{suffix}"
                cluster.updated_at = now

            if orphans:
                self.logger.info(f"Reclaimed {len(orphans)} orphaned clusters: {[c.id for c in orphans]}")
            return [c.model_copy(deep=True) for c in orphans]

    async def update_cluster_field(
        self,
        cluster_id: str,
        update: ClusterFieldUpdate,
        request_id: str,
    ) -> None:
        async with self._lock:
            cluster = self._get(cluster_id)
            if isinstance(update, StatusUpdate):
                self._validate_status_transition(cluster_id, cluster.status, update.value)

            setattr(cluster, update.field, update.value)
            cluster.updated_at = self._clock()
            self.logger.debug(f"Updated {update.field} for cluster {cluster_id}")

    async def delete_cluster(self, cluster_id: str, request_id: str) -> Cluster:
        async with self._lock:
            cluster = self._get(cluster_id)
            if cluster.status == ClusterStatus.DESTROYED:
                raise ClusterAlreadyDestroyedError(cluster_id)
            if cluster.status.holds_lease():
                raise WorkflowInProgressError(cluster_id, cluster.status)

            prior = cluster.model_copy(deep=True)
            self._validate_status_transition(cluster_id, cluster.status, ClusterStatus.DESTROYING)
            cluster.status = ClusterStatus.DESTROYING
            cluster.updated_at = self._clock()

            self._log_operation(True, "Cluster marked destroying", cluster_id)
            return prior

    def _get(self, cluster_id: str) -> Cluster:
        cluster = self._clusters.get(cluster_id)
        if cluster is None:
            raise ClusterNotFoundError(cluster_id)
        return cluster


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["InMemoryClusterRepository"]
