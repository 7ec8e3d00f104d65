# ============================================================================
# CLUSTER STORE PORT
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Repository - Persistence port
# PURPOSE: The store contract shared by the PostgreSQL and in-memory variants
# CREATED: 08 OCT 2026
# ============================================================================
"""
Cluster Store Port

Every store call carries the caller's request_id for log correlation.
Non-domain failures surface as PersistenceError; domain failures use the
dedicated exceptions from core.errors.
"""

import uuid
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from core.contracts import ClusterStatus
from core.errors import InvalidRequestError
from core.models import Cluster, ClusterFieldUpdate, parse_duration
from infrastructure.base_repository import BaseRepository


class ClusterStore(BaseRepository, ABC):
    """Abstract persistence for Cluster records."""

    @abstractmethod
    async def create_cluster(
        self,
        config: bytes,
        timeout: str,
        project: str,
        region: str,
        request_id: str,
        name: Optional[str] = None,
    ) -> Cluster:
        """Persist a new cluster with status REQUESTED and a fresh id."""

    @abstractmethod
    async def get_cluster(self, cluster_id: str, request_id: str) -> Cluster:
        """
        Raises:
            ClusterNotFoundError: If the id is unknown
        """

    @abstractmethod
    async def get_clusters(self, request_id: str) -> List[Cluster]:
        """All clusters, oldest first."""

    @abstractmethod
    async def get_expired_clusters(self, request_id: str) -> List[Cluster]:
        """Clusters in a stable status whose time budget has run out."""

    @abstractmethod
    async def reclaim_orphaned_clusters(self, request_id: str) -> List[Cluster]:
        """
        Settle transient clusters whose workflow is gone.

        Every REQUESTED/PROVISIONING/DESTROYING cluster that has gone
        timeout_seconds without a write moves atomically to its failure
        status (see INTERRUPTED_OUTCOMES) with a timeout message.

        Returns:
            The reclaimed clusters as stored afterwards
        """

    @abstractmethod
    async def update_cluster_field(
        self,
        cluster_id: str,
        update: ClusterFieldUpdate,
        request_id: str,
    ) -> None:
        """
        Apply a single-field update atomically.

        Raises:
            ClusterNotFoundError: If the id is unknown
            InvalidTransitionError: If a status update breaks the lifecycle
        """

    @abstractmethod
    async def delete_cluster(self, cluster_id: str, request_id: str) -> Cluster:
        """
        Atomically move a cluster to DESTROYING.

        Returns:
            The record as it was before the transition

        Raises:
            ClusterNotFoundError, ClusterAlreadyDestroyedError,
            WorkflowInProgressError
        """

    # =========================================================================
    # SHARED HELPERS
    # =========================================================================

    def _new_cluster(
        self,
        config: bytes,
        timeout: str,
        project: str,
        region: str,
        name: Optional[str],
    ) -> Cluster:
        """Build the initial record for create_cluster."""
        try:
            timeout_seconds = parse_duration(timeout)
        except ValueError as e:
            raise InvalidRequestError(str(e), field="timeout") from e
        if timeout_seconds <= 0:
            raise InvalidRequestError(f"timeout must be positive: {timeout!r}", field="timeout")

        cluster_id = str(uuid.uuid4())
        return Cluster(
            id=cluster_id,
            name=name or f"cluster-{cluster_id[:8]}",
            project=project,
            region=region,
            timeout=timeout,
            timeout_seconds=timeout_seconds,
            terraform_config=config,
        )

    @staticmethod
    def _orphan_message_parts(failed_status: ClusterStatus) -> Tuple[str, str]:
        """Text around the cluster's timeout string in a reclaim message."""
        subject = "destruction" if failed_status == ClusterStatus.DESTROY_FAILED else "provisioning"
        return f"{subject} timed out after ", "; the workflow never reported an outcome"


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["ClusterStore"]
