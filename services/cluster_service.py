# ============================================================================
# CLUSTER SERVICE
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core - Cluster lifecycle management
# PURPOSE: Accept create/delete requests, persist, hand off to the worker
# CREATED: 10 OCT 2026
# ============================================================================
"""
Cluster Service

The synchronous face of the orchestrator:
- create_cluster: validate, persist REQUESTED, promote to PROVISIONING,
  submit a provisioning WorkItem
- delete_cluster: check the lease, move to DESTROYING, submit a
  destruction WorkItem
- get_cluster / get_clusters: plain store reads

No method here ever waits on an executor. Only validation and
persistence errors reach the caller; executor failures show up later as
*_failed statuses on the cluster itself.
"""

from typing import List

from core.contracts import ClusterStatus
from core.errors import (
    ClusterAlreadyDestroyedError,
    InvalidRequestError,
    WorkflowInProgressError,
)
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import Cluster, MessageUpdate, RequestContext, StatusUpdate
from repositories.cluster_store import ClusterStore
from worker.contracts import WorkflowOperation, WorkItem
from worker.scheduler import SchedulerStoppedError, WorkflowScheduler


class ClusterService:
    """Service for cluster lifecycle management."""

    def __init__(
        self,
        store: ClusterStore,
        scheduler: WorkflowScheduler,
        default_timeout: str = "1h",
        logger=None,
    ):
        """
        Initialize cluster service.

        Args:
            store: Cluster persistence
            scheduler: Where workflows are submitted
            default_timeout: Duration applied when a request carries none
            logger: Optional logger (defaults to a SERVICE component logger)
        """
        self.store = store
        self.scheduler = scheduler
        self.default_timeout = default_timeout
        self.logger = logger or get_logger(__name__, ComponentType.SERVICE)

    # =========================================================================
    # CREATE
    # =========================================================================

    async def create_cluster(self, ctx: RequestContext) -> Cluster:
        """
        Record a new cluster and schedule its provisioning.

        Args:
            ctx: Request context carrying config, timeout and placement

        Returns:
            The cluster in PROVISIONING status

        Raises:
            InvalidRequestError: Empty config or bad timeout
            PersistenceError: The store failed; nothing was scheduled
            SchedulerStoppedError: The worker refused the work item (the cluster
                is recorded as PROVISION_FAILED)
        """
        with log_context(request_id=ctx.request_id, operation="create"):
            if not ctx.terraform_config:
                raise InvalidRequestError("terraform_config is required", field="terraform_config")

            timeout = ctx.timeout or self.default_timeout
            try:
                ctx.timeout_seconds(self.default_timeout)
            except ValueError as e:
                raise InvalidRequestError(f"invalid timeout: {e}", field="timeout") from e

            cluster = await self.store.create_cluster(
                ctx.terraform_config,
                timeout,
                ctx.project,
                ctx.region,
                ctx.request_id,
                name=ctx.name,
            )

            with log_context(cluster_id=cluster.id):
                log_checkpoint("cluster_requested", {"name": cluster.name, "timeout": timeout}, self.logger)

                await self.store.update_cluster_field(
                    cluster.id, StatusUpdate(value=ClusterStatus.PROVISIONING), ctx.request_id
                )
                cluster = await self.store.get_cluster(cluster.id, ctx.request_id)

                await self._submit(cluster, WorkflowOperation.PROVISION, ctx.request_id)
                self.logger.info(f"Cluster {cluster.id} ({cluster.name}) scheduled for provisioning")
                return cluster

    # =========================================================================
    # READ
    # =========================================================================

    async def get_cluster(self, request_id: str, cluster_id: str) -> Cluster:
        """
        Raises:
            ClusterNotFoundError: If the id is unknown
        """
        with log_context(request_id=request_id, cluster_id=cluster_id):
            return await self.store.get_cluster(cluster_id, request_id)

    async def get_clusters(self, request_id: str) -> List[Cluster]:
        with log_context(request_id=request_id):
            return await self.store.get_clusters(request_id)

    # =========================================================================
    # DELETE
    # =========================================================================

    async def delete_cluster(self, request_id: str, cluster_id: str) -> Cluster:
        """
        Schedule destruction of a cluster.

        Returns:
            The cluster in DESTROYING status

        Raises:
            ClusterNotFoundError: Unknown id
            ClusterAlreadyDestroyedError: Already destroyed
            WorkflowInProgressError: Provisioning or destruction is running
            PersistenceError: The store failed
        """
        with log_context(request_id=request_id, cluster_id=cluster_id, operation="delete"):
            cluster = await self.store.get_cluster(cluster_id, request_id)

            if cluster.status == ClusterStatus.DESTROYED:
                raise ClusterAlreadyDestroyedError(cluster_id)
            if cluster.status.holds_lease():
                raise WorkflowInProgressError(cluster_id, cluster.status)

            prior = await self.store.delete_cluster(cluster_id, request_id)
            cluster = await self.store.get_cluster(cluster_id, request_id)
            log_checkpoint("destroy_requested", {"from_status": prior.status.value}, self.logger)

            await self._submit(cluster, WorkflowOperation.DESTROY, request_id)
            self.logger.info(f"Cluster {cluster_id} scheduled for destruction (was {prior.status.value})")
            return cluster

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _submit(self, cluster: Cluster, operation: WorkflowOperation, request_id: str) -> None:
        item = WorkItem(cluster_id=cluster.id, operation=operation, request_id=request_id)
        try:
            await self.scheduler.submit(item)
        except SchedulerStoppedError as e:
            failed = (
                ClusterStatus.PROVISION_FAILED
                if operation == WorkflowOperation.PROVISION
                else ClusterStatus.DESTROY_FAILED
            )
            self.logger.error(f"Could not schedule {operation.value}: {e}")
            await self.store.update_cluster_field(
                cluster.id, MessageUpdate(value=f"workflow not scheduled: {e}"), request_id
            )
            await self.store.update_cluster_field(cluster.id, StatusUpdate(value=failed), request_id)
            raise


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["ClusterService"]
