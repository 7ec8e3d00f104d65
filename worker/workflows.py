# ============================================================================
# CLUSTER WORKFLOWS
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Worker - Provisioning and destruction workflows
# PURPOSE: Drive an executor and reconcile its outcome into the store
# CREATED: 09 OCT 2026
# ============================================================================
"""
Cluster Workflows

Provisioning:   init -> plan -> apply -> (outputs)
Destruction:    init -> destroy

Each workflow:
- gets a fresh executor from the factory and closes it at the end
- shares one deadline (the cluster's timeout_seconds from workflow start)
  across all executor calls
- writes its outcome one field at a time; on success the status is the
  last write, so a reader that sees provision_success also sees the state
- absorbs every executor failure into *_failed plus a non-empty message

Persistence failures are not absorbed. They propagate to run(), which logs
them with a stack trace; the cluster stays in its transient status until
the reaper reclaims it (ClusterStore.reclaim_orphaned_clusters).

A cancelled workflow (scheduler shutdown) records *_failed with an
"interrupted" message before the cancellation propagates.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from core.contracts import INTERRUPTED_OUTCOMES, ClusterStatus
from core.errors import ClusterNotFoundError, ExecutorError, PersistenceError
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import (
    Cluster,
    MessageUpdate,
    OutputsUpdate,
    StatusUpdate,
    TerraformStateUpdate,
)
from infrastructure.executor import InfrastructureExecutor
from repositories.cluster_store import ClusterStore
from worker.contracts import WorkflowOperation, WorkItem

MAX_MESSAGE_LENGTH = 2000

ExecutorFactory = Callable[[], InfrastructureExecutor]


def _format_seconds(seconds: float) -> str:
    if float(seconds).is_integer():
        return f"{int(seconds)}s"
    return f"{seconds:g}s"


def _describe(error: BaseException) -> str:
    """Message text for an unexpected executor exception."""
    text = str(error)
    return f"{type(error).__name__}: {text}" if text else type(error).__name__


def _truncate(message: str) -> str:
    return message[:MAX_MESSAGE_LENGTH]


class ClusterWorkflowRunner:
    """Runs WorkItems against a store with executors from a factory."""

    def __init__(self, store: ClusterStore, executor_factory: ExecutorFactory, logger=None):
        self.store = store
        self.executor_factory = executor_factory
        self.logger = logger or get_logger(__name__, ComponentType.WORKER)

    # =========================================================================
    # ENTRY POINT
    # =========================================================================

    async def run(self, item: WorkItem) -> Optional[Cluster]:
        """
        Execute one work item. Used as the scheduler handler.

        Returns:
            The reconciled cluster, or None when the item was skipped
        """
        with log_context(
            cluster_id=item.cluster_id,
            request_id=item.request_id,
            operation=item.operation.value,
        ):
            try:
                cluster = await self.store.get_cluster(item.cluster_id, item.request_id)
            except ClusterNotFoundError:
                self.logger.warning(f"Cluster {item.cluster_id} vanished before {item.operation.value}")
                return None

            expected = (
                ClusterStatus.PROVISIONING
                if item.operation == WorkflowOperation.PROVISION
                else ClusterStatus.DESTROYING
            )
            if cluster.status != expected:
                self.logger.warning(
                    f"Skipping {item.operation.value}: cluster is {cluster.status.value}, "
                    f"expected {expected.value}"
                )
                return None

            executor = self.executor_factory()
            try:
                if item.operation == WorkflowOperation.PROVISION:
                    return await self.provision(executor, cluster, cluster.terraform_config, item.request_id)
                return await self.destroy(executor, cluster, item.request_id)
            except PersistenceError as e:
                self.logger.exception(f"Persistence failure during {item.operation.value}: {e}")
                return None
            except asyncio.CancelledError:
                await self._record_interruption(item, expected)
                raise
            finally:
                try:
                    await executor.close()
                except Exception as e:
                    self.logger.warning(f"Executor cleanup failed: {e}")

    # =========================================================================
    # PROVISIONING
    # =========================================================================

    async def provision(
        self,
        executor: InfrastructureExecutor,
        cluster: Cluster,
        config: bytes,
        request_id: str,
    ) -> Cluster:
        """
        init -> plan -> apply, then extract outputs.

        Returns:
            The cluster as stored after reconciliation
        """
        deadline = self._deadline(cluster)
        executor.set_project(cluster.project)
        executor.set_region(cluster.region)
        executor.set_config(config)

        log_checkpoint("provision_started", {"name": cluster.name}, self.logger)

        try:
            await self._invoke(executor.initialize, "init", deadline, cluster.timeout_seconds)
            summary = await self._invoke(
                lambda: executor.plan(destroy=False), "plan", deadline, cluster.timeout_seconds
            )
            self.logger.info(f"Plan: {summary}")
            state, message = await self._invoke(executor.apply, "apply", deadline, cluster.timeout_seconds)
        except ExecutorError as e:
            await self._record_failure(cluster.id, ClusterStatus.PROVISION_FAILED, str(e), request_id)
            log_checkpoint("provision_failed", {"error": str(e)}, self.logger)
            return await self.store.get_cluster(cluster.id, request_id)

        await self.store.update_cluster_field(cluster.id, TerraformStateUpdate(value=state), request_id)
        if message:
            await self.store.update_cluster_field(cluster.id, MessageUpdate(value=_truncate(message)), request_id)
        await self.store.update_cluster_field(
            cluster.id, StatusUpdate(value=ClusterStatus.PROVISION_SUCCESS), request_id
        )
        log_checkpoint("provision_succeeded", None, self.logger)

        try:
            outputs = await self._invoke(executor.outputs, "output", deadline, cluster.timeout_seconds)
            await self.store.update_cluster_field(cluster.id, OutputsUpdate(value=outputs), request_id)
        except ExecutorError as e:
            self.logger.warning(f"Output extraction failed: {e}")
            current = await self.store.get_cluster(cluster.id, request_id)
            if not current.message:
                await self.store.update_cluster_field(
                    cluster.id, MessageUpdate(value=_truncate(str(e))), request_id
                )

        return await self.store.get_cluster(cluster.id, request_id)

    # =========================================================================
    # DESTRUCTION
    # =========================================================================

    async def destroy(
        self,
        executor: InfrastructureExecutor,
        cluster: Cluster,
        request_id: str,
    ) -> Cluster:
        """
        init -> destroy using the stored configuration and state.

        Returns:
            The cluster as stored after reconciliation
        """
        deadline = self._deadline(cluster)
        executor.set_project(cluster.project)
        executor.set_region(cluster.region)
        executor.set_config(cluster.terraform_config)
        executor.set_state(cluster.terraform_state or b"")

        log_checkpoint("destroy_started", {"name": cluster.name}, self.logger)

        try:
            await self._invoke(executor.initialize, "init", deadline, cluster.timeout_seconds)
            _, message = await self._invoke(executor.destroy, "destroy", deadline, cluster.timeout_seconds)
        except ExecutorError as e:
            await self._record_failure(cluster.id, ClusterStatus.DESTROY_FAILED, str(e), request_id)
            log_checkpoint("destroy_failed", {"error": str(e)}, self.logger)
            return await self.store.get_cluster(cluster.id, request_id)

        await self.store.update_cluster_field(
            cluster.id, MessageUpdate(value=_truncate(message or "Destroy complete")), request_id
        )
        await self.store.update_cluster_field(cluster.id, StatusUpdate(value=ClusterStatus.DESTROYED), request_id)
        log_checkpoint("destroy_succeeded", None, self.logger)

        return await self.store.get_cluster(cluster.id, request_id)

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _deadline(cluster: Cluster) -> float:
        return asyncio.get_running_loop().time() + cluster.timeout_seconds

    async def _invoke(
        self,
        call: Callable[[], Awaitable[Any]],
        operation: str,
        deadline: float,
        budget: float,
    ) -> Any:
        """
        Run one executor call under the remaining workflow budget.

        Raises:
            ExecutorError for every failure, including timeouts
        """
        timeout_message = f"terraform {operation} timed out after {_format_seconds(budget)}"
        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            raise ExecutorError(timeout_message, operation=operation)

        try:
            return await asyncio.wait_for(call(), timeout=remaining)
        except asyncio.TimeoutError as e:
            raise ExecutorError(timeout_message, operation=operation) from e
        except ExecutorError:
            raise
        except Exception as e:
            raise ExecutorError(_truncate(_describe(e)), operation=operation) from e

    async def _record_failure(
        self,
        cluster_id: str,
        status: ClusterStatus,
        message: str,
        request_id: str,
    ) -> None:
        message = _truncate(message) or status.value.replace("_", " ")
        self.logger.warning(f"{status.value}: {message}")
        await self.store.update_cluster_field(cluster_id, MessageUpdate(value=message), request_id)
        await self.store.update_cluster_field(cluster_id, StatusUpdate(value=status), request_id)

    async def _record_interruption(self, item: WorkItem, leased: ClusterStatus) -> None:
        """Settle a cancelled workflow's cluster unless it already has an outcome."""
        failed = INTERRUPTED_OUTCOMES[leased]
        try:
            current = await self.store.get_cluster(item.cluster_id, item.request_id)
            if current.status != leased:
                return
            await self._record_failure(
                item.cluster_id,
                failed,
                f"{item.operation.value} workflow interrupted before completion",
                item.request_id,
            )
        except Exception as e:
            # The reaper reclaims the cluster once its time budget runs out
            self.logger.error(f"Could not record interrupted {item.operation.value}: {e}")


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["ClusterWorkflowRunner", "ExecutorFactory", "MAX_MESSAGE_LENGTH"]
