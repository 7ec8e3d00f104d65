# ============================================================================
# WORKFLOW SCHEDULER
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Worker - Background execution of cluster workflows
# PURPOSE: Run WorkItems off the request path with bounded concurrency
# CREATED: 09 OCT 2026
# ============================================================================
"""
Workflow Scheduler

QueueScheduler (production):
    An asyncio.Queue drained by `max_concurrent` worker tasks. stop() stops
    accepting work, lets in-flight and queued items drain for
    `shutdown_grace_sec`, then cancels whatever is left. A cancelled
    workflow kills its terraform process on the way out.

ManualScheduler (tests):
    Items wait until the test awaits run_pending(), which makes the
    synchronous half of every ClusterService call observable on its own.

Handler exceptions are logged with stack traces and never stop a worker.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from core.logging import ComponentType, get_logger
from worker.contracts import WorkItem

WorkHandler = Callable[[WorkItem], Awaitable[Any]]


class SchedulerStoppedError(RuntimeError):
    """Raised when work is submitted to a scheduler that is not running."""


class WorkflowScheduler(ABC):
    """Accepts WorkItems for background execution."""

    @abstractmethod
    async def submit(self, item: WorkItem) -> None:
        """
        Enqueue a work item. Returns without waiting for it to run.

        Raises:
            SchedulerStoppedError: If the scheduler is not accepting work
        """

    @property
    def stats(self) -> Dict[str, Any]:
        return {}


class QueueScheduler(WorkflowScheduler):
    """asyncio.Queue + N worker tasks."""

    def __init__(
        self,
        handler: WorkHandler,
        max_concurrent: int = 4,
        shutdown_grace_sec: float = 30.0,
        logger=None,
    ):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self.handler = handler
        self.max_concurrent = max_concurrent
        self.shutdown_grace_sec = shutdown_grace_sec
        self.logger = logger or get_logger(__name__, ComponentType.SCHEDULER)

        self._queue: Optional[asyncio.Queue] = None
        self._workers: List[asyncio.Task] = []
        self._running = False

        # Metrics
        self._started_at: Optional[datetime] = None
        self._submitted = 0
        self._completed = 0
        self._failed = 0
        self._in_flight = 0

    async def start(self) -> None:
        if self._running:
            self.logger.warning("Scheduler already running")
            return

        self._queue = asyncio.Queue()
        self._running = True
        self._started_at = datetime.now(timezone.utc)
        self._workers = [
            asyncio.create_task(self._worker_loop(i), name=f"workflow-worker-{i}")
            for i in range(self.max_concurrent)
        ]
        self.logger.info(f"Scheduler started (workers={self.max_concurrent})")

    async def submit(self, item: WorkItem) -> None:
        if not self._running or self._queue is None:
            raise SchedulerStoppedError(
                f"scheduler is not running; cannot {item.operation.value} {item.cluster_id}"
            )
        self._submitted += 1
        await self._queue.put(item)
        self.logger.debug(f"Queued {item.operation.value} for {item.cluster_id}")

    async def join(self) -> None:
        """Wait until every queued item has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        """
        Stop accepting work, drain for the grace period, cancel the rest.
        """
        if not self._running:
            return

        self._running = False
        self.logger.info(
            f"Stopping scheduler (queued={self._queue.qsize()}, in_flight={self._in_flight}, "
            f"grace={self.shutdown_grace_sec}s)"
        )

        try:
            await asyncio.wait_for(self._queue.join(), timeout=self.shutdown_grace_sec)
        except asyncio.TimeoutError:
            self.logger.warning("Grace period expired, cancelling remaining workflows")

        for task in self._workers:
            task.cancel()
        for task in self._workers:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._workers = []

        self.logger.info(
            f"Scheduler stopped (submitted={self._submitted}, completed={self._completed}, "
            f"failed={self._failed})"
        )

    async def _worker_loop(self, index: int) -> None:
        while True:
            item = await self._queue.get()
            self._in_flight += 1
            try:
                await self.handler(item)
                self._completed += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._failed += 1
                self.logger.exception(
                    f"Workflow {item.operation.value} for {item.cluster_id} raised: {e}"
                )
            finally:
                self._in_flight -= 1
                self._queue.task_done()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "max_concurrent": self.max_concurrent,
            "queued": self._queue.qsize() if self._queue is not None else 0,
            "in_flight": self._in_flight,
            "submitted": self._submitted,
            "completed": self._completed,
            "failed": self._failed,
        }


class ManualScheduler(WorkflowScheduler):
    """Holds work until run_pending() is awaited."""

    def __init__(self, handler: Optional[WorkHandler] = None, logger=None):
        self.handler = handler
        self.pending: List[WorkItem] = []
        self.processed: List[WorkItem] = []
        self.reject = False
        self.logger = logger or get_logger(__name__, ComponentType.SCHEDULER)

    async def submit(self, item: WorkItem) -> None:
        if self.reject:
            raise SchedulerStoppedError("scheduler is not accepting work")
        self.pending.append(item)

    async def run_pending(self) -> int:
        """
        Run every pending item in submission order, including items
        submitted while running.

        Returns:
            Number of items run
        """
        if self.handler is None:
            raise RuntimeError("ManualScheduler has no handler")

        count = 0
        while self.pending:
            item = self.pending.pop(0)
            try:
                await self.handler(item)
            except Exception as e:
                self.logger.exception(
                    f"Workflow {item.operation.value} for {item.cluster_id} raised: {e}"
                )
            self.processed.append(item)
            count += 1
        return count

    @property
    def stats(self) -> Dict[str, Any]:
        return {"pending": len(self.pending), "processed": len(self.processed)}


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "WorkHandler",
    "SchedulerStoppedError",
    "WorkflowScheduler",
    "QueueScheduler",
    "ManualScheduler",
]
