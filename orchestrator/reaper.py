# ============================================================================
# EXPIRY REAPER
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core - Background expiry scan
# PURPOSE: Destroy clusters that have outlived their timeout
# CREATED: 10 OCT 2026
# ============================================================================
"""
Expiry Reaper

Every `interval_sec` the reaper:
1. Reclaims orphans: transient clusters that went timeout_seconds without
   a write (workflow cancelled, process restarted, outcome write lost) are
   moved to provision_failed/destroy_failed by the store.
2. Asks the store for expired clusters (stable status, created_at +
   timeout_seconds in the past) and requests their destruction through
   ClusterService, exactly like a caller would. A reclaimed orphan is
   usually also expired, so it is destroyed in the same cycle.

Races with callers are expected and harmless: a cluster deleted, destroyed
or picked up by a workflow between the scan and the delete is skipped. A
store failure aborts the current cycle; the next cycle retries.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.errors import (
    ClusterAlreadyDestroyedError,
    ClusterNotFoundError,
    PersistenceError,
    WorkflowInProgressError,
)
from core.logging import ComponentType, get_logger, log_context
from repositories.cluster_store import ClusterStore
from services.cluster_service import ClusterService
from worker.scheduler import SchedulerStoppedError


class ExpiryReaper:
    """Background loop destroying expired clusters."""

    def __init__(
        self,
        store: ClusterStore,
        cluster_service: ClusterService,
        interval_sec: float = 60.0,
        logger=None,
    ):
        self.store = store
        self.cluster_service = cluster_service
        self.interval_sec = interval_sec
        self.logger = logger or get_logger(__name__, ComponentType.REAPER)

        # State
        self._running = False
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

        # Metrics
        self._started_at: Optional[datetime] = None
        self._scans = 0
        self._reaped = 0
        self._reclaimed = 0
        self._skipped = 0
        self._errors = 0
        self._last_scan_at: Optional[datetime] = None

    async def start(self) -> None:
        if self._running:
            self.logger.warning("Reaper already running")
            return

        self._running = True
        self._started_at = datetime.now(timezone.utc)
        self._stop_event.clear()
        self._task = asyncio.create_task(self._scan_loop(), name="expiry-reaper")

    async def stop(self) -> None:
        if not self._running:
            return

        self._running = False
        self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        self.logger.info(f"Reaper stopped (scans={self._scans}, reaped={self._reaped})")

    async def scan_once(self) -> int:
        """
        Run one expiry scan.

        Returns:
            Number of clusters whose destruction was requested
        """
        request_id = f"reaper-{uuid.uuid4()}"
        self._scans += 1
        self._last_scan_at = datetime.now(timezone.utc)

        with log_context(request_id=request_id, operation="reap"):
            await self._reclaim_orphans(request_id)

            try:
                expired = await self.store.get_expired_clusters(request_id)
            except PersistenceError as e:
                self._errors += 1
                self.logger.error(f"Expiry scan failed: {e}")
                return 0

            reaped = 0
            for cluster in expired:
                if cluster.status.is_terminal() or cluster.status.holds_lease():
                    self._skipped += 1
                    continue

                try:
                    await self.cluster_service.delete_cluster(request_id, cluster.id)
                except (ClusterNotFoundError, ClusterAlreadyDestroyedError, WorkflowInProgressError) as e:
                    self._skipped += 1
                    self.logger.info(f"Skipping {cluster.id}: {e}")
                    continue
                except (PersistenceError, SchedulerStoppedError) as e:
                    self._errors += 1
                    self.logger.error(f"Expiry scan aborted at {cluster.id}: {e}")
                    break

                reaped += 1
                self.logger.info(
                    f"Expired cluster {cluster.id} ({cluster.name}) scheduled for destruction "
                    f"(timeout={cluster.timeout})"
                )

            self._reaped += reaped
            if expired:
                self.logger.info(f"Expiry scan: {len(expired)} expired, {reaped} reaped")
            return reaped

    async def _reclaim_orphans(self, request_id: str) -> None:
        """Settle transient clusters whose workflow never reported back."""
        try:
            orphans = await self.store.reclaim_orphaned_clusters(request_id)
        except PersistenceError as e:
            self._errors += 1
            self.logger.error(f"Orphan reclaim failed: {e}")
            return

        self._reclaimed += len(orphans)
        for cluster in orphans:
            self.logger.warning(
                f"Reclaimed orphaned cluster {cluster.id} ({cluster.name}) as {cluster.status.value}"
            )

    async def _scan_loop(self) -> None:
        self.logger.info(f"Starting expiry scan loop (interval={self.interval_sec}s)")

        while not self._stop_event.is_set():
            try:
                await self.scan_once()
            except Exception as e:
                self._errors += 1
                self.logger.exception(f"Expiry scan error: {e}")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_sec)
                break
            except asyncio.TimeoutError:
                pass

        self.logger.info("Expiry scan loop stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "interval_sec": self.interval_sec,
            "scans": self._scans,
            "reaped": self._reaped,
            "reclaimed": self._reclaimed,
            "skipped": self._skipped,
            "errors": self._errors,
            "last_scan_at": self._last_scan_at.isoformat() if self._last_scan_at else None,
        }


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["ExpiryReaper"]
