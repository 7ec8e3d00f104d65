# ============================================================================
# WORKFLOW SCHEDULER TESTS
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Tests - QueueScheduler and ManualScheduler
# PURPOSE: Verify concurrency bound, failure isolation and shutdown
# CREATED: 14 OCT 2026
# ============================================================================
"""
Workflow Scheduler Tests

Run with:
    pytest tests/test_scheduler.py -v
"""

import asyncio

import pytest

from core.contracts import ClusterStatus
from core.models import RequestContext
from infrastructure import FakeExecutor
from repositories import InMemoryClusterRepository
from services import ClusterService
from worker import (
    ClusterWorkflowRunner,
    ManualScheduler,
    QueueScheduler,
    SchedulerStoppedError,
    WorkflowOperation,
    WorkItem,
)


def _item(cluster_id="c-1"):
    return WorkItem(cluster_id=cluster_id, operation=WorkflowOperation.PROVISION, request_id="req-1")


# ============================================================================
# QUEUE SCHEDULER
# ============================================================================

class TestQueueScheduler:

    def test_rejects_zero_workers(self):
        with pytest.raises(ValueError):
            QueueScheduler(lambda item: None, max_concurrent=0)

    def test_submit_before_start_rejected(self):
        scheduler = QueueScheduler(lambda item: None)
        with pytest.raises(SchedulerStoppedError):
            asyncio.run(scheduler.submit(_item()))

    def test_runs_all_items(self):
        seen = []

        async def handler(item):
            seen.append(item.cluster_id)

        async def scenario():
            scheduler = QueueScheduler(handler, max_concurrent=2)
            await scheduler.start()
            for i in range(5):
                await scheduler.submit(_item(f"c-{i}"))
            await scheduler.join()
            await scheduler.stop()
            return scheduler

        scheduler = asyncio.run(scenario())

        assert sorted(seen) == [f"c-{i}" for i in range(5)]
        assert scheduler.stats["completed"] == 5
        assert scheduler.stats["submitted"] == 5

    def test_concurrency_is_bounded(self):
        active = 0
        peak = 0

        async def handler(item):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1

        async def scenario():
            scheduler = QueueScheduler(handler, max_concurrent=3)
            await scheduler.start()
            for i in range(10):
                await scheduler.submit(_item(f"c-{i}"))
            await scheduler.join()
            await scheduler.stop()

        asyncio.run(scenario())
        assert peak == 3

    def test_handler_failure_does_not_stop_worker(self):
        async def handler(item):
            if item.cluster_id == "bad":
                raise RuntimeError("boom")

        async def scenario():
            scheduler = QueueScheduler(handler, max_concurrent=1)
            await scheduler.start()
            await scheduler.submit(_item("bad"))
            await scheduler.submit(_item("good"))
            await scheduler.join()
            await scheduler.stop()
            return scheduler.stats

        stats = asyncio.run(scenario())
        assert stats["failed"] == 1
        assert stats["completed"] == 1

    def test_stop_rejects_new_work(self):
        async def handler(item):
            return None

        async def scenario():
            scheduler = QueueScheduler(handler)
            await scheduler.start()
            await scheduler.stop()
            with pytest.raises(SchedulerStoppedError):
                await scheduler.submit(_item())
            return scheduler

        scheduler = asyncio.run(scenario())
        assert scheduler.stats["running"] is False

    def test_stop_cancels_after_grace(self):
        cancelled = []

        async def handler(item):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(item.cluster_id)
                raise

        async def scenario():
            scheduler = QueueScheduler(handler, max_concurrent=1, shutdown_grace_sec=0.05)
            await scheduler.start()
            await scheduler.submit(_item("slow"))
            await asyncio.sleep(0.01)
            await scheduler.stop()

        asyncio.run(scenario())
        assert cancelled == ["slow"]

    def test_end_to_end_provisioning(self):
        store = InMemoryClusterRepository()
        runner = ClusterWorkflowRunner(store, FakeExecutor)

        async def scenario():
            scheduler = QueueScheduler(runner.run, max_concurrent=2)
            await scheduler.start()
            service = ClusterService(store, scheduler)
            ctx = RequestContext(terraform_config=b"{}", timeout="5m", request_id="req-1")
            created = await service.create_cluster(ctx)
            await scheduler.join()
            await scheduler.stop()
            return created, await store.get_cluster(created.id, "req-1")

        created, stored = asyncio.run(scenario())

        assert created.status == ClusterStatus.PROVISIONING
        assert stored.status == ClusterStatus.PROVISION_SUCCESS


# ============================================================================
# MANUAL SCHEDULER
# ============================================================================

class TestManualScheduler:

    def test_holds_until_run_pending(self):
        seen = []

        async def handler(item):
            seen.append(item.cluster_id)

        scheduler = ManualScheduler(handler)
        asyncio.run(scheduler.submit(_item("a")))
        asyncio.run(scheduler.submit(_item("b")))
        assert seen == []

        assert asyncio.run(scheduler.run_pending()) == 2
        assert seen == ["a", "b"]
        assert scheduler.stats == {"pending": 0, "processed": 2}

    def test_reject(self):
        scheduler = ManualScheduler()
        scheduler.reject = True
        with pytest.raises(SchedulerStoppedError):
            asyncio.run(scheduler.submit(_item()))

    def test_handler_failure_is_logged(self):
        async def handler(item):
            raise RuntimeError("boom")

        scheduler = ManualScheduler(handler)
        asyncio.run(scheduler.submit(_item()))
        assert asyncio.run(scheduler.run_pending()) == 1

    def test_requires_handler(self):
        with pytest.raises(RuntimeError):
            asyncio.run(ManualScheduler().run_pending())
