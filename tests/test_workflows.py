# ============================================================================
# CLUSTER WORKFLOW TESTS
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Tests - Provisioning and destruction workflows
# PURPOSE: Verify outcome reconciliation, deadlines and executor lifecycle
# CREATED: 13 OCT 2026
# ============================================================================
"""
Cluster Workflow Tests

Drives ClusterWorkflowRunner with FakeExecutor and the in-memory store.

Run with:
    pytest tests/test_workflows.py -v
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from core.contracts import ClusterStatus
from core.errors import PersistenceError
from core.models import Cluster
from infrastructure import FakeExecutor
from infrastructure.fake_executor import DEFAULT_STATE
from repositories import InMemoryClusterRepository
from worker import ClusterWorkflowRunner, WorkflowOperation, WorkItem


# ============================================================================
# HELPERS
# ============================================================================

CONFIG = b'{"resource": {"null_resource": {"node": {}}}}'


def _make_cluster(
    status=ClusterStatus.PROVISIONING,
    config=CONFIG,
    state=None,
    timeout="10m",
    timeout_seconds=600.0,
):
    return Cluster(
        id="c-1",
        name="cluster-c1",
        status=status,
        project="proj",
        region="us-central1",
        timeout=timeout,
        timeout_seconds=timeout_seconds,
        terraform_config=config,
        terraform_state=state,
    )


def _runner(cluster, executor):
    store = InMemoryClusterRepository([cluster])
    return ClusterWorkflowRunner(store, lambda: executor), store


def _item(operation=WorkflowOperation.PROVISION):
    return WorkItem(cluster_id="c-1", operation=operation, request_id="req-1")


def _stored(store):
    return asyncio.run(store.get_cluster("c-1", "req-1"))


class _ExplodingPlan(FakeExecutor):
    async def plan(self, destroy=False):
        self.calls.append("plan")
        raise RuntimeError("boom")


# ============================================================================
# PROVISIONING
# ============================================================================

class TestProvision:

    def test_success_records_state_message_and_outputs(self):
        config = b'{"output": {"ip": {"value": "10.0.0.1"}}}'
        executor = FakeExecutor()
        runner, store = _runner(_make_cluster(config=config), executor)

        result = asyncio.run(runner.run(_item()))

        assert result.status == ClusterStatus.PROVISION_SUCCESS
        assert result.terraform_state == DEFAULT_STATE
        assert result.message == "Apply complete"
        assert json.loads(result.outputs) == {"ip": {"sensitive": False, "value": "10.0.0.1"}}
        assert executor.calls == ["init", "plan", "apply", "output"]
        assert executor.project == "proj"
        assert executor.region == "us-central1"

    def test_success_without_declared_outputs(self):
        runner, store = _runner(_make_cluster(), FakeExecutor())
        asyncio.run(runner.run(_item()))
        assert _stored(store).outputs == b"{}"

    @pytest.mark.parametrize("failing,expected_calls", [
        ("init", ["init"]),
        ("plan", ["init", "plan"]),
        ("apply", ["init", "plan", "apply"]),
    ])
    def test_executor_failure_marks_provision_failed(self, failing, expected_calls):
        executor = FakeExecutor(fail_on=[failing])
        runner, store = _runner(_make_cluster(), executor)

        result = asyncio.run(runner.run(_item()))

        assert result.status == ClusterStatus.PROVISION_FAILED
        assert result.message == f"terraform {failing} failed: simulated failure"
        assert result.terraform_state is None
        assert result.outputs is None
        assert executor.calls == expected_calls

    def test_invalid_json_config(self):
        runner, store = _runner(_make_cluster(config=b"resource {"), FakeExecutor())

        result = asyncio.run(runner.run(_item()))

        assert result.status == ClusterStatus.PROVISION_FAILED
        assert result.message.startswith("terraform config is not valid JSON")

    def test_output_failure_keeps_success(self):
        executor = FakeExecutor(fail_on=["output"])
        runner, store = _runner(_make_cluster(), executor)

        result = asyncio.run(runner.run(_item()))

        assert result.status == ClusterStatus.PROVISION_SUCCESS
        assert result.terraform_state == DEFAULT_STATE
        assert result.outputs is None
        assert result.message == "Apply complete"

    def test_deadline_exceeded(self):
        executor = FakeExecutor(delays={"apply": 1.0})
        runner, store = _runner(_make_cluster(timeout="200ms", timeout_seconds=0.2), executor)

        result = asyncio.run(runner.run(_item()))

        assert result.status == ClusterStatus.PROVISION_FAILED
        assert result.message == "terraform apply timed out after 0.2s"
        assert result.terraform_state is None

    def test_unexpected_exception_is_absorbed(self):
        runner, store = _runner(_make_cluster(), _ExplodingPlan())

        result = asyncio.run(runner.run(_item()))

        assert result.status == ClusterStatus.PROVISION_FAILED
        assert result.message == "RuntimeError: boom"

    def test_long_error_message_truncated(self):
        executor = FakeExecutor(fail_on=["apply"], error_message="x" * 5000)
        runner, store = _runner(_make_cluster(), executor)

        result = asyncio.run(runner.run(_item()))

        assert len(result.message) == 2000


# ============================================================================
# DESTRUCTION
# ============================================================================

class TestDestroy:

    def test_success(self):
        executor = FakeExecutor()
        cluster = _make_cluster(status=ClusterStatus.DESTROYING, state=b'{"version": 4}')
        runner, store = _runner(cluster, executor)

        result = asyncio.run(runner.run(_item(WorkflowOperation.DESTROY)))

        assert result.status == ClusterStatus.DESTROYED
        assert result.message == "Destroy complete"
        assert executor.calls == ["init", "destroy"]

    def test_destroy_passes_stored_state(self):
        executor = FakeExecutor()
        cluster = _make_cluster(status=ClusterStatus.DESTROYING, state=b'{"version": 4}')
        runner, store = _runner(cluster, executor)

        asyncio.run(runner.run(_item(WorkflowOperation.DESTROY)))

        # FakeExecutor.destroy hands back whatever state it was given
        state, _ = asyncio.run(executor.destroy())
        assert state == b'{"version": 4}'

    def test_missing_state_is_empty(self):
        executor = FakeExecutor()
        runner, store = _runner(_make_cluster(status=ClusterStatus.DESTROYING), executor)

        result = asyncio.run(runner.run(_item(WorkflowOperation.DESTROY)))

        assert result.status == ClusterStatus.DESTROYED
        state, _ = asyncio.run(executor.destroy())
        assert state == b""

    def test_failure_marks_destroy_failed(self):
        executor = FakeExecutor(fail_on=["destroy"], error_message="quota")
        runner, store = _runner(_make_cluster(status=ClusterStatus.DESTROYING), executor)

        result = asyncio.run(runner.run(_item(WorkflowOperation.DESTROY)))

        assert result.status == ClusterStatus.DESTROY_FAILED
        assert result.message == "terraform destroy failed: quota"


# ============================================================================
# RUNNER
# ============================================================================

class TestRun:

    def test_executor_closed_after_success(self):
        executor = FakeExecutor()
        runner, _ = _runner(_make_cluster(), executor)
        asyncio.run(runner.run(_item()))
        assert executor.closed

    def test_executor_closed_after_failure(self):
        executor = FakeExecutor(fail_on=["plan"])
        runner, _ = _runner(_make_cluster(), executor)
        asyncio.run(runner.run(_item()))
        assert executor.closed

    def test_fresh_executor_per_run(self):
        executors = []

        def factory():
            executors.append(FakeExecutor())
            return executors[-1]

        store = InMemoryClusterRepository([_make_cluster()])
        runner = ClusterWorkflowRunner(store, factory)
        asyncio.run(runner.run(_item()))

        assert len(executors) == 1

    def test_status_mismatch_is_skipped(self):
        calls = []
        store = InMemoryClusterRepository([_make_cluster(status=ClusterStatus.PROVISION_SUCCESS)])
        runner = ClusterWorkflowRunner(store, lambda: calls.append("built") or FakeExecutor())

        assert asyncio.run(runner.run(_item())) is None
        assert calls == []
        assert _stored(store).status == ClusterStatus.PROVISION_SUCCESS

    def test_missing_cluster_is_skipped(self):
        runner = ClusterWorkflowRunner(InMemoryClusterRepository(), FakeExecutor)
        assert asyncio.run(runner.run(_item())) is None

    def test_persistence_failure_is_logged_not_raised(self):
        executor = FakeExecutor()
        store = AsyncMock()
        store.get_cluster.return_value = _make_cluster()
        store.update_cluster_field.side_effect = PersistenceError("db down", operation="update")
        runner = ClusterWorkflowRunner(store, lambda: executor)

        assert asyncio.run(runner.run(_item())) is None
        assert executor.closed


# ============================================================================
# CANCELLATION
# ============================================================================

def _run_and_cancel(runner, item):
    async def scenario():
        task = asyncio.create_task(runner.run(item))
        await asyncio.sleep(0.02)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())


class TestCancellation:

    @pytest.mark.parametrize("operation,leased,slow_step,expected", [
        (WorkflowOperation.PROVISION, ClusterStatus.PROVISIONING, "apply", ClusterStatus.PROVISION_FAILED),
        (WorkflowOperation.DESTROY, ClusterStatus.DESTROYING, "destroy", ClusterStatus.DESTROY_FAILED),
    ])
    def test_cancelled_workflow_records_failure(self, operation, leased, slow_step, expected):
        executor = FakeExecutor(delays={slow_step: 5})
        runner, store = _runner(_make_cluster(status=leased, state=DEFAULT_STATE), executor)

        _run_and_cancel(runner, _item(operation))

        stored = _stored(store)
        assert stored.status == expected
        assert stored.message == f"{operation.value} workflow interrupted before completion"
        assert executor.closed

    def test_cancel_after_outcome_keeps_outcome(self):
        executor = FakeExecutor(delays={"output": 5})
        runner, store = _runner(_make_cluster(), executor)

        _run_and_cancel(runner, _item())

        stored = _stored(store)
        assert stored.status == ClusterStatus.PROVISION_SUCCESS
        assert stored.terraform_state == DEFAULT_STATE

    def test_unrecordable_interruption_still_cancels(self):
        executor = FakeExecutor(delays={"apply": 5})
        store = AsyncMock()
        store.get_cluster.side_effect = [
            _make_cluster(),
            PersistenceError("db down", operation="select"),
        ]
        runner = ClusterWorkflowRunner(store, lambda: executor)

        _run_and_cancel(runner, _item())

        store.update_cluster_field.assert_not_called()
        assert executor.closed
