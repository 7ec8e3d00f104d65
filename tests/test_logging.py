# ============================================================================
# LOGGING TESTS
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Tests - Context-aware structured logging
# PURPOSE: Verify context propagation, formatters and checkpoints
# CREATED: 15 OCT 2026
# ============================================================================
"""
Logging Tests

Run with:
    pytest tests/test_logging.py -v
"""

import asyncio
import json
import logging

from core.config import LoggingSettings
from core.logging import (
    ComponentType,
    HumanFormatter,
    StructuredFormatter,
    configure_logging,
    get_current_context,
    get_logger,
    log_checkpoint,
    log_context,
)


def _record(message="hello", extra=None):
    record = logging.LogRecord("worker.workflows", logging.INFO, "workflows.py", 42, message, None, None)
    if extra is not None:
        record.extra = extra
    return record


class TestLogContext:

    def test_nested_contexts_merge_and_restore(self):
        with log_context(request_id="req-1"):
            with log_context(cluster_id="c-1", operation="provision", attempt=2):
                ctx = get_current_context()
                assert ctx.request_id == "req-1"
                assert ctx.cluster_id == "c-1"
                assert ctx.to_dict() == {
                    "request_id": "req-1",
                    "cluster_id": "c-1",
                    "operation": "provision",
                    "attempt": 2,
                }
            assert get_current_context().cluster_id is None

        assert get_current_context().to_dict() == {}

    def test_context_is_task_local(self):
        seen = {}

        async def task(name):
            with log_context(cluster_id=name):
                await asyncio.sleep(0.01)
                seen[name] = get_current_context().cluster_id

        async def scenario():
            await asyncio.gather(task("a"), task("b"))

        asyncio.run(scenario())
        assert seen == {"a": "a", "b": "b"}


class TestFormatters:

    def test_structured_formatter(self):
        formatter = StructuredFormatter()
        with log_context(cluster_id="c-1"):
            payload = json.loads(formatter.format(_record(extra={"k": "v"})))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "worker.workflows"
        assert payload["message"] == "hello"
        assert payload["context"] == {"cluster_id": "c-1"}
        assert payload["data"] == {"k": "v"}
        assert payload["source"]["line"] == 42
        assert payload["timestamp"].endswith("Z")

    def test_structured_formatter_without_source(self):
        payload = json.loads(StructuredFormatter(include_source=False).format(_record()))
        assert "source" not in payload
        assert "context" not in payload

    def test_human_formatter_inlines_context(self):
        with log_context(cluster_id="c-1", request_id="req-1", operation="destroy"):
            line = HumanFormatter().format(_record())

        assert "[cluster=c-1, req=req-1, op=destroy]" in line
        assert line.endswith("worker.workflows [cluster=c-1, req=req-1, op=destroy]: hello")


class TestContextLogger:

    def test_process_merges_context_and_component(self):
        logger = get_logger("services.cluster_service", ComponentType.SERVICE)

        with log_context(request_id="req-7"):
            _, kwargs = logger.process("msg", {"extra": {"name": "ci"}})

        assert kwargs["extra"] == {
            "extra": {"name": "ci", "request_id": "req-7", "component": "service"}
        }

    def test_checkpoint_is_logged(self, caplog):
        logger = get_logger("worker.workflows", ComponentType.WORKER)

        with caplog.at_level(logging.INFO, logger="worker.workflows"):
            with log_context(cluster_id="c-1"):
                log_checkpoint("provision_succeeded", {"name": "ci"}, logger)

        [record] = caplog.records
        assert record.getMessage() == "CHECKPOINT: provision_succeeded"
        assert record.extra["checkpoint"] == "provision_succeeded"
        assert record.extra["cluster_id"] == "c-1"
        assert record.extra["data"] == {"name": "ci"}


class TestConfigureLogging:

    def test_json_output(self):
        root = configure_logging(LoggingSettings(level="WARNING", json_output=True))
        try:
            assert root.level == logging.WARNING
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        finally:
            configure_logging(LoggingSettings())

    def test_human_output(self):
        root = configure_logging(LoggingSettings(level="debug"))
        try:
            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[0].formatter, HumanFormatter)
        finally:
            configure_logging(LoggingSettings())
