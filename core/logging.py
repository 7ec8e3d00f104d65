# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core - Structured logging with context
# PURPOSE: Consistent, queryable logging across all components
# CREATED: 06 OCT 2026
# ============================================================================
"""
Structured Logging

Provides structured, JSON-formatted logging for the cluster orchestrator.

Features:
- Component-based loggers
- Contextual fields (cluster_id, request_id, operation)
- JSON output for log aggregation
- Named checkpoints for lifecycle tracing

Logging is configured once at process start from LoggingSettings and the
resulting loggers are handed to the components that need them:

    from core.logging import configure_logging, get_logger, log_context

    configure_logging(settings.logging)
    logger = get_logger("worker.workflows", ComponentType.WORKER)

    with log_context(cluster_id="c-123", request_id="req-1"):
        logger.info("Applying", extra={"step": "apply"})

Context lives in a ContextVar, so each asyncio task (one per workflow)
sees only the fields it bound itself.
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from core.config.settings import LoggingSettings


class ComponentType(str, Enum):
    """Component types for logging categorization."""
    API = "api"
    SERVICE = "service"
    REPOSITORY = "repository"
    WORKER = "worker"
    SCHEDULER = "scheduler"
    REAPER = "reaper"
    EXECUTOR = "executor"


@dataclass(frozen=True)
class LogContext:
    """Contextual fields attached to every record logged inside log_context()."""
    cluster_id: Optional[str] = None
    request_id: Optional[str] = None
    operation: Optional[str] = None
    component: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, excluding None values."""
        result = {}
        for key, value in asdict(self).items():
            if value is not None and key != "extra":
                result[key] = value
        if self.extra:
            result.update(self.extra)
        return result


_current_context: ContextVar[LogContext] = ContextVar("log_context", default=LogContext())


def get_current_context() -> LogContext:
    """Get current logging context."""
    return _current_context.get()


@contextmanager
def log_context(**kwargs):
    """
    Context manager for adding logging context.

    Args:
        **kwargs: Context fields to add (unknown keys go to ``extra``)

    Example:
        with log_context(cluster_id="c-123", operation="destroy"):
            logger.info("Destroying cluster")
    """
    parent = get_current_context()
    known = {"cluster_id", "request_id", "operation", "component"}
    extra = {**parent.extra, **kwargs.get("extra", {})}
    extra.update({k: v for k, v in kwargs.items() if k not in known and k != "extra"})

    new_context = LogContext(
        cluster_id=kwargs.get("cluster_id", parent.cluster_id),
        request_id=kwargs.get("request_id", parent.request_id),
        operation=kwargs.get("operation", parent.operation),
        component=kwargs.get("component", parent.component),
        extra=extra,
    )

    token = _current_context.set(new_context)
    try:
        yield new_context
    finally:
        _current_context.reset(token)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON for easy parsing by log aggregators.
    """

    def __init__(
        self,
        include_timestamp: bool = True,
        include_context: bool = True,
        include_source: bool = True,
    ):
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_context = include_context
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {}

        if self.include_timestamp:
            log_data["timestamp"] = _utc_timestamp()

        log_data["level"] = record.levelname
        log_data["logger"] = record.name
        log_data["message"] = record.getMessage()

        if self.include_context:
            context_dict = get_current_context().to_dict()
            if context_dict:
                log_data["context"] = context_dict

        # Extra fields attached by ContextLogger
        if hasattr(record, "extra") and record.extra:
            log_data["data"] = record.extra

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_source:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class HumanFormatter(logging.Formatter):
    """
    Human-readable formatter for development.

    Includes context fields inline for easy reading.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for human reading."""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname.ljust(8)

        context = get_current_context()
        context_parts = []
        if context.cluster_id:
            context_parts.append(f"cluster={context.cluster_id}")
        if context.request_id:
            context_parts.append(f"req={context.request_id}")
        if context.operation:
            context_parts.append(f"op={context.operation}")

        context_str = f" [{', '.join(context_parts)}]" if context_parts else ""

        result = f"{timestamp} {level} {record.name}{context_str}: {record.getMessage()}"

        if record.exc_info:
            result += f"\n{self.formatException(record.exc_info)}"

        return result


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that includes context in log records.

    Merges the current log_context() fields and any ``extra`` passed at the
    call site into a single ``record.extra`` dict for the formatters.
    """

    def process(self, msg, kwargs):
        context = get_current_context()

        extra = dict(kwargs.get("extra") or {})
        extra.update(context.to_dict())
        if self.extra and self.extra.get("component") and "component" not in extra:
            extra["component"] = getattr(self.extra["component"], "value", self.extra["component"])

        kwargs["extra"] = {"extra": extra}
        return msg, kwargs


def get_logger(
    name: str,
    component: Optional[ComponentType] = None,
) -> ContextLogger:
    """
    Get a context-aware logger.

    Args:
        name: Logger name (e.g., "worker.workflows")
        component: Optional component type for categorization

    Returns:
        ContextLogger instance
    """
    return ContextLogger(logging.getLogger(name), {"component": component})


def configure_logging(settings: "LoggingSettings") -> logging.Logger:
    """
    Configure logging for the application.

    Called once at process start. Replaces any handlers already installed
    on the root logger.

    Args:
        settings: Level and output format

    Returns:
        The configured root logger
    """
    level = settings.level
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if settings.json_output:
        formatter = StructuredFormatter(include_source=settings.include_source)
    else:
        formatter = HumanFormatter()

    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    return root


# ============================================================================
# CHECKPOINT LOGGING
# ============================================================================

def log_checkpoint(
    name: str,
    data: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Log a named lifecycle checkpoint.

    Checkpoints are named markers (e.g. "provision_succeeded") that can be
    queried to reconstruct what happened to a cluster.

    Args:
        name: Checkpoint name
        data: Optional checkpoint data
        logger: Optional specific logger to use
    """
    if logger is None:
        logger = logging.getLogger("checkpoint")
    elif isinstance(logger, logging.LoggerAdapter):
        logger = logger.logger

    checkpoint_data = {
        "checkpoint": name,
        "timestamp": _utc_timestamp(),
    }
    checkpoint_data.update(get_current_context().to_dict())

    if data:
        checkpoint_data["data"] = data

    logger.info(f"CHECKPOINT: {name}", extra={"extra": checkpoint_data})


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ComponentType",
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
    "log_checkpoint",
]
