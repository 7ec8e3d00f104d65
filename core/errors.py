# ============================================================================
# ERROR TAXONOMY
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Foundation - Typed errors raised by stores, executors and services
# PURPOSE: One exception per failure class a caller has to tell apart
# CREATED: 06 OCT 2026
# ============================================================================
"""
Cluster Orchestration Errors

Synchronous failures (raised to the caller of ClusterService):
- InvalidRequestError: malformed/missing input, detected before persistence
- ClusterNotFoundError: referenced cluster absent from the store
- ClusterAlreadyDestroyedError: delete requested on a destroyed cluster
- WorkflowInProgressError: a workflow already owns the cluster
- PersistenceError: store operation failed

Asynchronous failures (absorbed into cluster status/message):
- ExecutorError: any executor operation failed or timed out
"""

from typing import Any, Optional


class ClusterError(Exception):
    """Base exception for cluster orchestration."""
    pass


class InvalidRequestError(ClusterError):
    """Raised when a request is missing required input or is malformed."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class ClusterNotFoundError(ClusterError):
    """Raised when a cluster does not exist in the store."""

    def __init__(self, cluster_id: str):
        self.cluster_id = cluster_id
        super().__init__(f"Cluster not found: {cluster_id}")


class ClusterAlreadyDestroyedError(ClusterError):
    """Raised when destruction is requested for a destroyed cluster."""

    def __init__(self, cluster_id: str):
        self.cluster_id = cluster_id
        super().__init__(f"Cluster already destroyed: {cluster_id}")


class WorkflowInProgressError(ClusterError):
    """Raised when a provisioning or destruction workflow owns the cluster."""

    def __init__(self, cluster_id: str, status: Any):
        self.cluster_id = cluster_id
        self.status = status
        status_value = getattr(status, "value", status)
        super().__init__(
            f"Cluster {cluster_id} is {status_value}; "
            f"wait for the running workflow to finish"
        )


class PersistenceError(ClusterError):
    """Raised when a store operation fails."""

    def __init__(self, message: str, operation: str = None, entity_id: str = None):
        self.operation = operation
        self.entity_id = entity_id
        super().__init__(message)


class InvalidTransitionError(PersistenceError):
    """Raised when a status write violates the transition table."""

    def __init__(self, message: str, entity_id: str = None, value: Any = None):
        self.value = value
        super().__init__(message, operation="status update", entity_id=entity_id)


class ExecutorError(ClusterError):
    """Raised when an infrastructure executor operation fails."""

    def __init__(self, message: str, operation: Optional[str] = None):
        self.operation = operation
        super().__init__(message)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ClusterError",
    "InvalidRequestError",
    "ClusterNotFoundError",
    "ClusterAlreadyDestroyedError",
    "WorkflowInProgressError",
    "PersistenceError",
    "InvalidTransitionError",
    "ExecutorError",
]
