# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core module initialization
# PURPOSE: Export core contracts, models and errors
# CREATED: 06 OCT 2026
# ============================================================================

from core.contracts import ClusterStatus
from core.errors import (
    ClusterError,
    InvalidRequestError,
    ClusterNotFoundError,
    ClusterAlreadyDestroyedError,
    WorkflowInProgressError,
    PersistenceError,
    ExecutorError,
)
from core.models import Cluster, RequestContext

__all__ = [
    # Enums
    "ClusterStatus",
    # Models
    "Cluster",
    "RequestContext",
    # Errors
    "ClusterError",
    "InvalidRequestError",
    "ClusterNotFoundError",
    "ClusterAlreadyDestroyedError",
    "WorkflowInProgressError",
    "PersistenceError",
    "ExecutorError",
]
