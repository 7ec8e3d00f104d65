# ============================================================================
# WORKER CONTRACTS
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core - Work item handed from the service to the worker
# PURPOSE: The async boundary between request handling and executor calls
# CREATED: 09 OCT 2026
# ============================================================================
"""
Worker Contracts

ClusterService never touches an executor. It persists the transient status
(PROVISIONING / DESTROYING) and submits a WorkItem; the scheduler hands the
item to ClusterWorkflowRunner.run().

Work items carry only ids. The runner re-reads the cluster from the store,
so the item can never carry stale configuration.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from core.models import utcnow


class WorkflowOperation(str, Enum):
    """Which workflow a work item runs."""
    PROVISION = "provision"
    DESTROY = "destroy"


class WorkItem(BaseModel):
    """One unit of background work."""

    cluster_id: str = Field(..., max_length=64)
    operation: WorkflowOperation
    request_id: str = Field(..., max_length=64, description="Correlation id of the originating request")
    submitted_at: datetime = Field(default_factory=utcnow)

    model_config = {"frozen": True}


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["WorkflowOperation", "WorkItem"]
