# ============================================================================
# WORKER MODULE
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core - Background workflow execution
# PURPOSE: Work items, schedulers and the cluster workflow runner
# CREATED: 09 OCT 2026
# ============================================================================
"""
Worker Module

Components for running cluster workflows off the request path:
- contracts: WorkItem and WorkflowOperation
- scheduler: QueueScheduler (production) and ManualScheduler (tests)
- workflows: ClusterWorkflowRunner (provision / destroy)
"""

from worker.contracts import WorkflowOperation, WorkItem
from worker.scheduler import (
    ManualScheduler,
    QueueScheduler,
    SchedulerStoppedError,
    WorkflowScheduler,
)
from worker.workflows import ClusterWorkflowRunner, ExecutorFactory

__all__ = [
    "WorkflowOperation",
    "WorkItem",
    "WorkflowScheduler",
    "QueueScheduler",
    "ManualScheduler",
    "SchedulerStoppedError",
    "ClusterWorkflowRunner",
    "ExecutorFactory",
]
