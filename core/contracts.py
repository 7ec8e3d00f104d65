# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Foundation - Cluster lifecycle vocabulary
# PURPOSE: Status enum and the transition table every store enforces
# CREATED: 06 OCT 2026
# EXPORTS: ClusterStatus, CLUSTER_STATUS_TRANSITIONS, STABLE_STATUSES, INTERRUPTED_OUTCOMES
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the cluster orchestration system.

The status vocabulary crosses every boundary:
- SQL (PostgreSQL enum ``cluster_status``)
- HTTP (response bodies)
- Python (service, worker, reaper)
"""

from enum import Enum
from typing import Dict, FrozenSet, Set


# ============================================================================
# STATUS ENUM
# ============================================================================

class ClusterStatus(str, Enum):
    """
    Cluster lifecycle states.

    State transitions:
        REQUESTED -> PROVISIONING -> PROVISION_SUCCESS
                                  -> PROVISION_FAILED
        (stable) -> DESTROYING -> DESTROYED
                               -> DESTROY_FAILED
    """
    REQUESTED = "requested"                  # Record persisted, workflow not yet accepted
    PROVISIONING = "provisioning"            # Provisioning workflow owns the cluster
    PROVISION_SUCCESS = "provision_success"  # Apply succeeded
    PROVISION_FAILED = "provision_failed"    # init/plan/apply failed
    DESTROYING = "destroying"                # Destruction workflow owns the cluster
    DESTROYED = "destroyed"                  # Terminal
    DESTROY_FAILED = "destroy_failed"        # Destroy failed, may be retried

    def is_terminal(self) -> bool:
        """Check if this is a terminal state (no further transitions)."""
        return self == ClusterStatus.DESTROYED

    def is_transient(self) -> bool:
        """Check if this state is expected to change without caller action."""
        return self in (
            ClusterStatus.REQUESTED,
            ClusterStatus.PROVISIONING,
            ClusterStatus.DESTROYING,
        )

    def is_stable(self) -> bool:
        """Check if this is a stable, non-terminal state."""
        return self in STABLE_STATUSES

    def is_failed(self) -> bool:
        return self in (ClusterStatus.PROVISION_FAILED, ClusterStatus.DESTROY_FAILED)

    def holds_lease(self) -> bool:
        """Check if a workflow currently owns a cluster in this state."""
        return self in (ClusterStatus.PROVISIONING, ClusterStatus.DESTROYING)


STABLE_STATUSES: FrozenSet[ClusterStatus] = frozenset({
    ClusterStatus.PROVISION_SUCCESS,
    ClusterStatus.PROVISION_FAILED,
    ClusterStatus.DESTROY_FAILED,
})


# ============================================================================
# STATUS TRANSITION RULES
# ============================================================================

CLUSTER_STATUS_TRANSITIONS: Dict[ClusterStatus, Set[ClusterStatus]] = {
    ClusterStatus.REQUESTED: {
        ClusterStatus.PROVISIONING,
        ClusterStatus.PROVISION_FAILED,  # Scheduler rejected the workflow
        ClusterStatus.DESTROYING,
    },
    ClusterStatus.PROVISIONING: {
        ClusterStatus.PROVISION_SUCCESS,
        ClusterStatus.PROVISION_FAILED,
    },
    ClusterStatus.PROVISION_SUCCESS: {ClusterStatus.DESTROYING},
    ClusterStatus.PROVISION_FAILED: {ClusterStatus.DESTROYING},
    ClusterStatus.DESTROYING: {
        ClusterStatus.DESTROYED,
        ClusterStatus.DESTROY_FAILED,
    },
    ClusterStatus.DESTROY_FAILED: {ClusterStatus.DESTROYING},
    ClusterStatus.DESTROYED: set(),  # Terminal
}


# Failure status written when a workflow stops without reporting an outcome
INTERRUPTED_OUTCOMES: Dict[ClusterStatus, ClusterStatus] = {
    ClusterStatus.REQUESTED: ClusterStatus.PROVISION_FAILED,
    ClusterStatus.PROVISIONING: ClusterStatus.PROVISION_FAILED,
    ClusterStatus.DESTROYING: ClusterStatus.DESTROY_FAILED,
}


def allowed_sources(new_status: ClusterStatus) -> Set[ClusterStatus]:
    """
    Statuses from which ``new_status`` may be written.

    Includes ``new_status`` itself - rewriting the same status is a no-op.
    Used by the SQL store to express the transition table as a WHERE clause.
    """
    sources = {
        status
        for status, targets in CLUSTER_STATUS_TRANSITIONS.items()
        if new_status in targets
    }
    sources.add(new_status)
    return sources


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ClusterStatus",
    "STABLE_STATUSES",
    "CLUSTER_STATUS_TRANSITIONS",
    "INTERRUPTED_OUTCOMES",
    "allowed_sources",
]
