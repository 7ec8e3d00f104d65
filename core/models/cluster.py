# ============================================================================
# CLUSTER MODEL
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core model - Cluster record
# PURPOSE: The persisted unit of orchestration and its lifecycle status
# CREATED: 06 OCT 2026
# EXPORTS: Cluster
# DEPENDENCIES: pydantic
# ============================================================================
"""
Cluster Model

A Cluster is one unit of infrastructure under orchestration.

The store creates the record with status=REQUESTED. From then on the
status only moves through field-level updates issued by ClusterService
and the workflow worker (see core.contracts.CLUSTER_STATUS_TRANSITIONS).
"""

from datetime import datetime, timedelta, timezone
from typing import ClassVar, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field

from core.contracts import INTERRUPTED_OUTCOMES, ClusterStatus


def utcnow() -> datetime:
    """Timezone-aware UTC now (TIMESTAMPTZ compatible)."""
    return datetime.now(timezone.utc)


class Cluster(BaseModel):
    """
    A cluster record.

    Maps to: clusterapp.clusters table

    Lifecycle:
        1. Created with status=REQUESTED by the store
        2. Promoted to PROVISIONING when the workflow is scheduled
        3. Settles in PROVISION_SUCCESS or PROVISION_FAILED
        4. DESTROYING while the destruction workflow runs
        5. DESTROYED (terminal) or DESTROY_FAILED (retryable)
    """

    # =========================================================================
    # SQL DDL METADATA (Used by PydanticToSQL generator)
    # =========================================================================
    __sql_table__: ClassVar[str] = "clusters"
    __sql_schema__: ClassVar[str] = "clusterapp"
    __sql_primary_key__: ClassVar[List[str]] = ["id"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {}
    __sql_indexes__: ClassVar[List[tuple]] = [
        ("idx_clusters_status", ["status"]),
        ("idx_clusters_created", ["created_at"]),
        # Expiry scan only looks at stable statuses
        (
            "idx_clusters_expiry",
            ["created_at"],
            "status IN ('provision_success', 'provision_failed', 'destroy_failed')",
        ),
    ]

    # Identity
    id: str = Field(..., max_length=64, description="Store-assigned UUID, immutable")
    name: str = Field(..., max_length=128, description="Descriptive label")

    # Lifecycle
    status: ClusterStatus = Field(default=ClusterStatus.REQUESTED)
    message: Optional[str] = Field(
        default=None,
        max_length=2000,
        description="Outcome of the last executor operation"
    )

    # Placement (immutable after creation)
    project: str = Field(..., max_length=128)
    region: str = Field(..., max_length=64)

    # Time budget
    timeout: str = Field(..., max_length=32, description="Duration as supplied, e.g. '10m'")
    timeout_seconds: float = Field(..., gt=0, description="Parsed timeout")

    # Executor payloads
    terraform_config: bytes = Field(..., description="Infrastructure-as-code payload")
    terraform_state: Optional[bytes] = Field(
        default=None,
        description="State snapshot from the last successful apply"
    )
    outputs: Optional[bytes] = Field(
        default=None,
        description="Outputs extracted after the last successful apply"
    )

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @computed_field
    @property
    def is_terminal(self) -> bool:
        """Check if cluster is in a terminal state."""
        return self.status.is_terminal()

    @property
    def expires_at(self) -> datetime:
        """When the cluster's time budget runs out."""
        return self.created_at + timedelta(seconds=self.timeout_seconds)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """
        Check if the cluster is past its time budget.

        Only stable statuses expire; transient clusters are owned by a
        workflow and destroyed clusters are already gone.
        """
        if now is None:
            now = utcnow()
        return self.status.is_stable() and now > self.expires_at

    def is_orphaned(self, now: Optional[datetime] = None) -> bool:
        """
        Check if a transient cluster has gone a full time budget since its
        last write.

        A live workflow settles within timeout_seconds of taking the lease,
        so such a cluster has no workflow left to report an outcome.
        """
        if now is None:
            now = utcnow()
        return (
            self.status in INTERRUPTED_OUTCOMES
            and now > self.updated_at + timedelta(seconds=self.timeout_seconds)
        )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["Cluster", "utcnow"]
