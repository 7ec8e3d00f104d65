# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# CREATED: 06 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

Models define SQL metadata via __sql_* ClassVar attributes for DDL generation.
"""

from core.models.cluster import Cluster, utcnow
from core.models.field_update import (
    ClusterField,
    ClusterFieldUpdate,
    MessageUpdate,
    OutputsUpdate,
    StatusUpdate,
    TerraformConfigUpdate,
    TerraformStateUpdate,
)
from core.models.request_context import RequestContext, parse_duration

__all__ = [
    # Cluster
    "Cluster",
    "utcnow",
    # Field updates
    "ClusterField",
    "ClusterFieldUpdate",
    "StatusUpdate",
    "MessageUpdate",
    "OutputsUpdate",
    "TerraformConfigUpdate",
    "TerraformStateUpdate",
    # Request
    "RequestContext",
    "parse_duration",
]
