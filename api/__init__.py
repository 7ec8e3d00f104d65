# ============================================================================
# API MODULE
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core - FastAPI routes
# PURPOSE: HTTP API for cluster management
# CREATED: 10 OCT 2026
# ============================================================================
"""
API Module

FastAPI routes for the cluster orchestrator.
"""

from .routes import router, set_services
from .schemas import (
    ClusterCreate,
    ClusterResponse,
    ClusterListResponse,
)

__all__ = [
    "router",
    "set_services",
    "ClusterCreate",
    "ClusterResponse",
    "ClusterListResponse",
]
