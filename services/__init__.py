# ============================================================================
# SERVICES MODULE
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core - Business logic layer
# PURPOSE: Cluster lifecycle service
# CREATED: 10 OCT 2026
# ============================================================================
"""
Services Module

Business logic for the cluster orchestrator.
"""

from .cluster_service import ClusterService

__all__ = ["ClusterService"]
