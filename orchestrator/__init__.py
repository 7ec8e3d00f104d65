# ============================================================================
# ORCHESTRATOR MODULE
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core - Background loops
# PURPOSE: Periodic housekeeping for the cluster fleet
# CREATED: 10 OCT 2026
# ============================================================================
"""
Orchestrator Module

Usage:
    from orchestrator import ExpiryReaper

    reaper = ExpiryReaper(store, cluster_service, interval_sec=60)
    await reaper.start()
"""

from .reaper import ExpiryReaper

__all__ = ["ExpiryReaper"]
