# ============================================================================
# VERSION - CLUSTER ORCHESTRATOR
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# ============================================================================
"""
Version information for the Cluster Orchestrator.

This is the single source of truth for the application version.
Updated manually for each release.
"""
# Version format: major.minor.patch.build
# Criteria for 0.1 - create/delete round trip against the fake executor
__version__ = "0.1.3.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Build metadata
BUILD_DATE = "2026-10-16"

EPOCH = 1
CODENAME = "Cluster Orchestrator"
