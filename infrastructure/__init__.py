# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Infrastructure - Executors and repository base
# PURPOSE: Infrastructure-as-code executors and shared store patterns
# CREATED: 09 OCT 2026
# ============================================================================
"""
Infrastructure module for the Cluster Orchestrator.

Provides:
- InfrastructureExecutor: executor port
- TerraformExecutor: terraform CLI in a private workspace
- FakeExecutor: in-process double
- BaseRepository: error/transition patterns shared by cluster stores

Usage:
    from infrastructure import TerraformExecutor

    executor = TerraformExecutor(binary="terraform")
    executor.set_config(cluster.terraform_config)
    await executor.initialize()
"""

from infrastructure.base_repository import BaseRepository
from infrastructure.executor import (
    APPLY_SUCCESS,
    DESTROY_SUCCESS,
    InfrastructureExecutor,
)
from infrastructure.fake_executor import FakeExecutor
from infrastructure.terraform import TerraformExecutor

__all__ = [
    "BaseRepository",
    "InfrastructureExecutor",
    "APPLY_SUCCESS",
    "DESTROY_SUCCESS",
    "TerraformExecutor",
    "FakeExecutor",
]
