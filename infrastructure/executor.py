# ============================================================================
# INFRASTRUCTURE EXECUTOR PORT
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Infrastructure - Executor contract
# PURPOSE: What a workflow needs from an infrastructure-as-code engine
# CREATED: 09 OCT 2026
# ============================================================================
"""
Infrastructure Executor Port

An executor is configured with setters, then driven through
initialize -> plan -> apply (provisioning) or initialize -> destroy
(destruction). Every failure is raised as ExecutorError carrying the
operation name.

One executor instance serves exactly one workflow; the runner calls
close() when the workflow ends.
"""

from abc import ABC, abstractmethod
from typing import Tuple

APPLY_SUCCESS = "Apply complete"
DESTROY_SUCCESS = "Destroy complete"


class InfrastructureExecutor(ABC):
    """Abstract infrastructure-as-code executor."""

    def __init__(self):
        self._project = ""
        self._region = ""
        self._config = b""
        self._state = b""

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def set_project(self, project: str) -> None:
        self._project = project

    def set_region(self, region: str) -> None:
        self._region = region

    def set_config(self, config: bytes) -> None:
        self._config = config

    def set_state(self, state: bytes) -> None:
        self._state = state

    @property
    def project(self) -> str:
        return self._project

    @property
    def region(self) -> str:
        return self._region

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the working environment (providers, workspace)."""

    @abstractmethod
    async def plan(self, destroy: bool = False) -> str:
        """Compute the change set; returns a human-readable summary."""

    @abstractmethod
    async def apply(self) -> Tuple[bytes, str]:
        """Apply the configuration; returns (new state, message)."""

    @abstractmethod
    async def destroy(self) -> Tuple[bytes, str]:
        """Destroy everything in the current state; returns (state, message)."""

    @abstractmethod
    async def outputs(self) -> bytes:
        """Outputs of the last apply as a JSON document."""

    async def close(self) -> None:
        """Release local resources. Default: nothing to release."""
        return None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["InfrastructureExecutor", "APPLY_SUCCESS", "DESTROY_SUCCESS"]
