# ============================================================================
# BASE REPOSITORY - ERROR HANDLING AND VALIDATION PATTERNS
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Infrastructure - Base repository patterns
# PURPOSE: Common error wrapping, transition checks and logging for stores
# CREATED: 08 OCT 2026
# ============================================================================
"""
Base Repository Patterns

Shared by every ClusterStore implementation:
- Error context manager turning driver failures into PersistenceError
- Status transition validation against CLUSTER_STATUS_TRANSITIONS
- Standardized operation logging

Domain errors (ClusterNotFoundError, InvalidTransitionError, ...) raised
inside an error context pass through untouched.
"""

from contextlib import contextmanager
from typing import Any, Dict, Optional

from core.contracts import CLUSTER_STATUS_TRANSITIONS, ClusterStatus
from core.errors import ClusterError, InvalidTransitionError, PersistenceError
from core.logging import ComponentType, get_logger


class BaseRepository:
    """
    Base repository with common patterns.

    Subclasses implement storage-specific operations.
    """

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__, ComponentType.REPOSITORY)
        self.logger.debug(f"{self.__class__.__name__} initialized")

    @contextmanager
    def _error_context(self, operation: str, entity_id: Optional[str] = None):
        """
        Wrap a store operation with standardized error handling.

        Example:
            with self._error_context("cluster creation", cluster_id):
                await conn.execute(...)
        """
        try:
            yield
        except ClusterError:
            raise
        except Exception as e:
            error_msg = f"{operation} failed"
            if entity_id:
                error_msg += f" for {entity_id}"
            error_msg += f": {e}"
            self.logger.error(error_msg)
            raise PersistenceError(error_msg, operation=operation, entity_id=entity_id) from e

    def _validate_status_transition(
        self,
        cluster_id: str,
        current_status: ClusterStatus,
        new_status: ClusterStatus,
        allowed_transitions: Dict[ClusterStatus, set] = CLUSTER_STATUS_TRANSITIONS,
    ) -> None:
        """
        Validate a status transition against the lifecycle table.

        Raises:
            InvalidTransitionError: If the transition is not allowed
        """
        if current_status == new_status:
            return

        allowed = allowed_transitions.get(current_status, set())
        if new_status not in allowed:
            raise InvalidTransitionError(
                f"Invalid status transition for {cluster_id}: "
                f"{current_status.value} -> {new_status.value}. "
                f"Allowed from {current_status.value}: {sorted(s.value for s in allowed)}",
                entity_id=cluster_id,
                value=f"{current_status.value} -> {new_status.value}",
            )

    def _log_operation(
        self,
        success: bool,
        operation: str,
        entity_id: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Log operation result with consistent formatting.

        Format:
            Success: "operation: entity_id | details"
            Failure: "operation failed: entity_id | details"
        """
        msg = f"{operation}: {entity_id}" if success else f"{operation} failed: {entity_id}"
        if details:
            msg += f" | {details}"

        if success:
            self.logger.info(msg)
        else:
            self.logger.warning(msg)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["BaseRepository"]
