# ============================================================================
# REQUEST CONTEXT
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core model - Per-call carrier of caller-supplied configuration
# PURPOSE: Bundle the IaC payload, time budget, placement and correlation id
# CREATED: 07 OCT 2026
# EXPORTS: RequestContext, parse_duration
# DEPENDENCIES: pydantic
# ============================================================================
"""
Request Context

Built by the transport layer for every call into ClusterService.
The request_id is threaded through every store call and bound into the
logging context so a single request can be traced end to end.

Timeouts use Go-style duration strings: "90s", "10m", "1h30m", "250ms".
"""

import re
import uuid
from typing import Optional

from pydantic import BaseModel, Field

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(text: str) -> float:
    """
    Parse a duration string into seconds.

    Args:
        text: Duration such as "10m" or "1h30m"

    Returns:
        Duration in seconds

    Raises:
        ValueError if the string is not a valid duration
    """
    value = text.strip()
    if not value:
        raise ValueError("empty duration")

    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(value):
        if match.start() != position:
            break
        number, unit = match.groups()
        total += float(number) * _UNIT_SECONDS[unit]
        position = match.end()

    if position != len(value):
        raise ValueError(f"invalid duration: {text!r}")

    return total


class RequestContext(BaseModel):
    """Caller-supplied configuration for one orchestration request."""

    terraform_config: bytes = Field(
        default=b"",
        description="Infrastructure-as-code payload (serialized Terraform JSON)"
    )
    timeout: str = Field(
        default="",
        max_length=32,
        description="Cluster time budget as a duration string; empty uses the default"
    )
    project: str = Field(default="", max_length=128)
    region: str = Field(default="", max_length=64)
    name: Optional[str] = Field(default=None, max_length=128)
    request_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        max_length=64,
        description="Correlation id for tracing"
    )

    def timeout_seconds(self, default: str) -> float:
        """
        Resolve the timeout in seconds, falling back to ``default``.

        Raises:
            ValueError if the effective timeout is invalid or not positive
        """
        seconds = parse_duration(self.timeout or default)
        if seconds <= 0:
            raise ValueError(f"timeout must be positive: {self.timeout or default!r}")
        return seconds


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["RequestContext", "parse_duration"]
