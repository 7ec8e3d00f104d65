# ============================================================================
# API SCHEMAS
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core - Request/Response schemas
# PURPOSE: Pydantic models for API validation
# CREATED: 10 OCT 2026
# ============================================================================
"""
API Schemas

Request and response models for the API.

Byte payloads (terraform_config, terraform_state, outputs) are rendered as
embedded JSON when they parse, otherwise as UTF-8 text.
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from core.contracts import ClusterStatus
from core.models import Cluster


def render_bytes(payload: Optional[bytes]) -> Any:
    """Bytes -> JSON value if it parses, else text. None stays None."""
    if payload is None:
        return None
    text = payload.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class ClusterCreate(BaseModel):
    """Request to create a new cluster."""
    terraform_config: Union[Dict[str, Any], str] = Field(
        ...,
        description="Terraform JSON configuration, as an object or a serialized string"
    )
    timeout: str = Field(default="", max_length=32, description="Duration, e.g. '30m'; empty uses the default")
    project: str = Field(default="", max_length=128)
    region: str = Field(default="", max_length=64)
    name: Optional[str] = Field(None, max_length=128)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "terraform_config": {
                        "resource": {"google_container_cluster": {"main": {"name": "ci-1"}}},
                        "output": {"endpoint": {"value": "${google_container_cluster.main.endpoint}"}},
                    },
                    "timeout": "2h",
                    "project": "my-project",
                    "region": "us-central1",
                }
            ]
        }
    }

    def config_bytes(self) -> bytes:
        if isinstance(self.terraform_config, str):
            return self.terraform_config.encode("utf-8")
        if not self.terraform_config:
            return b""
        return json.dumps(self.terraform_config).encode("utf-8")


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class ClusterResponse(BaseModel):
    """Cluster response."""
    id: str
    name: str
    status: ClusterStatus
    message: Optional[str] = None
    project: str
    region: str
    timeout: str
    timeout_seconds: float
    expires_at: datetime
    terraform_config: Any = None
    terraform_state: Any = None
    outputs: Any = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_cluster(cls, cluster: Cluster) -> "ClusterResponse":
        return cls(
            id=cluster.id,
            name=cluster.name,
            status=cluster.status,
            message=cluster.message,
            project=cluster.project,
            region=cluster.region,
            timeout=cluster.timeout,
            timeout_seconds=cluster.timeout_seconds,
            expires_at=cluster.expires_at,
            terraform_config=render_bytes(cluster.terraform_config),
            terraform_state=render_bytes(cluster.terraform_state),
            outputs=render_bytes(cluster.outputs),
            created_at=cluster.created_at,
            updated_at=cluster.updated_at,
        )


class ClusterListResponse(BaseModel):
    """List of clusters response."""
    clusters: List[ClusterResponse]
    total: int


class ErrorResponse(BaseModel):
    """Error response."""
    detail: str
