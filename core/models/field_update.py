# ============================================================================
# CLUSTER FIELD UPDATES
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core model - Typed single-field updates
# PURPOSE: The only way a workflow mutates a stored cluster
# CREATED: 07 OCT 2026
# EXPORTS: ClusterField, StatusUpdate, MessageUpdate, OutputsUpdate,
#          TerraformConfigUpdate, TerraformStateUpdate, ClusterFieldUpdate
# DEPENDENCIES: pydantic
# ============================================================================
"""
Cluster Field Updates

Stores apply one field per call, never a full-record overwrite, so two
writes from the same workflow (e.g. message then outputs) cannot clobber
each other. Each variant carries a concretely typed value; the ``field``
literal doubles as the column name and the union discriminator.

Usage:
    await store.update_cluster_field(
        cluster_id,
        StatusUpdate(value=ClusterStatus.PROVISION_SUCCESS),
        request_id,
    )
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from core.contracts import ClusterStatus


class ClusterField(str, Enum):
    """Updatable cluster columns."""
    STATUS = "status"
    MESSAGE = "message"
    OUTPUTS = "outputs"
    TERRAFORM_CONFIG = "terraform_config"
    TERRAFORM_STATE = "terraform_state"


class StatusUpdate(BaseModel):
    field: Literal["status"] = "status"
    value: ClusterStatus

    model_config = {"frozen": True}


class MessageUpdate(BaseModel):
    field: Literal["message"] = "message"
    value: str = Field(..., max_length=2000)

    model_config = {"frozen": True}


class OutputsUpdate(BaseModel):
    field: Literal["outputs"] = "outputs"
    value: bytes

    model_config = {"frozen": True}


class TerraformConfigUpdate(BaseModel):
    field: Literal["terraform_config"] = "terraform_config"
    value: bytes

    model_config = {"frozen": True}


class TerraformStateUpdate(BaseModel):
    field: Literal["terraform_state"] = "terraform_state"
    value: bytes

    model_config = {"frozen": True}


ClusterFieldUpdate = Annotated[
    Union[
        StatusUpdate,
        MessageUpdate,
        OutputsUpdate,
        TerraformConfigUpdate,
        TerraformStateUpdate,
    ],
    Field(discriminator="field"),
]


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ClusterField",
    "StatusUpdate",
    "MessageUpdate",
    "OutputsUpdate",
    "TerraformConfigUpdate",
    "TerraformStateUpdate",
    "ClusterFieldUpdate",
]
