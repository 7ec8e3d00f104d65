# ============================================================================
# CLUSTER MODEL TESTS
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Tests - Status vocabulary, Cluster model, field updates, durations
# PURPOSE: Verify the lifecycle table and model helpers without any I/O
# CREATED: 12 OCT 2026
# ============================================================================
"""
Cluster Model Tests

Run with:
    pytest tests/test_cluster_models.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import TypeAdapter, ValidationError

from core.contracts import (
    CLUSTER_STATUS_TRANSITIONS,
    STABLE_STATUSES,
    ClusterStatus,
    allowed_sources,
)
from core.models import (
    Cluster,
    ClusterField,
    ClusterFieldUpdate,
    MessageUpdate,
    OutputsUpdate,
    RequestContext,
    StatusUpdate,
    TerraformConfigUpdate,
    TerraformStateUpdate,
    parse_duration,
)


# ============================================================================
# HELPERS
# ============================================================================

T0 = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def _make_cluster(status=ClusterStatus.PROVISION_SUCCESS, timeout_seconds=600.0, created_at=T0):
    return Cluster(
        id="c-1",
        name="cluster-c1",
        status=status,
        project="proj",
        region="us-central1",
        timeout="10m",
        timeout_seconds=timeout_seconds,
        terraform_config=b"{}",
        created_at=created_at,
        updated_at=created_at,
    )


# ============================================================================
# STATUS
# ============================================================================

class TestClusterStatus:

    def test_only_destroyed_is_terminal(self):
        terminal = [s for s in ClusterStatus if s.is_terminal()]
        assert terminal == [ClusterStatus.DESTROYED]
        assert CLUSTER_STATUS_TRANSITIONS[ClusterStatus.DESTROYED] == set()

    def test_lease_statuses(self):
        assert ClusterStatus.PROVISIONING.holds_lease()
        assert ClusterStatus.DESTROYING.holds_lease()
        assert not ClusterStatus.REQUESTED.holds_lease()
        assert not ClusterStatus.DESTROY_FAILED.holds_lease()

    def test_stable_statuses(self):
        assert STABLE_STATUSES == {
            ClusterStatus.PROVISION_SUCCESS,
            ClusterStatus.PROVISION_FAILED,
            ClusterStatus.DESTROY_FAILED,
        }
        assert all(s.is_stable() for s in STABLE_STATUSES)
        assert not ClusterStatus.DESTROYED.is_stable()

    def test_transient_and_failed_partition(self):
        transient = {s for s in ClusterStatus if s.is_transient()}
        assert transient == {
            ClusterStatus.REQUESTED,
            ClusterStatus.PROVISIONING,
            ClusterStatus.DESTROYING,
        }
        assert {s for s in ClusterStatus if s.is_failed()} == {
            ClusterStatus.PROVISION_FAILED,
            ClusterStatus.DESTROY_FAILED,
        }
        assert not transient & STABLE_STATUSES

    def test_every_status_has_a_transition_entry(self):
        assert set(CLUSTER_STATUS_TRANSITIONS) == set(ClusterStatus)

    def test_allowed_sources_for_destroying(self):
        assert allowed_sources(ClusterStatus.DESTROYING) == {
            ClusterStatus.REQUESTED,
            ClusterStatus.PROVISION_SUCCESS,
            ClusterStatus.PROVISION_FAILED,
            ClusterStatus.DESTROY_FAILED,
            ClusterStatus.DESTROYING,
        }

    def test_allowed_sources_for_provision_success(self):
        assert allowed_sources(ClusterStatus.PROVISION_SUCCESS) == {
            ClusterStatus.PROVISIONING,
            ClusterStatus.PROVISION_SUCCESS,
        }


# ============================================================================
# CLUSTER MODEL
# ============================================================================

class TestCluster:

    def test_defaults(self):
        cluster = Cluster(
            id="c-2",
            name="n",
            project="p",
            region="r",
            timeout="1h",
            timeout_seconds=3600,
            terraform_config=b"{}",
        )
        assert cluster.status == ClusterStatus.REQUESTED
        assert cluster.message is None
        assert cluster.terraform_state is None
        assert cluster.outputs is None
        assert cluster.created_at.tzinfo is not None

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            _make_cluster(timeout_seconds=0)

    def test_expires_at(self):
        assert _make_cluster().expires_at == T0 + timedelta(minutes=10)

    def test_is_expired_only_after_budget(self):
        cluster = _make_cluster()
        assert not cluster.is_expired(T0 + timedelta(minutes=10))
        assert cluster.is_expired(T0 + timedelta(minutes=10, seconds=1))

    @pytest.mark.parametrize("status", [
        ClusterStatus.REQUESTED,
        ClusterStatus.PROVISIONING,
        ClusterStatus.DESTROYING,
        ClusterStatus.DESTROYED,
    ])
    def test_non_stable_statuses_never_expire(self, status):
        cluster = _make_cluster(status=status)
        assert not cluster.is_expired(T0 + timedelta(days=30))

    def test_is_orphaned_measures_from_last_write(self):
        cluster = _make_cluster(status=ClusterStatus.PROVISIONING)
        cluster.updated_at = T0 + timedelta(minutes=5)
        assert not cluster.is_orphaned(T0 + timedelta(minutes=15))
        assert cluster.is_orphaned(T0 + timedelta(minutes=15, seconds=1))

    @pytest.mark.parametrize("status", [
        ClusterStatus.PROVISION_SUCCESS,
        ClusterStatus.PROVISION_FAILED,
        ClusterStatus.DESTROY_FAILED,
        ClusterStatus.DESTROYED,
    ])
    def test_settled_clusters_are_never_orphaned(self, status):
        assert not _make_cluster(status=status).is_orphaned(T0 + timedelta(days=30))

    def test_serialization_includes_is_terminal(self):
        data = _make_cluster(status=ClusterStatus.DESTROYED).model_dump()
        assert data["is_terminal"] is True


# ============================================================================
# FIELD UPDATES
# ============================================================================

class TestFieldUpdates:

    def test_discriminated_union_parses_each_variant(self):
        adapter = TypeAdapter(ClusterFieldUpdate)
        assert isinstance(adapter.validate_python({"field": "status", "value": "destroying"}), StatusUpdate)
        assert isinstance(adapter.validate_python({"field": "message", "value": "ok"}), MessageUpdate)
        assert isinstance(adapter.validate_python({"field": "outputs", "value": b"{}"}), OutputsUpdate)
        assert isinstance(
            adapter.validate_python({"field": "terraform_state", "value": b"{}"}),
            TerraformStateUpdate,
        )

    def test_every_updatable_field_has_a_variant(self):
        adapter = TypeAdapter(ClusterFieldUpdate)
        samples = {
            ClusterField.STATUS: "destroyed",
            ClusterField.MESSAGE: "m",
            ClusterField.OUTPUTS: b"{}",
            ClusterField.TERRAFORM_CONFIG: b"{}",
            ClusterField.TERRAFORM_STATE: b"{}",
        }
        for field, value in samples.items():
            update = adapter.validate_python({"field": field.value, "value": value})
            assert update.field == field.value
        assert isinstance(
            adapter.validate_python({"field": "terraform_config", "value": b"{}"}),
            TerraformConfigUpdate,
        )

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            TypeAdapter(ClusterFieldUpdate).validate_python({"field": "project", "value": "x"})

    def test_status_value_is_typed(self):
        with pytest.raises(ValidationError):
            StatusUpdate(value="not-a-status")

    def test_updates_are_frozen(self):
        update = MessageUpdate(value="hello")
        with pytest.raises(ValidationError):
            update.value = "changed"


# ============================================================================
# DURATIONS AND REQUEST CONTEXT
# ============================================================================

class TestParseDuration:

    @pytest.mark.parametrize("text,seconds", [
        ("90s", 90.0),
        ("10m", 600.0),
        ("1h30m", 5400.0),
        ("250ms", 0.25),
        ("1.5h", 5400.0),
        ("0s", 0.0),
    ])
    def test_valid(self, text, seconds):
        assert parse_duration(text) == pytest.approx(seconds)

    @pytest.mark.parametrize("text", ["", "10", "ten minutes", "5x", "m10", "10m foo"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_duration(text)


class TestRequestContext:

    def test_request_id_generated(self):
        a, b = RequestContext(), RequestContext()
        assert a.request_id and b.request_id
        assert a.request_id != b.request_id

    def test_timeout_falls_back_to_default(self):
        assert RequestContext().timeout_seconds("1h") == 3600.0
        assert RequestContext(timeout="5m").timeout_seconds("1h") == 300.0

    def test_zero_timeout_rejected(self):
        with pytest.raises(ValueError, match="positive"):
            RequestContext(timeout="0s").timeout_seconds("1h")
