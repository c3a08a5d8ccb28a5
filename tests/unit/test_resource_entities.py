"""
Unit tests for CronHPA entity parsing, validation and wire format.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from cronscale.core.entities.resource import (
    ScalableResource,
    ScalableResourceStatus,
    format_timestamp,
    parse_timestamp,
)
from cronscale.core.entities.types import ReconcileResult, ResourceKey
from cronscale.core.errors import ValidationError


def _manifest(**overrides):
    manifest = {
        "apiVersion": "autoscal.aiops.org/v1",
        "kind": "CronHPA",
        "metadata": {"name": "web-hours", "namespace": "prod"},
        "spec": {
            "scaleTarget": {"apiVersion": "apps/v1", "kind": "Deployment", "name": "web"},
            "jobs": [
                {"name": "scale-up", "schedule": "0 9 * * 1-5", "size": 10},
                {"name": "scale-down", "schedule": "0 18 * * 1-5", "size": 2},
            ],
        },
    }
    manifest.update(overrides)
    return manifest


def test_manifest_round_trip():
    resource = ScalableResource.from_dict(_manifest()).validate()

    assert resource.key == ResourceKey("prod", "web-hours")
    assert resource.spec.scale_target.name == "web"
    assert [job.name for job in resource.spec.jobs] == ["scale-up", "scale-down"]

    payload = resource.to_dict()
    assert payload["kind"] == "CronHPA"
    assert payload["spec"] == _manifest()["spec"]
    assert payload["status"] == {"currentReplicas": 0, "lastScaleTime": None, "lastRuntimes": {}}


def test_namespace_defaults_when_missing():
    manifest = _manifest(metadata={"name": "web-hours"})
    assert ScalableResource.from_dict(manifest).key == ResourceKey("default", "web-hours")


def test_status_wire_format_uses_rfc3339():
    when = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
    status = ScalableResourceStatus(current_replicas=10, last_scale_time=when, last_runtimes={"scale-up": when})

    assert status.to_dict() == {
        "currentReplicas": 10,
        "lastScaleTime": "2024-01-01T09:00:00Z",
        "lastRuntimes": {"scale-up": "2024-01-01T09:00:00Z"},
    }
    assert ScalableResourceStatus.from_dict(status.to_dict()) == status


def test_status_accepts_singular_runtime_key():
    status = ScalableResourceStatus.from_dict({"lastRuntime": {"scale-up": "2024-01-01T09:00:00Z"}})
    assert status.last_runtimes == {"scale-up": datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)}


def test_timestamps_normalise_to_utc():
    offset = timezone(timedelta(hours=8))
    assert format_timestamp(datetime(2024, 1, 1, 17, 0, tzinfo=offset)) == "2024-01-01T09:00:00Z"
    assert parse_timestamp("2024-01-01T09:00:00") == datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
    assert parse_timestamp(None) is None
    with pytest.raises(ValidationError):
        parse_timestamp("yesterday")


def test_resource_version_serialised_as_string():
    manifest = _manifest()
    manifest["metadata"]["resourceVersion"] = "42"

    resource = ScalableResource.from_dict(manifest)

    assert resource.metadata.resource_version == 42
    assert resource.to_dict()["metadata"]["resourceVersion"] == "42"


def test_copy_is_independent():
    resource = ScalableResource.from_dict(_manifest())
    clone = resource.copy()
    clone.status.last_runtimes["scale-up"] = datetime(2024, 1, 1, tzinfo=timezone.utc)
    clone.metadata.resource_version = 7

    assert resource.status.last_runtimes == {}
    assert resource.metadata.resource_version == 0


@pytest.mark.parametrize(
    ("jobs", "fragment"),
    [
        ([{"name": "a", "schedule": "* * * * *", "size": 1}, {"name": "a", "schedule": "0 * * * *", "size": 2}],
         "duplicate job name"),
        ([{"name": "a", "schedule": "* * * * *", "size": -1}], "non-negative"),
        ([{"name": "", "schedule": "* * * * *", "size": 1}], "name is required"),
        ([{"name": "a", "schedule": "", "size": 1}], "no schedule"),
    ],
)
def test_admission_rejects_bad_jobs(jobs, fragment):
    manifest = _manifest()
    manifest["spec"]["jobs"] = jobs

    with pytest.raises(ValidationError) as excinfo:
        ScalableResource.from_dict(manifest).validate()
    assert fragment in str(excinfo.value)


def test_admission_does_not_parse_schedules():
    manifest = _manifest()
    manifest["spec"]["jobs"] = [{"name": "bad", "schedule": "99 * * *", "size": 1}]

    assert ScalableResource.from_dict(manifest).validate().spec.jobs[0].schedule == "99 * * *"


@pytest.mark.parametrize("size", [True, "ten", None])
def test_job_size_must_be_integer(size):
    manifest = _manifest()
    manifest["spec"]["jobs"] = [{"name": "a", "schedule": "* * * * *", "size": size}]

    with pytest.raises(ValidationError):
        ScalableResource.from_dict(manifest)


@pytest.mark.parametrize(
    "status",
    [{"currentReplicas": "many"}, {"currentReplicas": [3]}, {"currentReplicas": {"n": 1}}],
)
def test_status_replicas_must_be_integer(status):
    with pytest.raises(ValidationError, match="currentReplicas"):
        ScalableResourceStatus.from_dict(status)


def test_metadata_generation_must_be_integer():
    manifest = _manifest()
    manifest["metadata"]["generation"] = "first"

    with pytest.raises(ValidationError, match="generation"):
        ScalableResource.from_dict(manifest)


def test_missing_scale_target_name():
    manifest = _manifest()
    manifest["spec"]["scaleTarget"] = {"kind": "Deployment"}

    with pytest.raises(ValidationError):
        ScalableResource.from_dict(manifest).validate()


def test_other_kinds_rejected():
    with pytest.raises(ValidationError):
        ScalableResource.from_dict(_manifest(kind="HorizontalPodAutoscaler"))


def test_resource_key_parse():
    assert ResourceKey.parse("prod/web") == ResourceKey("prod", "web")
    assert ResourceKey.parse("web") == ResourceKey("default", "web")
    assert str(ResourceKey("prod", "web")) == "prod/web"


def test_reconcile_result_to_dict():
    result = ReconcileResult(
        key=ResourceKey("prod", "web"),
        requeue_after=timedelta(minutes=2),
        status=ScalableResourceStatus(current_replicas=3),
        fired=["scale-up"],
        updated=True,
    )

    payload = result.to_dict()

    assert payload["key"] == "prod/web"
    assert payload["requeue_after"] == 120.0
    assert payload["status"]["currentReplicas"] == 3
    assert payload["fired"] == ["scale-up"]
