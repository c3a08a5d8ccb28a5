"""
End-to-end reconciliation through the RayCronScaler façade.
"""

from __future__ import annotations

import uuid

from cronscale.config.policy import FirstRunPolicy
from cronscale.core.config import ControllerConfig
from cronscale.core.controllers.cron_scaler import RayCronScaler

# Fires once a year, so a never-run job is due on its first pass under the
# catch-up policy and never due again during a test.
YEARLY = "0 0 1 1 *"


def _manifest(name="new-year", target="web", schedule=YEARLY, size=3):
    return {
        "apiVersion": "autoscal.aiops.org/v1",
        "kind": "CronHPA",
        "metadata": {"name": name, "namespace": "default"},
        "spec": {
            "scaleTarget": {"apiVersion": "apps/v1", "kind": "Deployment", "name": target},
            "jobs": [{"name": "celebrate", "schedule": schedule, "size": size}],
        },
    }


def test_reconcile_scales_workload(scaler):
    assert scaler.create_workload("web", replicas=1)["success"] is True
    assert scaler.apply(_manifest())["success"] is True

    outcome = scaler.reconcile("new-year")

    assert outcome["success"] is True, outcome
    result = outcome["result"]
    assert result["fired"] == ["celebrate"]
    assert result["updated"] is True
    assert result["requeue_after"] > 0
    assert scaler.get_workload("web")["workload"]["replicas"] == 3

    status = scaler.get_resource("new-year")["resource"]["status"]
    assert status["currentReplicas"] == 3
    assert set(status["lastRuntimes"]) == {"celebrate"}
    assert status["lastScaleTime"] == status["lastRuntimes"]["celebrate"]


def test_repeat_pass_is_noop(scaler):
    scaler.create_workload("web", replicas=1)
    scaler.apply(_manifest())
    scaler.reconcile("new-year")
    before = scaler.get_resource("new-year")["resource"]

    outcome = scaler.reconcile("new-year")

    assert outcome["result"]["fired"] == []
    assert outcome["result"]["updated"] is False
    after = scaler.get_resource("new-year")["resource"]
    assert after["metadata"]["resourceVersion"] == before["metadata"]["resourceVersion"]
    assert scaler.get_workload("web")["workload"]["replicas"] == 3


def test_missing_target_leaves_status_unchanged(scaler):
    scaler.apply(_manifest(target="ghost"))

    outcome = scaler.reconcile("new-year")

    assert outcome["success"] is False
    assert "not found" in outcome["error"]
    status = scaler.get_resource("new-year")["resource"]["status"]
    assert status["lastRuntimes"] == {}
    assert scaler.stats()["failures"] == 1
    assert "default/new-year" in scaler.pending()


def test_malformed_schedule_is_reported_per_pass(scaler):
    scaler.create_workload("web", replicas=1)
    assert scaler.apply(_manifest(schedule="99 * * *"))["success"] is True

    outcome = scaler.reconcile("new-year")

    assert outcome["success"] is False
    assert "invalid schedule" in outcome["error"]
    assert scaler.get_workload("web")["workload"]["replicas"] == 1


def test_deleted_resource_is_dropped(scaler):
    scaler.apply(_manifest())
    assert scaler.delete("new-year")["success"] is True

    outcome = scaler.reconcile("new-year")

    assert outcome["success"] is True
    assert outcome["result"]["status"] is None
    assert outcome["result"]["requeue_after"] is None
    assert scaler.list_resources()["resources"] == []


def test_run_pending_processes_applied_resources(scaler):
    scaler.create_workload("web", replicas=0)
    scaler.create_workload("api", replicas=0)
    scaler.apply(_manifest(name="web-year", target="web", size=2))
    scaler.apply(_manifest(name="api-year", target="api", size=4))

    outcome = scaler.run_pending()

    assert outcome["success"] is True
    fired = {result["key"]: result["fired"] for result in outcome["results"]}
    assert fired == {"default/web-year": ["celebrate"], "default/api-year": ["celebrate"]}
    replicas = {w["name"]: w["replicas"] for w in scaler.list_workloads()["workloads"]}
    assert replicas == {"api": 4, "web": 2}
    assert set(scaler.pending()) == {"default/web-year", "default/api-year"}


def test_updated_spec_applies_new_size_on_next_occurrence(scaler):
    scaler.create_workload("web", replicas=1)
    scaler.apply(_manifest(size=3))
    scaler.reconcile("new-year")

    edited = _manifest(size=5)
    response = scaler.apply(edited)
    assert response["changed"] is True

    outcome = scaler.reconcile("new-year")
    assert outcome["result"]["fired"] == []
    assert scaler.get_workload("web")["workload"]["replicas"] == 3


def test_restart_resumes_from_persisted_runtimes(ray_runtime, tmp_path):
    name = f"test-cronscale-{uuid.uuid4().hex[:8]}"
    config = ControllerConfig(first_run_policy=FirstRunPolicy.CATCH_UP)

    first = RayCronScaler(name=name, state_path=str(tmp_path), controller_config=config)
    try:
        first.create_workload("web", replicas=1)
        first.apply(_manifest())
        assert first.reconcile("new-year")["result"]["fired"] == ["celebrate"]
    finally:
        first.shutdown()

    second = RayCronScaler(name=name, state_path=str(tmp_path), controller_config=config)
    try:
        second.create_workload("web", replicas=3)
        restored = second.get_resource("new-year")["resource"]
        assert set(restored["status"]["lastRuntimes"]) == {"celebrate"}
        assert "default/new-year" in second.pending()

        outcome = second.reconcile("new-year")
        assert outcome["result"]["fired"] == []
        assert second.get_workload("web")["workload"]["replicas"] == 3
    finally:
        second.shutdown()


def test_wait_policy_does_not_fire_on_creation(ray_runtime):
    config = ControllerConfig(first_run_policy=FirstRunPolicy.WAIT)
    scaler = RayCronScaler(name=f"test-cronscale-{uuid.uuid4().hex[:8]}", controller_config=config)
    try:
        scaler.create_workload("web", replicas=1)
        scaler.apply(_manifest())

        outcome = scaler.reconcile("new-year")

        assert outcome["result"]["fired"] == []
        assert scaler.get_workload("web")["workload"]["replicas"] == 1
    finally:
        scaler.shutdown()
