"""
Shared pytest fixtures.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import pytest
import ray

from cronscale.config.policy import FirstRunPolicy
from cronscale.core.config import ControllerConfig
from cronscale.core.controllers.cron_scaler import RayCronScaler
from cronscale.core.controllers.interfaces import Actuator, ResourceStore
from cronscale.core.entities.resource import (
    JobSpec,
    ObjectMeta,
    ScalableResource,
    ScalableResourceSpec,
    ScalableResourceStatus,
    ScaleTarget,
)
from cronscale.core.entities.types import ResourceKey
from cronscale.core.errors import ActuationError, PersistConflictError, ResourceNotFoundError
from cronscale.core.scheduling import ManualClock

logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s", force=True)
logging.getLogger("cronscale").setLevel(logging.DEBUG)

# Monday
MONDAY_0900 = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


class InMemoryStore(ResourceStore):
    """ResourceStore keeping copies in a dict, with resourceVersion checks."""

    def __init__(self):
        self.resources: Dict[ResourceKey, ScalableResource] = {}
        self.version = 0
        self.writes: List[ScalableResource] = []
        self.conflict_on_write = False

    def add(self, resource: ScalableResource) -> ScalableResource:
        self.version += 1
        stored = resource.copy()
        stored.metadata.resource_version = self.version
        self.resources[stored.key] = stored
        return stored.copy()

    def get(self, key: ResourceKey) -> ScalableResource:
        resource = self.resources.get(key)
        if resource is None:
            raise ResourceNotFoundError(key.namespace, key.name)
        return resource.copy()

    def update_status(self, resource: ScalableResource) -> ScalableResource:
        key = resource.key
        current = self.resources.get(key)
        if current is None:
            raise ResourceNotFoundError(key.namespace, key.name)
        expected = resource.metadata.resource_version
        if self.conflict_on_write or expected != current.metadata.resource_version:
            raise PersistConflictError(key.namespace, key.name, expected, current.metadata.resource_version)
        self.version += 1
        current.status = resource.status.copy()
        current.metadata.resource_version = self.version
        self.writes.append(current.copy())
        return current.copy()


class RecordingActuator(Actuator):
    """Actuator remembering every call; optionally failing for chosen sizes."""

    def __init__(self):
        self.calls: List[Tuple[str, str, str, int]] = []
        self.fail_sizes: set = set()

    def set_replicas(self, target: ScaleTarget, namespace: str, size: int) -> None:
        if size in self.fail_sizes:
            raise ActuationError(f"Failed to scale {target.kind} {namespace}/{target.name}")
        self.calls.append((namespace, target.kind, target.name, size))


def build_resource(
    jobs: List[Tuple[str, str, int]],
    *,
    name: str = "web-hours",
    namespace: str = "default",
    target: str = "web",
    last_runtimes: Optional[Dict[str, datetime]] = None,
    created: Optional[datetime] = None,
) -> ScalableResource:
    return ScalableResource(
        metadata=ObjectMeta(name=name, namespace=namespace, creation_timestamp=created),
        spec=ScalableResourceSpec(
            scale_target=ScaleTarget(api_version="apps/v1", kind="Deployment", name=target),
            jobs=tuple(JobSpec(name=job, schedule=schedule, size=size) for job, schedule, size in jobs),
        ),
        status=ScalableResourceStatus(last_runtimes=dict(last_runtimes or {})),
    )


@pytest.fixture
def clock():
    return ManualClock(MONDAY_0900)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def actuator():
    return RecordingActuator()


@pytest.fixture
def controller_config():
    return ControllerConfig(first_run_policy=FirstRunPolicy.CATCH_UP)


@pytest.fixture
def ray_runtime():
    """Spin up a local Ray runtime for tests and mirror worker logs to the driver."""
    try:
        ray.init(
            ignore_reinit_error=True,
            local_mode=True,
            logging_level=logging.INFO,
        )
    except PermissionError as exc:
        pytest.skip(f"Ray init requires system permissions not available in this environment: {exc}")
    except Exception as exc:  # pragma: no cover - restricted sandboxes
        if "Operation not permitted" in str(exc):
            pytest.skip(f"Ray init skipped due to restricted environment: {exc}")
        raise
    try:
        yield
    finally:
        ray.shutdown()


@pytest.fixture
def scaler(ray_runtime):
    """Provide an isolated RayCronScaler instance per test."""
    name = f"test-cronscale-{uuid.uuid4().hex[:8]}"
    instance = RayCronScaler(name=name)
    try:
        yield instance
    finally:
        instance.shutdown()


@pytest.fixture
def make_resource():
    """Factory building a CronHPA resource from ``(job, schedule, size)`` tuples."""
    return build_resource
