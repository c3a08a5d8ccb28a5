"""
Adapters exposing the store and workload actors through the reconciler interfaces.

Actor methods answer with ``{"success": bool, "reason": ..., "error": ...}``
payloads; the adapters turn failures into the cronscale error taxonomy.
"""

from __future__ import annotations

from typing import Any, Optional

import ray
from ray.exceptions import RayError

from cronscale.core.controllers.interfaces import Actuator, ResourceStore
from cronscale.core.entities.resource import ScalableResource, ScaleTarget
from cronscale.core.entities.types import ResourceKey
from cronscale.core.errors import (
    ActuationError,
    FetchError,
    PersistConflictError,
    ResourceNotFoundError,
    TargetNotFoundError,
)


def _call(method: Any, *args: Any, timeout: Optional[float] = None) -> Any:
    return ray.get(method.remote(*args), timeout=timeout)


class ActorResourceStore(ResourceStore):
    """ResourceStore backed by a ResourceStoreActor handle."""

    def __init__(self, handle: ray.actor.ActorHandle, *, timeout: Optional[float] = 30.0):
        self.handle = handle
        self.timeout = timeout

    def get(self, key: ResourceKey) -> ScalableResource:
        try:
            response = _call(self.handle.get, key.namespace, key.name, timeout=self.timeout)
        except RayError as exc:
            raise FetchError(f"Failed to fetch {key}: {exc}") from exc
        if not response.get("success"):
            if response.get("reason") == "not_found":
                raise ResourceNotFoundError(key.namespace, key.name)
            raise FetchError(response.get("error") or f"Failed to fetch {key}")
        return ScalableResource.from_dict(response["resource"])

    def update_status(self, resource: ScalableResource) -> ScalableResource:
        key = resource.key
        try:
            response = _call(self.handle.update_status, resource.to_dict(), timeout=self.timeout)
        except RayError as exc:
            raise FetchError(f"Failed to update status of {key}: {exc}") from exc
        if not response.get("success"):
            reason = response.get("reason")
            if reason == "conflict":
                raise PersistConflictError(
                    key.namespace, key.name, response.get("expected"), response.get("actual")
                )
            if reason == "not_found":
                raise ResourceNotFoundError(key.namespace, key.name)
            raise FetchError(response.get("error") or f"Failed to update status of {key}")
        return ScalableResource.from_dict(response["resource"])


class ActorActuator(Actuator):
    """Actuator backed by a WorkloadManagerActor handle."""

    def __init__(self, handle: ray.actor.ActorHandle, *, timeout: Optional[float] = 60.0):
        self.handle = handle
        self.timeout = timeout

    def set_replicas(self, target: ScaleTarget, namespace: str, size: int) -> None:
        try:
            response = _call(
                self.handle.set_replicas, namespace, target.kind, target.name, size, timeout=self.timeout
            )
        except RayError as exc:
            raise ActuationError(f"Failed to scale {target.kind} {namespace}/{target.name}: {exc}") from exc
        if not response.get("success"):
            message = response.get("error") or f"Failed to scale {target.kind} {namespace}/{target.name}"
            if response.get("reason") == "not_found":
                raise TargetNotFoundError(message)
            raise ActuationError(message)


__all__ = ["ActorActuator", "ActorResourceStore"]
