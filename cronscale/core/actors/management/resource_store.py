"""
ResourceStore actor.

Owns every CronHPA object, hands out snapshots and accepts status writes under
optimistic concurrency: each write must carry the ``resourceVersion`` it was
read at, and every accepted change bumps a store-wide version counter.
"""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import ray

from .config import ActorConfig
from cronscale.core.entities.resource import ScalableResource
from cronscale.core.entities.types import ResourceKey, WatchEventType
from cronscale.core.errors import ValidationError
from cronscale.core.scheduling.clock import SystemClock
from cronscale.core.utils import configure_runtime_logging

logger = logging.getLogger(__name__)

_MAX_EVENTS = 1024


@ray.remote
class ResourceStoreActor:
    """Versioned in-memory store of CronHPA resources with optional JSON persistence."""

    def __init__(self, config: ActorConfig):
        configure_runtime_logging()
        self.config = config
        self.resources: Dict[ResourceKey, ScalableResource] = {}
        self.resource_version = 0
        self.events: List[dict] = []
        self._clock = SystemClock()
        self._state_path = Path(config.state_path).expanduser() if config.state_path else None
        logger.info("ResourceStoreActor[%s] initialised", config.name)
        self._load_state()

    # ------------------------------------------------------------------
    # Persistence helpers

    def _state_file(self) -> Optional[Path]:
        if self._state_path is None:
            return None
        self._state_path.mkdir(parents=True, exist_ok=True)
        return self._state_path / f"{self.config.name}-resources.json"

    def _save_state(self) -> Optional[str]:
        """Write the state file; returns an error message instead of raising."""
        state_file = self._state_file()
        if state_file is None:
            return None
        payload = {
            "resource_version": self.resource_version,
            "resources": [resource.to_dict() for resource in self.resources.values()],
        }
        tmp_file = state_file.with_suffix(".json.tmp")
        try:
            tmp_file.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp_file.replace(state_file)
        except OSError as exc:
            logger.exception("Resource store persistence failed")
            return str(exc)
        return None

    def _load_state(self) -> None:
        state_file = self._state_file()
        if state_file is None or not state_file.exists():
            return
        try:
            data = json.loads(state_file.read_text(encoding="utf-8"))
        except (OSError, ValueError):  # pragma: no cover
            logger.exception("Resource store restore failed: unreadable state file")
            return

        try:
            restored: Dict[ResourceKey, ScalableResource] = {}
            for payload in data.get("resources", []):
                resource = ScalableResource.from_dict(payload)
                restored[resource.key] = resource
            self.resources = restored
            self.resource_version = int(data.get("resource_version", 0) or 0)
            for resource in restored.values():
                self.resource_version = max(self.resource_version, resource.metadata.resource_version)
            logger.info("Resource store restored from %s: %d resources", state_file, len(self.resources))
        except (ValidationError, TypeError, ValueError):  # pragma: no cover
            logger.exception("Resource store restore failed: malformed state")
            self.resources = {}
            self.resource_version = 0

    # ------------------------------------------------------------------
    # Event helpers

    def _next_version(self) -> int:
        self.resource_version += 1
        return self.resource_version

    def _emit(self, event_type: WatchEventType, key: ResourceKey, *, status_only: bool = False) -> dict:
        event = {
            "type": event_type.value,
            "namespace": key.namespace,
            "name": key.name,
            "resource_version": self.resource_version,
            "status_only": status_only,
        }
        self.events.append(event)
        if len(self.events) > _MAX_EVENTS:
            self.events = self.events[-_MAX_EVENTS:]
        return event

    def drain_events(self) -> List[dict]:
        """Return and clear pending watch events."""
        events, self.events = self.events, []
        return events

    # ------------------------------------------------------------------
    # Resource lifecycle operations

    def apply(self, manifest: dict) -> dict:
        """Create a resource or replace the spec of an existing one."""
        try:
            incoming = ScalableResource.from_dict(manifest).validate()
        except ValidationError as exc:
            return {"success": False, "reason": "invalid", "error": str(exc)}

        key = incoming.key
        existing = self.resources.get(key)
        previous = existing.copy() if existing is not None else None

        if existing is None:
            incoming.metadata.uid = incoming.metadata.uid or uuid.uuid4().hex
            incoming.metadata.creation_timestamp = (
                incoming.metadata.creation_timestamp or self._clock.now()
            )
            incoming.metadata.generation = 1
            incoming.metadata.resource_version = self._next_version()
            self.resources[key] = incoming
            event_type = WatchEventType.ADDED
            stored = incoming
        else:
            if existing.spec == incoming.spec and existing.metadata.labels == incoming.metadata.labels:
                return {"success": True, "changed": False, "resource": existing.to_dict()}
            existing.spec = incoming.spec
            existing.metadata.labels = incoming.metadata.labels
            existing.metadata.generation += 1
            existing.metadata.resource_version = self._next_version()
            event_type = WatchEventType.MODIFIED
            stored = existing

        error = self._save_state()
        if error is not None:
            if previous is None:
                self.resources.pop(key, None)
            else:
                self.resources[key] = previous
            return {"success": False, "reason": "persist_failed", "error": error}

        self._emit(event_type, key)
        logger.info(
            "CronHPA %s %s (generation=%d, resourceVersion=%d)",
            key,
            "created" if event_type is WatchEventType.ADDED else "updated",
            stored.metadata.generation,
            stored.metadata.resource_version,
        )
        return {"success": True, "changed": True, "resource": stored.to_dict()}

    def _lookup(self, namespace: str, name: str) -> Tuple[ResourceKey, Optional[ScalableResource]]:
        key = ResourceKey(namespace=namespace, name=name)
        return key, self.resources.get(key)

    def get(self, namespace: str, name: str) -> dict:
        key, resource = self._lookup(namespace, name)
        if resource is None:
            return {"success": False, "reason": "not_found", "error": f"Resource '{key}' not found"}
        return {"success": True, "resource": resource.to_dict()}

    def list_resources(self, namespace: Optional[str] = None) -> List[dict]:
        return [
            resource.to_dict()
            for key, resource in sorted(self.resources.items())
            if namespace is None or key.namespace == namespace
        ]

    def update_status(self, payload: dict) -> dict:
        """Replace the status of a resource if its resourceVersion is current."""
        try:
            incoming = ScalableResource.from_dict(payload)
        except ValidationError as exc:
            return {"success": False, "reason": "invalid", "error": str(exc)}

        key, existing = self._lookup(incoming.metadata.namespace, incoming.metadata.name)
        if existing is None:
            return {"success": False, "reason": "not_found", "error": f"Resource '{key}' not found"}

        expected = incoming.metadata.resource_version
        actual = existing.metadata.resource_version
        if expected != actual:
            logger.info("Status write for %s rejected: resourceVersion %s != %s", key, expected, actual)
            return {
                "success": False,
                "reason": "conflict",
                "error": f"Resource '{key}' has been modified",
                "expected": expected,
                "actual": actual,
            }

        previous_status = existing.status
        previous_version = existing.metadata.resource_version
        existing.status = incoming.status
        existing.metadata.resource_version = self._next_version()

        error = self._save_state()
        if error is not None:
            existing.status = previous_status
            existing.metadata.resource_version = previous_version
            return {"success": False, "reason": "persist_failed", "error": error}

        self._emit(WatchEventType.MODIFIED, key, status_only=True)
        return {"success": True, "resource": existing.to_dict()}

    def delete(self, namespace: str, name: str) -> dict:
        key, existing = self._lookup(namespace, name)
        if existing is None:
            return {"success": False, "reason": "not_found", "error": f"Resource '{key}' not found"}
        removed = self.resources.pop(key)
        self._next_version()
        error = self._save_state()
        if error is not None:
            self.resources[key] = removed
            return {"success": False, "reason": "persist_failed", "error": error}
        self._emit(WatchEventType.DELETED, key)
        logger.info("CronHPA %s deleted", key)
        return {"success": True, "resource": removed.to_dict()}

    def snapshot_state(self) -> dict:
        """Expose current state for inspection/testing."""
        return {
            "resource_version": self.resource_version,
            "resources": self.list_resources(),
        }
