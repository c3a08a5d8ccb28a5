"""
WorkloadManager actor.

Responsible for creating, scaling and removing scalable workloads.  Each
workload is a named group of ReplicaActor instances; scaling spawns or kills
replicas until the group has the requested size.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import ray
from ray.exceptions import RayActorError

from .config import ActorConfig
from cronscale.core.entities.types import WorkloadStatus
from cronscale.core.replica_actor import ReplicaActor
from cronscale.core.utils import configure_runtime_logging

logger = logging.getLogger(__name__)

WorkloadKey = Tuple[str, str]


@ray.remote
class WorkloadManagerActor:
    """Owns the replica actors behind every scalable workload."""

    def __init__(self, config: ActorConfig):
        configure_runtime_logging()
        self.config = config
        self.workloads: Dict[WorkloadKey, dict] = {}
        logger.debug("WorkloadManagerActor[%s] initialised", config.name)

    def _sanitize(self, record: dict, *, include_handles: bool = False) -> dict:
        public_record = {k: v for k, v in record.items() if k != "replicas"}
        public_record["replicas"] = len(record["replicas"])
        public_record["replica_names"] = [f"{record['name']}-{index}" for index, _ in record["replicas"]]
        if include_handles:
            public_record["handles"] = [handle for _, handle in record["replicas"]]
        status = public_record.get("status")
        if isinstance(status, WorkloadStatus):
            public_record["status"] = status.value
        return public_record

    def _spawn(self, record: dict, count: int) -> None:
        next_index = record["replicas"][-1][0] + 1 if record["replicas"] else 0
        for index in range(next_index, next_index + count):
            handle = ReplicaActor.options(**record["ray_options"]).remote(record["name"], index, record["labels"])
            record["replicas"].append((index, handle))

    def _terminate(self, record: dict, count: int) -> List[str]:
        """Kill the ``count`` newest replicas; returns error messages."""
        errors: List[str] = []
        for _ in range(count):
            index, handle = record["replicas"].pop()
            try:
                ray.kill(handle, no_restart=True)
            except RayActorError as exc:
                logger.warning("Replica %s-%d kill raised RayActorError: %s", record["name"], index, exc)
            except Exception as exc:
                logger.exception("Replica %s-%d kill failed", record["name"], index)
                errors.append(f"{record['name']}-{index}: {exc}")
        return errors

    # ------------------------------------------------------------------
    # Workload lifecycle operations

    def create_workload(
        self,
        namespace: str,
        name: str,
        kind: str = "Deployment",
        replicas: int = 0,
        labels: Optional[dict[str, str]] = None,
        ray_options: Optional[dict[str, Any]] = None,
    ) -> dict:
        """Register a workload and start its initial replicas."""
        key = (namespace, name)
        if key in self.workloads:
            return {"success": False, "error": f"Workload '{namespace}/{name}' already exists"}
        if replicas < 0:
            return {"success": False, "error": "Replica count must be non-negative"}

        record = {
            "namespace": namespace,
            "name": name,
            "kind": kind,
            "labels": dict(labels or {}),
            "ray_options": dict(ray_options or {}),
            "replicas": [],
            "status": WorkloadStatus.SCALING,
        }
        self._spawn(record, replicas)
        record["status"] = WorkloadStatus.READY
        self.workloads[key] = record
        logger.info("Workload %s/%s (%s) created with %d replicas", namespace, name, kind, replicas)
        return {"success": True, "workload": self._sanitize(record)}

    def get_workload(self, namespace: str, name: str, *, include_handles: bool = False) -> Optional[dict]:
        record = self.workloads.get((namespace, name))
        return self._sanitize(record, include_handles=include_handles) if record else None

    def list_workloads(self, namespace: Optional[str] = None) -> list[dict]:
        return [
            self._sanitize(record)
            for (ns, _), record in sorted(self.workloads.items(), key=lambda item: item[0])
            if namespace is None or ns == namespace
        ]

    def set_replicas(self, namespace: str, kind: str, name: str, size: int) -> dict:
        """Scale a workload to ``size`` replicas; no-op when already there."""
        record = self.workloads.get((namespace, name))
        if record is None or record["kind"] != kind:
            logger.error("%s %s/%s not found", kind, namespace, name)
            return {
                "success": False,
                "reason": "not_found",
                "error": f"{kind} '{namespace}/{name}' not found",
            }
        if size < 0:
            return {"success": False, "reason": "invalid", "error": "Replica count must be non-negative"}

        current = len(record["replicas"])
        if current == size:
            logger.info("%s %s/%s already at desired replica count %d", kind, namespace, name, size)
            return {"success": True, "changed": False, "workload": self._sanitize(record)}

        record["status"] = WorkloadStatus.SCALING
        errors: List[str] = []
        if size > current:
            self._spawn(record, size - current)
        else:
            errors = self._terminate(record, current - size)

        if errors:
            record["status"] = WorkloadStatus.ERROR
            return {
                "success": False,
                "reason": "scale_failed",
                "error": "; ".join(errors),
                "workload": self._sanitize(record),
            }

        record["status"] = WorkloadStatus.READY
        logger.info("Successfully scaled %s %s/%s from %d to %d replicas", kind, namespace, name, current, size)
        return {"success": True, "changed": True, "workload": self._sanitize(record)}

    def delete_workload(self, namespace: str, name: str) -> dict:
        record = self.workloads.get((namespace, name))
        if record is None:
            return {"success": False, "error": f"Workload '{namespace}/{name}' not found"}
        errors = self._terminate(record, len(record["replicas"]))
        record["status"] = WorkloadStatus.DELETED
        removed = self.workloads.pop((namespace, name))
        if errors:
            logger.warning("Workload %s/%s deleted with errors: %s", namespace, name, errors)
        logger.info("Workload %s/%s deleted", namespace, name)
        return {"success": True, "workload": self._sanitize(removed)}
