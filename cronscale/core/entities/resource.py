"""
CronHPA resource entity definitions.

The wire format mirrors the Kubernetes-style manifest::

    apiVersion: autoscal.aiops.org/v1
    kind: CronHPA
    metadata: {name: web-hours, namespace: default}
    spec:
      scaleTarget: {apiVersion: apps/v1, kind: Deployment, name: web}
      jobs:
        - {name: scale-up, schedule: "0 9 * * 1-5", size: 10}
    status:
      currentReplicas: 10
      lastScaleTime: "2024-01-01T09:00:00Z"
      lastRuntimes: {scale-up: "2024-01-01T09:00:00Z"}
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from cronscale.core.entities.types import ResourceKey
from cronscale.core.errors import ValidationError

API_VERSION = "autoscal.aiops.org/v1"
KIND = "CronHPA"
DEFAULT_NAMESPACE = "default"


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValidationError(f"Invalid timestamp '{value}'") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class ScaleTarget:
    """Workload whose replica count is managed."""

    api_version: str
    kind: str
    name: str

    def to_dict(self) -> Dict[str, str]:
        return {"apiVersion": self.api_version, "kind": self.kind, "name": self.name}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ScaleTarget":
        return cls(
            api_version=str(payload.get("apiVersion", "apps/v1")),
            kind=str(payload.get("kind", "Deployment")),
            name=str(payload.get("name", "")),
        )


@dataclass(frozen=True)
class JobSpec:
    """A cron-scheduled replica assignment."""

    name: str
    schedule: str
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "schedule": self.schedule, "size": self.size}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "JobSpec":
        raw_size = payload.get("size", 0)
        if isinstance(raw_size, bool):
            raise ValidationError(f"Job size must be an integer, got {raw_size!r}")
        try:
            size = int(raw_size)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Job size must be an integer, got {raw_size!r}") from exc
        return cls(
            name=str(payload.get("name", "")).strip(),
            schedule=str(payload.get("schedule", "")).strip(),
            size=size,
        )


@dataclass(frozen=True)
class ScalableResourceSpec:
    scale_target: ScaleTarget
    jobs: Tuple[JobSpec, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scaleTarget": self.scale_target.to_dict(),
            "jobs": [job.to_dict() for job in self.jobs],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ScalableResourceSpec":
        raw_jobs = payload.get("jobs") or []
        if not isinstance(raw_jobs, list):
            raise ValidationError("'spec.jobs' must be a list")
        for item in raw_jobs:
            if not isinstance(item, Mapping):
                raise ValidationError("Each job must be a mapping")
        return cls(
            scale_target=ScaleTarget.from_dict(payload.get("scaleTarget") or {}),
            jobs=tuple(JobSpec.from_dict(item) for item in raw_jobs),
        )


@dataclass
class ScalableResourceStatus:
    """Observed state written back by the reconciler."""

    current_replicas: int = 0
    last_scale_time: Optional[datetime] = None
    last_runtimes: Dict[str, datetime] = field(default_factory=dict)

    def copy(self) -> "ScalableResourceStatus":
        return ScalableResourceStatus(
            current_replicas=self.current_replicas,
            last_scale_time=self.last_scale_time,
            last_runtimes=dict(self.last_runtimes),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentReplicas": self.current_replicas,
            "lastScaleTime": format_timestamp(self.last_scale_time),
            "lastRuntimes": {
                name: format_timestamp(when) for name, when in sorted(self.last_runtimes.items())
            },
        }

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "ScalableResourceStatus":
        payload = payload or {}
        runtimes_raw = payload.get("lastRuntimes")
        if runtimes_raw is None:
            runtimes_raw = payload.get("lastRuntime")
        runtimes: Dict[str, datetime] = {}
        for name, value in (runtimes_raw or {}).items():
            parsed = parse_timestamp(value)
            if parsed is not None:
                runtimes[str(name)] = parsed
        raw_replicas = payload.get("currentReplicas", 0) or 0
        try:
            current_replicas = int(raw_replicas)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid currentReplicas {raw_replicas!r}") from exc
        return cls(
            current_replicas=current_replicas,
            last_scale_time=parse_timestamp(payload.get("lastScaleTime")),
            last_runtimes=runtimes,
        )


@dataclass
class ObjectMeta:
    name: str
    namespace: str = DEFAULT_NAMESPACE
    uid: Optional[str] = None
    resource_version: int = 0
    generation: int = 0
    creation_timestamp: Optional[datetime] = None
    labels: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "namespace": self.namespace,
            "resourceVersion": str(self.resource_version),
            "generation": self.generation,
        }
        if self.uid:
            data["uid"] = self.uid
        if self.creation_timestamp is not None:
            data["creationTimestamp"] = format_timestamp(self.creation_timestamp)
        if self.labels:
            data["labels"] = dict(self.labels)
        return data

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ObjectMeta":
        raw_version = payload.get("resourceVersion") or 0
        try:
            resource_version = int(raw_version)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid resourceVersion {raw_version!r}") from exc
        raw_generation = payload.get("generation", 0) or 0
        try:
            generation = int(raw_generation)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid generation {raw_generation!r}") from exc
        return cls(
            name=str(payload.get("name", "")).strip(),
            namespace=str(payload.get("namespace") or DEFAULT_NAMESPACE).strip(),
            uid=payload.get("uid"),
            resource_version=resource_version,
            generation=generation,
            creation_timestamp=parse_timestamp(payload.get("creationTimestamp")),
            labels={str(k): str(v) for k, v in (payload.get("labels") or {}).items()},
        )


class ScalableResource:
    """A CronHPA object: metadata, desired jobs and observed status."""

    def __init__(
        self,
        metadata: ObjectMeta,
        spec: ScalableResourceSpec,
        status: Optional[ScalableResourceStatus] = None,
    ):
        self.metadata = metadata
        self.spec = spec
        self.status = status or ScalableResourceStatus()

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(namespace=self.metadata.namespace, name=self.metadata.name)

    def validate(self) -> "ScalableResource":
        """Admission checks; schedules are evaluated by the reconciler."""
        if not self.metadata.name:
            raise ValidationError("metadata.name is required")
        if not self.spec.scale_target.name:
            raise ValidationError(f"{self.key}: spec.scaleTarget.name is required")

        seen: set = set()
        for index, job in enumerate(self.spec.jobs):
            if not job.name:
                raise ValidationError(f"{self.key}: spec.jobs[{index}].name is required")
            if job.name in seen:
                raise ValidationError(f"{self.key}: duplicate job name '{job.name}'")
            seen.add(job.name)
            if not job.schedule:
                raise ValidationError(f"{self.key}: job '{job.name}' has no schedule")
            if job.size < 0:
                raise ValidationError(
                    f"{self.key}: job '{job.name}' size must be non-negative, got {job.size}"
                )
        return self

    def copy(self) -> "ScalableResource":
        return ScalableResource(
            metadata=copy.deepcopy(self.metadata),
            spec=self.spec,
            status=self.status.copy(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "apiVersion": API_VERSION,
            "kind": KIND,
            "metadata": self.metadata.to_dict(),
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict(),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ScalableResource":
        if not isinstance(payload, Mapping):
            raise ValidationError("Resource manifest must be a mapping")
        kind = payload.get("kind", KIND)
        if kind != KIND:
            raise ValidationError(f"Unsupported kind '{kind}', expected '{KIND}'")
        return cls(
            metadata=ObjectMeta.from_dict(payload.get("metadata") or {}),
            spec=ScalableResourceSpec.from_dict(payload.get("spec") or {}),
            status=ScalableResourceStatus.from_dict(payload.get("status")),
        )

    def __repr__(self) -> str:
        return (
            f"ScalableResource(key={self.key}, target={self.spec.scale_target.name}, "
            f"jobs={[job.name for job in self.spec.jobs]}, "
            f"resourceVersion={self.metadata.resource_version})"
        )


__all__ = [
    "API_VERSION",
    "KIND",
    "DEFAULT_NAMESPACE",
    "JobSpec",
    "ObjectMeta",
    "ScalableResource",
    "ScalableResourceSpec",
    "ScalableResourceStatus",
    "ScaleTarget",
    "format_timestamp",
    "parse_timestamp",
]
