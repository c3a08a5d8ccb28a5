"""
Common type definitions shared across actors and controllers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from cronscale.core.entities.resource import ScalableResourceStatus


@dataclass(frozen=True, order=True)
class ResourceKey:
    """Namespaced identity of a CronHPA object."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def parse(cls, value: str, *, default_namespace: str = "default") -> "ResourceKey":
        namespace, sep, name = value.partition("/")
        if not sep:
            return cls(namespace=default_namespace, name=namespace)
        return cls(namespace=namespace or default_namespace, name=name)


@dataclass
class ReconcileResult:
    """Outcome of a single reconciliation pass."""

    key: ResourceKey
    requeue_after: Optional[timedelta] = None
    status: Optional["ScalableResourceStatus"] = None
    fired: List[str] = field(default_factory=list)
    updated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": str(self.key),
            "requeue_after": self.requeue_after.total_seconds() if self.requeue_after is not None else None,
            "status": self.status.to_dict() if self.status is not None else None,
            "fired": list(self.fired),
            "updated": self.updated,
        }


class WatchEventType(str, Enum):
    """Change notifications emitted by the resource store."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


class WorkloadStatus(str, Enum):
    """Lifecycle status values reported by the workload manager."""

    READY = "ready"
    SCALING = "scaling"
    DELETED = "deleted"
    ERROR = "error"
