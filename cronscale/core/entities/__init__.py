"""
Domain entities used throughout the cronscale runtime.
"""

from .resource import (  # noqa: F401
    API_VERSION,
    DEFAULT_NAMESPACE,
    KIND,
    JobSpec,
    ObjectMeta,
    ScalableResource,
    ScalableResourceSpec,
    ScalableResourceStatus,
    ScaleTarget,
)
from .types import (  # noqa: F401
    ReconcileResult,
    ResourceKey,
    WatchEventType,
    WorkloadStatus,
)

__all__ = [
    "API_VERSION",
    "DEFAULT_NAMESPACE",
    "KIND",
    "JobSpec",
    "ObjectMeta",
    "ScalableResource",
    "ScalableResourceSpec",
    "ScalableResourceStatus",
    "ScaleTarget",
    "ReconcileResult",
    "ResourceKey",
    "WatchEventType",
    "WorkloadStatus",
]
