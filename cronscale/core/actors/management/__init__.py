"""
Actor implementations that manage long-lived resources in the cluster.
"""

from .config import ActorConfig  # noqa: F401
from .resource_store import ResourceStoreActor  # noqa: F401
from .workload_manager import WorkloadManagerActor  # noqa: F401

__all__ = [
    "ActorConfig",
    "ResourceStoreActor",
    "WorkloadManagerActor",
]
