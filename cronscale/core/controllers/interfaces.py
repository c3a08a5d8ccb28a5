"""
Collaborator interfaces consumed by the reconciler.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from cronscale.core.entities.resource import ScalableResource, ScaleTarget
from cronscale.core.entities.types import ResourceKey


class ResourceStore(ABC):
    """Holds CronHPA objects and persists their status."""

    @abstractmethod
    def get(self, key: ResourceKey) -> ScalableResource:
        """
        Return a fresh snapshot of the resource.

        Raises:
            ResourceNotFoundError: the resource was deleted.
            FetchError: the store could not be reached.
        """

    @abstractmethod
    def update_status(self, resource: ScalableResource) -> ScalableResource:
        """
        Write ``resource.status`` if ``resource.metadata.resource_version`` is current.

        Raises:
            PersistConflictError: the resource changed since it was fetched.
            FetchError: the write could not be confirmed.
        """


class Actuator(ABC):
    """Applies replica counts to scalable workloads."""

    @abstractmethod
    def set_replicas(self, target: ScaleTarget, namespace: str, size: int) -> None:
        """
        Scale ``target`` to ``size`` replicas; a no-op when already there.

        Raises:
            TargetNotFoundError: the target does not exist.
            ActuationError: the target could not be scaled.
        """
