"""
Client-facing RayCronScaler façade.

The façade proxies all operations to the underlying controller actor while
exposing a synchronous API to library consumers.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import ray

from cronscale.core.actors.control.controller import CronScaleControllerActor
from cronscale.core.actors.management.config import ActorConfig
from cronscale.core.config import ControllerConfig
from cronscale.core.entities.resource import DEFAULT_NAMESPACE


class RayCronScaler:
    """Thin wrapper around the CronScaleControllerActor."""

    def __init__(
        self,
        name: str = "cronscale-controller",
        *,
        namespace: str | None = None,
        detached: bool = False,
        max_restarts: int = -1,
        max_task_retries: int = 0,
        state_path: str | None = None,
        controller_config: Optional[ControllerConfig] = None,
        start_loop: bool = False,
    ):
        """
        Create (and bootstrap) a new controller actor.

        Args:
            name: Logical name for the controller actor.
            namespace: Ray namespace to place the actor in. ``None`` uses
                the caller's current namespace.
            detached: Whether to create the controller as a detached actor.
                Detached actors survive driver exits and can be attached to
                from new processes.
            max_restarts: Passed to Ray to automatically restart the actor
                on failure (``-1`` means infinite restarts).
            max_task_retries: Maximum automatic retries for actor tasks.
            state_path: Directory for the resource store state file.  With a
                state path, a restarted controller resumes from the persisted
                ``lastRuntimes``.
            controller_config: Overrides the YAML-loaded controller config.
            start_loop: Start the background dispatch loop right away.
        """
        self.name = name
        self._namespace = namespace
        self._state_path = state_path
        actor_config = ActorConfig(name=name, state_path=state_path)
        actor_options: dict[str, Any] = {}
        if namespace is not None:
            actor_options["namespace"] = namespace
        if detached:
            actor_options.update(
                {
                    "name": name,
                    "lifetime": "detached",
                    "max_restarts": max_restarts,
                    "max_task_retries": max_task_retries,
                }
            )
        self._controller = CronScaleControllerActor.options(**actor_options).remote(
            actor_config, controller_config
        )
        self._owns_controller = True
        ray.get(self._controller.bootstrap.remote())
        if start_loop:
            ray.get(self._controller.start.remote())

    @classmethod
    def attach(
        cls,
        name: str = "cronscale-controller",
        *,
        namespace: str | None = None,
        state_path: str | None = None,
    ) -> "RayCronScaler":
        """
        Attach to an existing controller actor (typically detached).
        """
        handle = ray.get_actor(name, namespace=namespace)
        instance = cls.__new__(cls)
        instance.name = name
        instance._namespace = namespace
        instance._state_path = state_path
        instance._controller = handle
        instance._owns_controller = False
        return instance

    def _ensure_controller(self) -> ray.actor.ActorHandle:
        if self._controller is None:
            raise RuntimeError("RayCronScaler has been shut down")
        return self._controller

    def controller_handle(self) -> ray.actor.ActorHandle:
        """Return the underlying controller actor handle."""
        return self._ensure_controller()

    # ------------------------------------------------------------------
    # CronHPA resources

    def apply(self, manifest: Dict[str, Any]) -> dict:
        """Create or update a CronHPA resource from its manifest."""
        controller = self._ensure_controller()
        return ray.get(controller.apply.remote(manifest))

    def get_resource(self, name: str, *, namespace: str = DEFAULT_NAMESPACE) -> dict:
        controller = self._ensure_controller()
        return ray.get(controller.get_resource.remote(namespace, name))

    def list_resources(self, namespace: Optional[str] = None) -> dict:
        controller = self._ensure_controller()
        return ray.get(controller.list_resources.remote(namespace))

    def delete(self, name: str, *, namespace: str = DEFAULT_NAMESPACE) -> dict:
        controller = self._ensure_controller()
        return ray.get(controller.delete.remote(namespace, name))

    # ------------------------------------------------------------------
    # Scalable workloads

    def create_workload(
        self,
        name: str,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        kind: str = "Deployment",
        replicas: int = 0,
        labels: Optional[Dict[str, str]] = None,
    ) -> dict:
        controller = self._ensure_controller()
        return ray.get(controller.create_workload.remote(namespace, name, kind, replicas, labels))

    def get_workload(self, name: str, *, namespace: str = DEFAULT_NAMESPACE) -> dict:
        controller = self._ensure_controller()
        return ray.get(controller.get_workload.remote(namespace, name))

    def list_workloads(self, namespace: Optional[str] = None) -> dict:
        controller = self._ensure_controller()
        return ray.get(controller.list_workloads.remote(namespace))

    def delete_workload(self, name: str, *, namespace: str = DEFAULT_NAMESPACE) -> dict:
        controller = self._ensure_controller()
        return ray.get(controller.delete_workload.remote(namespace, name))

    # ------------------------------------------------------------------
    # Reconciliation

    def reconcile(self, name: str, *, namespace: str = DEFAULT_NAMESPACE) -> dict:
        """Run an immediate reconciliation pass for one resource."""
        controller = self._ensure_controller()
        return ray.get(controller.reconcile.remote(namespace, name))

    def run_pending(self) -> dict:
        """Reconcile every resource that is due now."""
        controller = self._ensure_controller()
        return ray.get(controller.run_pending.remote())

    def pending(self) -> dict:
        controller = self._ensure_controller()
        return ray.get(controller.pending.remote())

    def start(self) -> dict:
        controller = self._ensure_controller()
        return ray.get(controller.start.remote())

    def stop(self) -> dict:
        controller = self._ensure_controller()
        return ray.get(controller.stop.remote())

    def stats(self) -> dict:
        controller = self._ensure_controller()
        return ray.get(controller.stats.remote())

    def snapshot_state(self) -> dict:
        controller = self._ensure_controller()
        return ray.get(controller.snapshot_state.remote())

    def shutdown(self) -> None:
        """Stop the loop and kill the controller if this client created it."""
        if self._controller is None:
            return
        if self._owns_controller:
            try:
                ray.get(self._controller.stop.remote())
            finally:
                ray.kill(self._controller, no_restart=True)
        self._controller = None
