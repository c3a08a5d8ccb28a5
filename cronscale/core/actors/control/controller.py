"""
CronScale controller actor.

This actor launches the resource store and workload manager, wires them into
the reconciler and runs the requeue dispatcher, providing a single entry point
for the client-facing façade.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

import ray
from ray.util import metrics

from cronscale.core.actors.management import ActorConfig, ResourceStoreActor, WorkloadManagerActor
from cronscale.core.config import ControllerConfig, get_controller_config
from cronscale.core.controllers.adapters import ActorActuator, ActorResourceStore
from cronscale.core.controllers.dispatcher import RequeueDispatcher
from cronscale.core.controllers.reconciler import CronScaleReconciler
from cronscale.core.entities.types import ReconcileResult, ResourceKey, WatchEventType
from cronscale.core.errors import CronScaleError
from cronscale.core.utils import configure_runtime_logging

logger = logging.getLogger(__name__)


@ray.remote
class CronScaleControllerActor:
    """Supervises the store and workload actors and drives reconciliation."""

    def __init__(self, config: ActorConfig, controller_config: Optional[ControllerConfig] = None):
        configure_runtime_logging()
        self.config = config
        self.controller_config = controller_config or get_controller_config()
        self.store: Optional[ray.actor.ActorHandle] = None
        self.workloads: Optional[ray.actor.ActorHandle] = None
        self.reconciler: Optional[CronScaleReconciler] = None
        self.dispatcher: Optional[RequeueDispatcher] = None
        self._stop_event = threading.Event()
        self._loop_thread: Optional[threading.Thread] = None

        self.reconcile_counter = metrics.Counter(
            name="cronscale_reconcile_count",
            description="Reconciliation passes by outcome",
            tag_keys=("outcome",),
        )
        self.actuation_counter = metrics.Counter(
            name="cronscale_job_fired_count",
            description="Jobs fired (replica count applied)",
            tag_keys=("resource",),
        )
        logger.info("CronScaleControllerActor[%s] initialised", config.name)

    def bootstrap(self) -> dict:
        """Launch child actors and queue every stored resource for a first pass."""
        self.store = ResourceStoreActor.remote(self.config)
        self.workloads = WorkloadManagerActor.remote(self.config)
        self.reconciler = CronScaleReconciler(
            ActorResourceStore(self.store),
            ActorActuator(self.workloads),
            config=self.controller_config,
        )
        self.dispatcher = RequeueDispatcher(self._reconcile, config=self.controller_config)

        restored = ray.get(self.store.list_resources.remote())
        for payload in restored:
            metadata = payload.get("metadata", {})
            self.dispatcher.enqueue(ResourceKey(metadata.get("namespace", "default"), metadata["name"]))
        ray.get(self.store.drain_events.remote())
        logger.info("Controller %s bootstrapped with %d stored resources", self.config.name, len(restored))
        return {"success": True, "resources": len(restored)}

    def _ensure_ready(self) -> None:
        if self.dispatcher is None or self.store is None or self.workloads is None:
            raise RuntimeError("Controller has not been bootstrapped")

    def _reconcile(self, key: ResourceKey) -> ReconcileResult:
        # Only passes run by the loop are cancelled by stop().
        in_loop = threading.current_thread() is self._loop_thread
        try:
            result = self.reconciler.reconcile(key, cancel_event=self._stop_event if in_loop else None)
        except CronScaleError as exc:
            self.reconcile_counter.inc(1, tags={"outcome": exc.__class__.__name__})
            raise
        self.reconcile_counter.inc(1, tags={"outcome": "success"})
        if result.fired:
            self.actuation_counter.inc(len(result.fired), tags={"resource": str(key)})
        return result

    def _sync_events(self) -> int:
        """Translate store watch events into queue operations."""
        events = ray.get(self.store.drain_events.remote())
        handled = 0
        for event in events:
            key = ResourceKey(event["namespace"], event["name"])
            if event["type"] == WatchEventType.DELETED.value:
                self.dispatcher.forget(key)
            elif not event.get("status_only"):
                self.dispatcher.enqueue(key)
            else:
                continue
            handled += 1
        return handled

    # ------------------------------------------------------------------
    # Resource operations

    def apply(self, manifest: dict) -> dict:
        self._ensure_ready()
        response = ray.get(self.store.apply.remote(manifest))
        if response.get("success") and response.get("changed"):
            self._sync_events()
        return response

    def delete(self, namespace: str, name: str) -> dict:
        self._ensure_ready()
        response = ray.get(self.store.delete.remote(namespace, name))
        if response.get("success"):
            self._sync_events()
        return response

    def get_resource(self, namespace: str, name: str) -> dict:
        self._ensure_ready()
        return ray.get(self.store.get.remote(namespace, name))

    def list_resources(self, namespace: Optional[str] = None) -> dict:
        self._ensure_ready()
        return {"success": True, "resources": ray.get(self.store.list_resources.remote(namespace))}

    # ------------------------------------------------------------------
    # Workload operations

    def create_workload(
        self,
        namespace: str,
        name: str,
        kind: str = "Deployment",
        replicas: int = 0,
        labels: Optional[Dict[str, str]] = None,
    ) -> dict:
        self._ensure_ready()
        return ray.get(self.workloads.create_workload.remote(namespace, name, kind, replicas, labels))

    def get_workload(self, namespace: str, name: str) -> dict:
        self._ensure_ready()
        workload = ray.get(self.workloads.get_workload.remote(namespace, name))
        if workload is None:
            return {"success": False, "error": f"Workload '{namespace}/{name}' not found"}
        return {"success": True, "workload": workload}

    def list_workloads(self, namespace: Optional[str] = None) -> dict:
        self._ensure_ready()
        return {"success": True, "workloads": ray.get(self.workloads.list_workloads.remote(namespace))}

    def delete_workload(self, namespace: str, name: str) -> dict:
        self._ensure_ready()
        return ray.get(self.workloads.delete_workload.remote(namespace, name))

    # ------------------------------------------------------------------
    # Reconciliation control

    def reconcile(self, namespace: str, name: str) -> dict:
        """Run an immediate pass for one resource."""
        self._ensure_ready()
        key = ResourceKey(namespace, name)
        failures_before = self.dispatcher.stats.failures
        result = self.dispatcher.process(key)
        if result is None:
            error = self.dispatcher.stats.last_error if self.dispatcher.stats.failures > failures_before else None
            return {"success": False, "error": error or "Reconciliation did not complete; retry scheduled"}
        return {"success": True, "result": result.to_dict()}

    def run_pending(self) -> dict:
        """Process store events and every queued key that is due now."""
        self._ensure_ready()
        self._sync_events()
        results = self.dispatcher.run_pending()
        return {"success": True, "results": [result.to_dict() for result in results]}

    def pending(self) -> dict:
        self._ensure_ready()
        return {str(key): when.isoformat() for key, when in sorted(self.dispatcher.pending().items())}

    def start(self) -> dict:
        """Start the background dispatch loop."""
        self._ensure_ready()
        if self._loop_thread is not None and self._loop_thread.is_alive():
            return {"success": True, "running": True}
        self._stop_event.clear()
        self._loop_thread = threading.Thread(
            target=self.dispatcher.run_forever,
            args=(self._stop_event,),
            kwargs={"on_tick": self._sync_events},
            name=f"cronscale-{self.config.name}",
            daemon=True,
        )
        self._loop_thread.start()
        logger.info("Controller %s dispatch loop started", self.config.name)
        return {"success": True, "running": True}

    def stop(self, timeout: float = 10.0) -> dict:
        """Stop the dispatch loop; an in-flight pass is cancelled before its status write."""
        self._stop_event.set()
        thread = self._loop_thread
        if thread is not None:
            thread.join(timeout=timeout)
        self._loop_thread = None
        logger.info("Controller %s dispatch loop stopped", self.config.name)
        return {"success": True, "running": False}

    def stats(self) -> Dict[str, Any]:
        self._ensure_ready()
        running = self._loop_thread is not None and self._loop_thread.is_alive()
        pending: List[str] = [str(key) for key in self.dispatcher.pending()]
        return {"running": running, "pending": pending, **self.dispatcher.stats.to_dict()}

    def snapshot_state(self) -> dict:
        self._ensure_ready()
        return {
            "store": ray.get(self.store.snapshot_state.remote()),
            "workloads": ray.get(self.workloads.list_workloads.remote()),
            "pending": self.pending(),
        }
