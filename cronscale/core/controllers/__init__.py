"""
Reconciliation engine, dispatcher and client-facing façade.
"""

from .interfaces import Actuator, ResourceStore  # noqa: F401
from .reconciler import CronScaleReconciler, JobDecision  # noqa: F401
from .dispatcher import DispatcherStats, RequeueDispatcher  # noqa: F401
from .adapters import ActorActuator, ActorResourceStore  # noqa: F401
from .cron_scaler import RayCronScaler  # noqa: F401

__all__ = [
    "Actuator",
    "ResourceStore",
    "CronScaleReconciler",
    "JobDecision",
    "DispatcherStats",
    "RequeueDispatcher",
    "ActorActuator",
    "ActorResourceStore",
    "RayCronScaler",
]
