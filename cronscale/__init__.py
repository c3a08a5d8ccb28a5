"""
cronscale package skeleton.

This module exposes high-level entry points while keeping heavy dependencies
lazy-imported so packaging tools do not require Ray during metadata builds.
"""

from __future__ import annotations

from importlib import import_module
from importlib.metadata import PackageNotFoundError, version

__all__ = [
    "CronScaleReconciler",
    "RayCronScaler",
    "RequeueDispatcher",
    "next_fire_time",
    "__version__",
]


try:
    __version__ = version("cronscale-core")
except PackageNotFoundError:
    __version__ = "0.0.0"


_LAZY_TARGETS = {
    "CronScaleReconciler": ("cronscale.core.controllers", "CronScaleReconciler"),
    "RayCronScaler": ("cronscale.core.controllers", "RayCronScaler"),
    "RequeueDispatcher": ("cronscale.core.controllers", "RequeueDispatcher"),
    "next_fire_time": ("cronscale.core.scheduling", "next_fire_time"),
}


def __getattr__(name: str):
    """Dynamically load public symbols to avoid importing optional deps early."""
    target = _LAZY_TARGETS.get(name)
    if target is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")

    module_name, attribute = target
    module = import_module(module_name)
    value = getattr(module, attribute)
    globals()[name] = value  # cache for subsequent lookups
    return value
