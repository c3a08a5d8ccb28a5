"""
Core package bootstrap for the cronscale runtime.

Re-exports the primary façade classes so callers can simply do::

    from cronscale.core import RayCronScaler
"""

from __future__ import annotations

from cronscale.core.controllers.cron_scaler import RayCronScaler
from cronscale.core.controllers.reconciler import CronScaleReconciler

__all__ = ["RayCronScaler", "CronScaleReconciler"]
