"""
Ray actor implementations that back the cronscale control plane.

Sub-packages:
    - management: Actors owning CronHPA resources and scalable workloads.
    - control:    The controller actor running the reconciliation loop.
"""

from . import management  # noqa: F401
from . import control  # noqa: F401
from .head import CronScaleHead  # noqa: F401

__all__ = [
    "management",
    "control",
    "CronScaleHead",
]
