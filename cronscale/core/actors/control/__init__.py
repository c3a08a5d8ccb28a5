"""
Actors that drive reconciliation.
"""

from .controller import CronScaleControllerActor  # noqa: F401

__all__ = ["CronScaleControllerActor"]
