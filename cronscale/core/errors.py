"""
Error taxonomy for the cronscale control plane.

Every reconciliation failure aborts the current pass without writing status;
recovery is left to the dispatcher re-invoking the pass.
"""

from __future__ import annotations

from typing import Optional


class CronScaleError(Exception):
    """Base class for all cronscale errors."""


class ValidationError(CronScaleError, ValueError):
    """A manifest failed admission checks."""


class FetchError(CronScaleError):
    """The resource store could not be read."""


class ResourceNotFoundError(FetchError):
    """The requested resource no longer exists."""

    def __init__(self, namespace: str, name: str):
        super().__init__(f"Resource '{namespace}/{name}' not found")
        self.namespace = namespace
        self.name = name


class ScheduleParseError(CronScaleError, ValueError):
    """A cron expression could not be parsed."""

    def __init__(self, schedule: str, reason: str, *, job: Optional[str] = None):
        prefix = f"job '{job}': " if job else ""
        super().__init__(f"{prefix}invalid schedule '{schedule}': {reason}")
        self.schedule = schedule
        self.reason = reason
        self.job = job


class ActuationError(CronScaleError):
    """The actuator failed to apply a replica count."""


class TargetNotFoundError(ActuationError):
    """The scale target does not exist."""


class PersistConflictError(CronScaleError):
    """A status write lost an optimistic-concurrency race."""

    def __init__(self, namespace: str, name: str, expected: int, actual: Optional[int]):
        super().__init__(
            f"Resource '{namespace}/{name}' changed since it was read "
            f"(expected resourceVersion={expected}, found={actual})"
        )
        self.namespace = namespace
        self.name = name
        self.expected = expected
        self.actual = actual


class ReconcileCancelled(CronScaleError):
    """The pass was cancelled before its status write committed."""


__all__ = [
    "CronScaleError",
    "ValidationError",
    "FetchError",
    "ResourceNotFoundError",
    "ScheduleParseError",
    "ActuationError",
    "TargetNotFoundError",
    "PersistConflictError",
    "ReconcileCancelled",
]
