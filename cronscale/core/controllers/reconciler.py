"""
Reconciliation engine for CronHPA resources.

One pass fetches the resource, works out which jobs are due, scales the target
for each due job, writes the status back once and tells the caller when to
come back.  The pass is level-triggered: it only looks at the current
``lastRuntimes`` and the clock, so running it early, late or twice converges
to the same state.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from cronscale.config.policy import FirstRunPolicy
from cronscale.core.config import ControllerConfig, get_controller_config
from cronscale.core.controllers.interfaces import Actuator, ResourceStore
from cronscale.core.entities.resource import JobSpec, ScalableResource, ScalableResourceStatus
from cronscale.core.entities.types import ReconcileResult, ResourceKey
from cronscale.core.errors import ReconcileCancelled, ResourceNotFoundError, ScheduleParseError
from cronscale.core.scheduling.clock import Clock, SystemClock
from cronscale.core.scheduling.cron import ZERO_TIME, next_fire_time

logger = logging.getLogger(__name__)


@dataclass
class JobDecision:
    """Per-job outcome of evaluating the schedule at ``now``."""

    job: JobSpec
    last_run: datetime
    next_scheduled: datetime
    due: bool
    # Next wake-up contributed by this job: its following occurrence when due,
    # ``next_scheduled`` otherwise.
    next_run: datetime
    # ``last_run`` is the instant the job was first seen and must be recorded.
    seeded: bool = False


class CronScaleReconciler:
    """Drives a CronHPA resource towards the replica count of its due jobs."""

    def __init__(
        self,
        store: ResourceStore,
        actuator: Actuator,
        *,
        clock: Optional[Clock] = None,
        config: Optional[ControllerConfig] = None,
    ):
        self.store = store
        self.actuator = actuator
        self.clock = clock or SystemClock()
        self.config = config or get_controller_config()

    # ------------------------------------------------------------------
    # Planning

    def _anchor(self, resource: ScalableResource, job: JobSpec, now: datetime) -> Tuple[datetime, bool]:
        """Return the instant the schedule is evaluated from and whether it is a first sighting."""
        last_run = resource.status.last_runtimes.get(job.name)
        if last_run is not None:
            return last_run, False
        if self.config.first_run_policy is FirstRunPolicy.WAIT:
            return now, True
        return ZERO_TIME, False

    def evaluate(self, resource: ScalableResource, now: datetime) -> List[JobDecision]:
        """
        Decide which jobs are due at ``now`` without touching any collaborator.

        Every schedule is evaluated before anything is actuated so that a
        malformed expression aborts the pass up front.

        Raises:
            ScheduleParseError: a job's schedule is malformed.
        """
        decisions: List[JobDecision] = []
        for job in resource.spec.jobs:
            last_run, seeded = self._anchor(resource, job, now)
            try:
                next_scheduled = next_fire_time(job.schedule, last_run)
                due = now >= next_scheduled
                next_run = next_fire_time(job.schedule, now) if due else next_scheduled
            except ScheduleParseError as exc:
                raise ScheduleParseError(job.schedule, exc.reason, job=job.name) from exc
            decisions.append(
                JobDecision(
                    job=job,
                    last_run=last_run,
                    next_scheduled=next_scheduled,
                    due=due,
                    next_run=next_run,
                    seeded=seeded,
                )
            )
        return decisions

    def requeue_delay(self, earliest_next: Optional[datetime], now: datetime) -> Optional[timedelta]:
        if earliest_next is None:
            return None
        floor = timedelta(seconds=self.config.min_requeue_seconds)
        return max(earliest_next - now, floor)

    # ------------------------------------------------------------------
    # Reconciliation

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event], key: ResourceKey) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise ReconcileCancelled(f"Reconciliation of {key} cancelled")

    def _prune(self, resource: ScalableResource, status: ScalableResourceStatus) -> None:
        job_names = {job.name for job in resource.spec.jobs}
        stale = [name for name in status.last_runtimes if name not in job_names]
        for name in stale:
            logger.debug("Dropping lastRuntimes entry for removed job %s/%s", resource.key, name)
            status.last_runtimes.pop(name)

    def reconcile(
        self,
        key: ResourceKey,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReconcileResult:
        """
        Run one reconciliation pass for ``key``.

        Returns:
            The result carrying the requeue delay; a deleted resource yields a
            result with neither status nor delay.

        Raises:
            FetchError: the store could not be read.
            ScheduleParseError: a job schedule is malformed.
            ActuationError: scaling the target failed.
            PersistConflictError: the status write lost a race.
            ReconcileCancelled: ``cancel_event`` was set before the write.
        """
        logger.info("Reconciling CronHPA %s", key)
        try:
            resource = self.store.get(key)
        except ResourceNotFoundError:
            logger.info("CronHPA %s not found. Ignoring since object must be deleted", key)
            return ReconcileResult(key=key)

        now = self.clock.now()
        decisions = self.evaluate(resource, now)

        status = resource.status.copy()
        fired: List[str] = []
        earliest_next: Optional[datetime] = None
        target = resource.spec.scale_target

        for decision in decisions:
            job = decision.job
            logger.info(
                "Job %s/%s lastRunTime=%s nextScheduledTime=%s now=%s due=%s",
                key,
                job.name,
                decision.last_run.isoformat(),
                decision.next_scheduled.isoformat(),
                now.isoformat(),
                decision.due,
            )
            if decision.due:
                self._check_cancelled(cancel_event, key)
                logger.info(
                    "Updating %s %s replicas to %d (job %s)",
                    target.kind,
                    target.name,
                    job.size,
                    job.name,
                )
                self.actuator.set_replicas(target, resource.metadata.namespace, job.size)
                status.current_replicas = job.size
                status.last_scale_time = now
                status.last_runtimes[job.name] = now
                fired.append(job.name)
            elif decision.seeded:
                logger.info(
                    "Job %s/%s first seen at %s, waiting for its next occurrence",
                    key,
                    job.name,
                    now.isoformat(),
                )
                status.last_runtimes[job.name] = decision.last_run

            if earliest_next is None or decision.next_run < earliest_next:
                earliest_next = decision.next_run

        if self.config.prune_stale_runtimes:
            self._prune(resource, status)

        updated = status != resource.status
        if updated:
            self._check_cancelled(cancel_event, key)
            resource.status = status
            resource = self.store.update_status(resource)
            logger.debug(
                "CronHPA %s status written (resourceVersion=%s)",
                key,
                resource.metadata.resource_version,
            )

        requeue_after = self.requeue_delay(earliest_next, now)
        if requeue_after is not None:
            logger.info("Requeue %s after %s", key, requeue_after)

        return ReconcileResult(
            key=key,
            requeue_after=requeue_after,
            status=resource.status,
            fired=fired,
            updated=updated,
        )


__all__ = ["CronScaleReconciler", "JobDecision"]
