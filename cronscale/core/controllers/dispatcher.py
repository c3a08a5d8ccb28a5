"""
Requeue dispatcher.

Keeps a time-ordered queue of resource keys and feeds them to the reconciler
one at a time:

- a key appears at most once in the queue; re-enqueueing keeps the earlier time
- a key is never reconciled concurrently with itself
- a successful pass is requeued after the delay it returned
- a failed pass is retried with exponential backoff; conflicts retry at once
"""

from __future__ import annotations

import heapq
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple, Union

from cronscale.core.config import ControllerConfig, get_controller_config
from cronscale.core.entities.types import ReconcileResult, ResourceKey
from cronscale.core.errors import CronScaleError, PersistConflictError, ReconcileCancelled
from cronscale.core.scheduling.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

ReconcileFn = Callable[[ResourceKey], ReconcileResult]
Delay = Union[timedelta, float]


@dataclass
class DispatcherStats:
    passes: int = 0
    failures: int = 0
    conflicts: int = 0
    cancelled: int = 0
    last_error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "passes": self.passes,
            "failures": self.failures,
            "conflicts": self.conflicts,
            "cancelled": self.cancelled,
            "last_error": self.last_error,
        }


class RequeueDispatcher:
    """Time-ordered work queue driving reconciliation passes."""

    def __init__(
        self,
        reconcile_fn: ReconcileFn,
        *,
        clock: Optional[Clock] = None,
        config: Optional[ControllerConfig] = None,
    ):
        self._reconcile_fn = reconcile_fn
        self.clock = clock or SystemClock()
        self.config = config or get_controller_config()
        self._heap: List[Tuple[datetime, int, ResourceKey]] = []
        self._scheduled: Dict[ResourceKey, datetime] = {}
        self._failures: Dict[ResourceKey, int] = {}
        self._counter = 0
        self._lock = threading.Lock()
        self._process_lock = threading.Lock()
        self.stats = DispatcherStats()

    # ------------------------------------------------------------------
    # Queue management

    def enqueue(self, key: ResourceKey, delay: Delay = 0.0) -> bool:
        """Schedule ``key`` after ``delay``; returns False if already due earlier."""
        if not isinstance(delay, timedelta):
            delay = timedelta(seconds=float(delay))
        due_at = self.clock.now() + max(delay, timedelta(0))
        with self._lock:
            existing = self._scheduled.get(key)
            if existing is not None and existing <= due_at:
                return False
            self._scheduled[key] = due_at
            heapq.heappush(self._heap, (due_at, self._counter, key))
            self._counter += 1
        logger.debug("Enqueued %s at %s", key, due_at.isoformat())
        return True

    def forget(self, key: ResourceKey) -> None:
        """Drop ``key`` from the queue; stale heap entries are skipped lazily."""
        with self._lock:
            self._scheduled.pop(key, None)
            self._failures.pop(key, None)

    def pending(self) -> Dict[ResourceKey, datetime]:
        with self._lock:
            return dict(self._scheduled)

    def next_wakeup(self) -> Optional[float]:
        """Seconds until the next queued key is due, ``None`` when idle."""
        with self._lock:
            if not self._scheduled:
                return None
            earliest = min(self._scheduled.values())
        return max((earliest - self.clock.now()).total_seconds(), 0.0)

    def _pop_due(self, now: datetime) -> Optional[ResourceKey]:
        with self._lock:
            while self._heap:
                due_at, _, key = self._heap[0]
                if self._scheduled.get(key) != due_at:
                    heapq.heappop(self._heap)
                    continue
                if due_at > now:
                    return None
                heapq.heappop(self._heap)
                del self._scheduled[key]
                return key
        return None

    def _backoff(self, key: ResourceKey) -> float:
        failures = self._failures.get(key, 0) + 1
        self._failures[key] = failures
        delay = self.config.backoff_base * (2 ** (failures - 1))
        return min(delay, self.config.backoff_max)

    # ------------------------------------------------------------------
    # Processing

    def process(self, key: ResourceKey) -> Optional[ReconcileResult]:
        """Run one pass for ``key`` and requeue it according to the outcome."""
        with self._process_lock:
            self.stats.passes += 1
            try:
                result = self._reconcile_fn(key)
            except PersistConflictError as exc:
                self.stats.conflicts += 1
                logger.info("Status conflict for %s, retrying from a fresh read: %s", key, exc)
                self.enqueue(key, 0.0)
                return None
            except ReconcileCancelled as exc:
                self.stats.cancelled += 1
                logger.warning("%s", exc)
                self.enqueue(key, 0.0)
                return None
            except CronScaleError as exc:
                self.stats.failures += 1
                self.stats.last_error = str(exc)
                delay = self._backoff(key)
                logger.error("Reconciliation of %s failed: %s (retry in %.1fs)", key, exc, delay)
                self.enqueue(key, delay)
                return None
            except Exception as exc:
                self.stats.failures += 1
                self.stats.last_error = str(exc)
                delay = self._backoff(key)
                logger.exception("Unexpected error reconciling %s (retry in %.1fs)", key, delay)
                self.enqueue(key, delay)
                return None

            self._failures.pop(key, None)
            if result.requeue_after is not None:
                self.enqueue(key, result.requeue_after)
            elif result.status is not None and self.config.resync_period:
                self.enqueue(key, self.config.resync_period)
            return result

    def run_pending(self) -> List[ReconcileResult]:
        """Process every key that is due now; requeued keys wait for the next call."""
        now = self.clock.now()
        due_keys: List[ResourceKey] = []
        while True:
            key = self._pop_due(now)
            if key is None:
                break
            due_keys.append(key)

        results: List[ReconcileResult] = []
        for key in due_keys:
            result = self.process(key)
            if result is not None:
                results.append(result)
        return results

    def run_forever(
        self,
        stop_event: threading.Event,
        *,
        on_tick: Optional[Callable[[], None]] = None,
    ) -> None:
        """Process due keys until ``stop_event`` is set; ``on_tick`` runs first on every round."""
        logger.info("Dispatcher loop started (poll_interval=%.2fs)", self.config.poll_interval)
        while not stop_event.is_set():
            if on_tick is not None:
                try:
                    on_tick()
                except Exception:
                    logger.exception("Dispatcher tick hook failed")
            self.run_pending()
            wait = self.next_wakeup()
            timeout = self.config.poll_interval if wait is None else min(wait, self.config.poll_interval)
            stop_event.wait(timeout)
        logger.info("Dispatcher loop stopped")


__all__ = ["DispatcherStats", "RequeueDispatcher"]
