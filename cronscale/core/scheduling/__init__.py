"""
Schedule evaluation and time sources for cronscale.
"""

from __future__ import annotations

from .clock import Clock, ManualClock, SystemClock
from .cron import (
    CRON_FIELD_COUNT,
    ZERO_TIME,
    iter_fire_times,
    next_fire_time,
    parse_schedule,
)

__all__ = [
    "Clock",
    "ManualClock",
    "SystemClock",
    "CRON_FIELD_COUNT",
    "ZERO_TIME",
    "iter_fire_times",
    "next_fire_time",
    "parse_schedule",
]
