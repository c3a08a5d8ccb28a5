"""
Cron schedule evaluation.

Only classic five-field expressions are accepted (minute, hour, day-of-month,
month, day-of-week).  Seconds fields and ``@`` macros are rejected so that a
schedule means the same thing everywhere it is evaluated.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterator, List

from croniter import CroniterBadCronError, CroniterBadDateError, CroniterNotAlphaError, croniter

from cronscale.core.errors import ScheduleParseError

CRON_FIELD_COUNT = 5

# Timestamp used for jobs that have never fired.
ZERO_TIME = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_schedule(schedule: str) -> List[str]:
    """
    Validate ``schedule`` and return its five fields.

    Raises:
        ScheduleParseError: wrong field count, ``@`` macro, out-of-range value,
            unknown alias or a day that never occurs.
    """
    if not isinstance(schedule, str):
        raise ScheduleParseError(repr(schedule), "schedule must be a string")

    fields = schedule.split()
    if not fields:
        raise ScheduleParseError(schedule, "empty expression")
    if any(field.startswith("@") for field in fields):
        raise ScheduleParseError(schedule, "macros are not supported")
    if len(fields) != CRON_FIELD_COUNT:
        raise ScheduleParseError(
            schedule, f"expected {CRON_FIELD_COUNT} fields, got {len(fields)}"
        )

    try:
        iterator = croniter(" ".join(fields), ZERO_TIME)
    except (CroniterBadCronError, CroniterNotAlphaError, ValueError, KeyError) as exc:
        raise ScheduleParseError(schedule, str(exc) or exc.__class__.__name__) from exc

    # Impossible dates such as "0 0 30 2 *" only surface when iterating.
    try:
        iterator.get_next(datetime)
    except CroniterBadDateError as exc:
        raise ScheduleParseError(schedule, "no matching date") from exc
    return fields


def next_fire_time(schedule: str, after: datetime) -> datetime:
    """
    Return the earliest time strictly after ``after`` matching ``schedule``.

    When both day-of-month and day-of-week are restricted a time matches if
    either of them does.  Naive ``after`` values are taken as UTC; the result
    is expressed in the timezone of ``after``.
    """
    fields = parse_schedule(schedule)
    after = _as_aware(after)
    iterator = croniter(" ".join(fields), after)
    try:
        fire = iterator.get_next(datetime)
        while fire <= after:
            fire = iterator.get_next(datetime)
    except CroniterBadDateError as exc:
        raise ScheduleParseError(schedule, "no matching date") from exc
    return fire


def iter_fire_times(schedule: str, after: datetime, count: int) -> Iterator[datetime]:
    """Yield ``count`` successive fire times following ``after``."""
    current = after
    for _ in range(max(count, 0)):
        current = next_fire_time(schedule, current)
        yield current


__all__ = [
    "CRON_FIELD_COUNT",
    "ZERO_TIME",
    "iter_fire_times",
    "next_fire_time",
    "parse_schedule",
]
