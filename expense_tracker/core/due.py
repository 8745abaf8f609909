# expense_tracker/core/due.py
from __future__ import annotations

from datetime import date
from typing import Optional, Tuple, Union

from expense_tracker.core.schedule import (
    Frequency,
    MonthlySchedule,
    Schedule,
    WeeklySchedule,
    YearlySchedule,
    decode,
)

PeriodKey = Union[Tuple[int, int], Tuple[int]]


def weekday(d: date) -> int:
    """Day of week with Sunday as 0."""
    return d.isoweekday() % 7


def period_key(frequency, d: date) -> PeriodKey:
    """Identify the ISO week, calendar month or calendar year *d* falls in."""
    frequency = Frequency.parse(frequency)
    if frequency is Frequency.WEEKLY:
        iso = d.isocalendar()
        return (iso[0], iso[1])
    if frequency is Frequency.MONTHLY:
        return (d.year, d.month)
    return (d.year,)


def period_label(frequency, d: date) -> str:
    key = period_key(frequency, d)
    frequency = Frequency.parse(frequency)
    if frequency is Frequency.WEEKLY:
        return f"{key[0]}-W{key[1]:02d}"
    if frequency is Frequency.MONTHLY:
        return f"{key[0]}-{key[1]:02d}"
    return f"{key[0]}"


def _new_period(frequency, last_generated: Optional[date], today: date) -> bool:
    if last_generated is None:
        return True
    # a last_generated in a later period than today counts as already done
    return period_key(frequency, today) > period_key(frequency, last_generated)


def is_due(
    schedule: Schedule,
    last_generated: Optional[date],
    today: date,
) -> Optional[date]:
    """Return the occurrence date if *schedule* is due on *today*, else None.

    The period-key comparison is the only de-duplication guard: a day missed
    inside the period still fires once it has passed, but only once.
    """
    if not _new_period(schedule.frequency, last_generated, today):
        return None

    if isinstance(schedule, WeeklySchedule):
        if weekday(today) == schedule.weekday:
            return today
        return None

    if isinstance(schedule, MonthlySchedule):
        if today.day >= schedule.day:
            return today.replace(day=schedule.day)
        return None

    if isinstance(schedule, YearlySchedule):
        if (today.month, today.day) >= (schedule.month, schedule.day):
            return date(today.year, schedule.month, schedule.day)
        return None

    raise TypeError(f"Not a schedule: {schedule!r}")


def evaluate(frequency, encoded: int, last_generated: Optional[date], today: date) -> Optional[date]:
    """Decode a stored schedule, then evaluate it.

    Malformed input raises ValidationError before anything is evaluated.
    """
    return is_due(decode(frequency, encoded), last_generated, today)
