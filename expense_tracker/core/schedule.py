# expense_tracker/core/schedule.py
"""Schedule value types and their single-integer storage encoding.

The stored integer means different things per frequency:

    weekly   weekday, 0=Sunday .. 6=Saturday
    monthly  day of month, 1 .. 28
    yearly   month * 100 + day, e.g. 315 for March 15

Days stop at 28 so that every month of every year contains them.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from expense_tracker.errors import ValidationError

MAX_DAY = 28

WEEKDAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

MONTH_ABBR = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


class Frequency(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value) -> "Frequency":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(
                f"Unsupported frequency '{value}'. "
                f"Expected one of: {', '.join(f.value for f in cls)}."
            ) from None


def _check_int(value, field_name):
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} must be an integer, got {value!r}")


def _check_day(day):
    _check_int(day, "day")
    if not 1 <= day <= MAX_DAY:
        raise ValidationError(f"Day of month must be between 1 and {MAX_DAY}, got {day}")


@dataclass(frozen=True)
class WeeklySchedule:
    weekday: int  # 0=Sunday

    frequency = Frequency.WEEKLY

    def __post_init__(self):
        _check_int(self.weekday, "weekday")
        if not 0 <= self.weekday <= 6:
            raise ValidationError(
                f"Day of week must be between 0 (Sunday) and 6 (Saturday), got {self.weekday}"
            )


@dataclass(frozen=True)
class MonthlySchedule:
    day: int

    frequency = Frequency.MONTHLY

    def __post_init__(self):
        _check_day(self.day)


@dataclass(frozen=True)
class YearlySchedule:
    month: int
    day: int

    frequency = Frequency.YEARLY

    def __post_init__(self):
        _check_int(self.month, "month")
        if not 1 <= self.month <= 12:
            raise ValidationError(f"Month must be between 1 and 12, got {self.month}")
        _check_day(self.day)


Schedule = Union[WeeklySchedule, MonthlySchedule, YearlySchedule]


def encode(schedule: Schedule) -> int:
    if isinstance(schedule, WeeklySchedule):
        return schedule.weekday
    if isinstance(schedule, MonthlySchedule):
        return schedule.day
    if isinstance(schedule, YearlySchedule):
        return schedule.month * 100 + schedule.day
    raise TypeError(f"Not a schedule: {schedule!r}")


def decode(frequency, value: int) -> Schedule:
    """Rebuild a schedule from its stored integer.

    Raises ValidationError when *value* is out of range for *frequency*.
    """
    frequency = Frequency.parse(frequency)
    _check_int(value, "schedule")
    if frequency is Frequency.WEEKLY:
        return WeeklySchedule(value)
    if frequency is Frequency.MONTHLY:
        return MonthlySchedule(value)
    month, day = divmod(value, 100)
    return YearlySchedule(month, day)


def build_schedule(frequency, weekday=None, day=None, month=None) -> Schedule:
    """Build a schedule from the fields a user fills in."""
    frequency = Frequency.parse(frequency)
    if frequency is Frequency.WEEKLY:
        if weekday is None:
            raise ValidationError("Weekly schedules need a day of week.")
        return WeeklySchedule(weekday)
    if day is None:
        raise ValidationError(f"{frequency.value.capitalize()} schedules need a day of month.")
    if frequency is Frequency.MONTHLY:
        return MonthlySchedule(day)
    if month is None:
        raise ValidationError("Yearly schedules need a month.")
    return YearlySchedule(month, day)


def describe(schedule: Schedule) -> str:
    if isinstance(schedule, WeeklySchedule):
        return f"every {WEEKDAY_NAMES[schedule.weekday]}"
    if isinstance(schedule, MonthlySchedule):
        return f"monthly on day {schedule.day}"
    return f"yearly on {MONTH_ABBR[schedule.month - 1]} {schedule.day}"


def parse_weekday(value) -> int:
    """Accept 0-6 or a weekday name ("mon", "Monday")."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    text = str(value).strip()
    if text.lstrip("-").isdigit():
        return int(text)
    lowered = text.lower()
    for idx, name in enumerate(WEEKDAY_NAMES):
        if len(lowered) >= 3 and name.lower().startswith(lowered):
            return idx
    raise ValidationError(f"Unrecognized day of week '{value}'")
