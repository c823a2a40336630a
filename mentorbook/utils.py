"""Shared date and time helpers used across the scheduling modules."""

import calendar
from datetime import date, datetime, time
from typing import Callable

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Current local wall-clock time, the frame lesson times are expressed in."""
    return datetime.now()


def parse_hhmm(value: str) -> time:
    """Parse an ``HH:MM`` (or ``HH:MM:SS``) string into a minute-resolution time.

    Examples:
        >>> parse_hhmm("14:00")
        datetime.time(14, 0)
        >>> parse_hhmm("09:30:00")
        datetime.time(9, 30)
    """
    value = value.strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value, fmt).time().replace(second=0)
        except ValueError:
            continue
    raise ValueError(f"Invalid time of day: {value!r}")


def format_hhmm(value: time) -> str:
    """Format a time as ``HH:MM``."""
    return value.strftime("%H:%M")


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def month_start(value: date) -> date:
    """First day of the month containing ``value``."""
    return value.replace(day=1)


def month_days(value: date) -> list[date]:
    """Every calendar date of the month containing ``value``, in order."""
    _, last = calendar.monthrange(value.year, value.month)
    return [value.replace(day=d) for d in range(1, last + 1)]


def parse_month(value: str) -> date:
    """Parse ``YYYY-MM`` into the first day of that month."""
    try:
        return datetime.strptime(value.strip(), "%Y-%m").date()
    except ValueError:
        raise ValueError(f"Invalid month (expected YYYY-MM): {value!r}") from None
