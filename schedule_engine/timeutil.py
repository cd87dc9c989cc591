"""
Time helpers shared by every component.

The engine works in naive local wall-clock time. Dates are ISO strings
(YYYY-MM-DD) at the boundary and `date` objects internally; times of day are
HH:MM strings at the boundary.
"""

import math
from datetime import date, datetime, time, timedelta

from schedule_engine.errors import InvalidInput

TIME_FORMAT = "%H:%M"


def parse_hhmm(value: str) -> time:
    """Parse an HH:MM (or HH:MM:SS) string into a time."""
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value).strip())
    except ValueError:
        raise InvalidInput(f"Invalid time format (use HH:MM): {value!r}") from None


def parse_date(value) -> date:
    """Parse an ISO date string; `date` and `datetime` values pass through."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise InvalidInput(f"Invalid date format (use YYYY-MM-DD): {value!r}") from None


def combine(day, hhmm) -> datetime:
    """Combine a date and an HH:MM time into a datetime."""
    return datetime.combine(parse_date(day), parse_hhmm(hhmm))


def format_hhmm(value: datetime) -> str:
    return value.strftime(TIME_FORMAT)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, truncated toward zero. Negative if end < start."""
    return int((end - start).total_seconds() / 60)


def add_minutes(value: datetime, minutes: float) -> datetime:
    return value + timedelta(minutes=minutes)


def daterange(start, end):
    """Yield each date from start to end inclusive."""
    current = parse_date(start)
    last = parse_date(end)
    while current <= last:
        yield current
        current += timedelta(days=1)


def is_weekend(day) -> bool:
    return parse_date(day).weekday() >= 5


def week_bounds(day) -> tuple[date, date]:
    """Monday..Sunday week containing `day`."""
    d = parse_date(day)
    monday = d - timedelta(days=d.weekday())
    return monday, monday + timedelta(days=6)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives (2.5 -> 3)."""
    return math.floor(value + 0.5)
