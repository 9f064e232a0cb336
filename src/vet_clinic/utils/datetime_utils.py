"""
Date utilities for treatment scheduling.

This module provides timezone-aware "today" handling, calendar-day arithmetic
used by protocol scheduling, ISO date parsing and inclusive range checks.
"""

from datetime import date, datetime, timedelta
from typing import Callable, Optional, Union
from zoneinfo import ZoneInfo

# A clock returns the clinic-local calendar date
Clock = Callable[[], date]


def get_current_utc() -> datetime:
    """Get the current UTC datetime."""
    return datetime.now(ZoneInfo("UTC"))


def get_current_local(timezone: str = "UTC") -> datetime:
    """Get the current datetime in a specific timezone."""
    return datetime.now(ZoneInfo(timezone))


def clinic_today(timezone: str = "UTC") -> date:
    """Get today's calendar date in the clinic's timezone."""
    return get_current_local(timezone).date()


def make_clock(timezone: str = "UTC") -> Clock:
    """Build a clock bound to a timezone."""

    def clock() -> date:
        return clinic_today(timezone)

    return clock


def add_days(start: date, days: int) -> date:
    """Return the calendar date ``days`` after ``start``."""
    return start + timedelta(days=days)


def add_interval(start: date, offset_days: int) -> date:
    """
    Apply a protocol interval to ``start``.

    Offsets that are whole multiples of 365 are yearly boosters and move by
    calendar years, so a dose on 2024-01-15 with a 365-day interval is due on
    2025-01-15 despite the leap day. A 29 February start falls back to
    28 February. Any other offset is plain day arithmetic.
    """
    if offset_days <= 0 or offset_days % 365:
        return add_days(start, offset_days)

    year = start.year + offset_days // 365
    try:
        return start.replace(year=year)
    except ValueError:
        return start.replace(year=year, day=28)


def parse_date(value: Union[str, date, datetime]) -> date:
    """
    Parse a calendar date.

    Accepts ``date`` objects, ``datetime`` objects (the date part is kept) and
    ISO-8601 strings, with or without a time component.

    Raises:
        ValueError: If the string is not a valid ISO date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = value.strip()
    if "T" in text or " " in text:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    return date.fromisoformat(text)


def is_within_range(day: date, start: Optional[date], end: Optional[date]) -> bool:
    """Check ``start <= day <= end``; a missing bound is open."""
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


def days_until(target: date, today: date) -> int:
    """Number of days from ``today`` to ``target`` (negative when past)."""
    return (target - today).days
