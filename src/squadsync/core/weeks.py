"""Monday-aligned week math.

A week is identified by the ISO date (``YYYY-MM-DD``) of its Monday.  All
helpers work on naive calendar dates; callers holding a ``datetime`` get its
local calendar date.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta

DAYS_PER_WEEK = 7
DEFAULT_WINDOW = 4

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class WeekIdError(ValueError):
    """Raised when a string is not a valid week identifier."""


def _as_date(day: date | datetime | None) -> date:
    if day is None:
        return date.today()
    # datetime is a subclass of date; check it first.
    if isinstance(day, datetime):
        return day.date()
    return day


def start_of_week(day: date | datetime | None = None) -> date:
    """Return the Monday of the week containing *day* (default: today).

    Sunday belongs to the week of the preceding Monday.
    """
    d = _as_date(day)
    return d - timedelta(days=d.weekday())


def start_of_next_week(day: date | datetime | None = None) -> date:
    """Return the Monday after the week containing *day*."""
    return start_of_week(day) + timedelta(days=DAYS_PER_WEEK)


def shift_week(week_start: date, delta: int) -> date:
    """Move *delta* weeks forward (negative: backward) and realign to Monday."""
    return start_of_week(week_start + timedelta(days=DAYS_PER_WEEK * delta))


def weeks_from(start: date | datetime, count: int = DEFAULT_WINDOW) -> list[date]:
    """Return *count* consecutive week starts, beginning with the week of *start*."""
    base = start_of_week(start)
    return [base + timedelta(days=DAYS_PER_WEEK * i) for i in range(count)]


def future_week_starts(
    count: int = DEFAULT_WINDOW,
    day: date | datetime | None = None,
) -> list[date]:
    """Return *count* week starts beginning with next week."""
    return weeks_from(start_of_next_week(day), count)


def week_dates(week_start: date) -> list[date]:
    """Return the seven calendar dates of the week starting at *week_start*."""
    return [week_start + timedelta(days=i) for i in range(DAYS_PER_WEEK)]


def week_key(week_start: date) -> str:
    """Format a week start as its identifier."""
    return week_start.isoformat()


def week_id_for(day: date | datetime | None = None) -> str:
    """Return the identifier of the week containing *day*."""
    return week_key(start_of_week(day))


def parse_iso_date(raw: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` string.

    Raises:
        ValueError: If *raw* is not a real calendar date in that format.
    """
    if not isinstance(raw, str) or not _ISO_DATE_RE.match(raw):
        raise ValueError(f"Expected a YYYY-MM-DD date, got {raw!r}")
    return date.fromisoformat(raw)


def parse_week_id(week_id: str) -> date:
    """Parse and validate a week identifier, returning its Monday.

    Raises:
        WeekIdError: If *week_id* is malformed or does not fall on a Monday.
    """
    try:
        monday = parse_iso_date(week_id)
    except ValueError as exc:
        raise WeekIdError(f"Invalid week id {week_id!r}: {exc}") from None
    if monday.weekday() != 0:
        raise WeekIdError(f"Invalid week id {week_id!r}: {monday:%A} is not a Monday")
    return monday


def date_in_week(day_key: str, week_start: date) -> bool:
    """Return ``True`` if *day_key* is a valid ISO date inside the given week."""
    try:
        day = parse_iso_date(day_key)
    except ValueError:
        return False
    return week_start <= day < week_start + timedelta(days=DAYS_PER_WEEK)
