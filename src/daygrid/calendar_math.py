"""Calendar date arithmetic for the day grid.

All functions work on whole calendar days. ``datetime`` inputs are normalized
to their calendar day (local midnight) before any arithmetic, so offsets are
exact day counts and never drift across daylight-saving transitions.
"""

import re
from datetime import date, datetime, timedelta

DAYS_PER_WEEK = 7

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def as_date(value: date | datetime) -> date:
    """Normalize a date or datetime to a plain calendar date."""
    if isinstance(value, datetime):
        return value.date()
    return value


def monday_of(value: date | datetime) -> date:
    """Return the Monday of the ISO week containing ``value``.

    The result's weekday is always Monday and ``result <= value <= result + 6``.
    """
    day = as_date(value)
    return day - timedelta(days=day.weekday())


def day_offset(start: date | datetime, end: date | datetime) -> int:
    """Whole-day difference ``end - start``.

    Satisfies ``day_offset(d, d) == 0`` and ``day_offset(d, add_days(d, n)) == n``.
    """
    return (as_date(end) - as_date(start)).days


def add_days(value: date | datetime, days: int) -> date:
    """Shift a date by ``days`` (may be negative)."""
    return as_date(value) + timedelta(days=days)


def end_date(start: date | datetime, duration: int) -> date:
    """Last day covered by a span of ``duration`` days starting at ``start``."""
    return add_days(start, duration - 1)


def format_iso(value: date | datetime) -> str:
    """Format as ``YYYY-MM-DD``."""
    return as_date(value).isoformat()


def parse_iso(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` string.

    Raises:
        ValueError: If the string is not a well-formed calendar date
    """
    match = _ISO_DATE_RE.match(value.strip())
    if not match:
        raise ValueError(f"Invalid date '{value}': expected YYYY-MM-DD")
    year, month, day = (int(part) for part in match.groups())
    # date() rejects impossible days such as 2024-02-30
    return date(year, month, day)


def coerce_date(value: str | date | datetime) -> date:
    """Accept an ISO string, date or datetime and return a calendar date."""
    if isinstance(value, str):
        return parse_iso(value)
    return as_date(value)


def date_range(start: date, days: int) -> list[date]:
    """List of ``days`` consecutive dates beginning at ``start``."""
    return [add_days(start, offset) for offset in range(days)]
