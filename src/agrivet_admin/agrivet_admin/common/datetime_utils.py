from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD)")


def parse_optional_date(value: Optional[str]) -> Optional[date]:
    if not value or not value.strip():
        return None
    return parse_iso_date(value)


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; a bare date means midnight.

    Offsets are dropped: the database stores local naive timestamps.
    """

    v = (value or "").strip()
    if v.endswith("Z"):
        v = v[:-1]
    try:
        parsed = datetime.fromisoformat(v)
    except ValueError:
        raise ValidationError(f"Invalid date/time: {value!r}")
    return parsed.replace(tzinfo=None)


def parse_hhmm(value: str) -> time:
    try:
        return datetime.strptime((value or "").strip(), "%H:%M").time()
    except ValueError:
        raise ValidationError(f"Invalid time: {value!r} (expected HH:MM)")


def parse_month(value: str) -> Tuple[date, date]:
    """``YYYY-MM`` -> (first day of month, first day of next month)."""
    try:
        start = datetime.strptime((value or "").strip(), "%Y-%m").date()
    except ValueError:
        raise ValidationError(f"Invalid month: {value!r} (expected YYYY-MM)")
    return start, add_months(start, 1)


def add_months(d: date, months: int) -> date:
    """Shift to the first day of the month ``months`` away from ``d``."""
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def day_bounds(d: date) -> Tuple[datetime, datetime]:
    start = datetime.combine(d, time.min)
    return start, start + timedelta(days=1)


def date_range(start: date, end: date):
    """Yield every date from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
