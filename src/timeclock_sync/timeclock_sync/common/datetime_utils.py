from __future__ import annotations

import calendar
import re
from datetime import date, datetime, time, timedelta
from typing import Iterator

from ..core.exceptions import ValidationError

_HHMM = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD") from None


def parse_hhmm(value: str) -> time:
    """Parse an HH:MM cutoff string ("9:00" and "09:00" are both accepted)."""
    m = _HHMM.match((value or "").strip())
    if not m:
        raise ValidationError(f"Invalid time {value!r}, expected HH:MM")
    return time(hour=int(m.group(1)), minute=int(m.group(2)))


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def to_millis(value: datetime) -> int:
    """Epoch milliseconds of a naive wall-clock timestamp (treated as UTC)."""
    return calendar.timegm(value.timetuple()) * 1000 + value.microsecond // 1000


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Inclusive date iterator."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
