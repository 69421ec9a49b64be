"""UTC date helpers shared by calendar queries."""

import calendar
from datetime import datetime, timezone
from typing import Optional, Tuple


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return ``value`` as an aware UTC datetime. Naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def month_window(year: int, month: int) -> Tuple[datetime, datetime]:
    """
    Inclusive UTC bounds of a calendar month.

    Returns the first instant of the month and the last instant before the
    following month starts.
    """
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    last_day = calendar.monthrange(year, month)[1]
    end = datetime(year, month, last_day, 23, 59, 59, 999999, tzinfo=timezone.utc)
    return start, end


def within(value: datetime, start: datetime, end: datetime) -> bool:
    """Closed-interval check on UTC-normalized instants."""
    value = ensure_utc(value)
    return ensure_utc(start) <= value <= ensure_utc(end)
