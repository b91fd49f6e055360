"""Utilities for local wall-clock datetimes used by reminders and triggers.

Reminders are scheduled in the user's local time, so every timestamp handled
by the core is a naive local ``datetime``. Aware values coming from callers
are converted to local time and stripped of their ``tzinfo``.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional, Union

from dateutil.relativedelta import relativedelta


def local_now() -> datetime:
    return datetime.now().replace(microsecond=0)


def ensure_local(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt
    return dt.astimezone().replace(tzinfo=None)


def parse_iso(s: Optional[Union[str, datetime]]) -> Optional[datetime]:
    """Parse an ISO-8601 string into a naive local datetime."""

    if s is None:
        return None
    if isinstance(s, datetime):
        return ensure_local(s)
    value = s.strip()
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        return None
    return ensure_local(dt)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Format with second precision, e.g. ``2026-03-01T09:30:00``."""

    if dt is None:
        return None
    return ensure_local(dt).replace(microsecond=0).isoformat()


def add_months(dt: datetime, months: int) -> datetime:
    # relativedelta clamps Jan 31 + 1 month to the last day of February.
    return dt + relativedelta(months=months)


def at_time(day: Union[date, datetime], hour: int, minute: int = 0) -> datetime:
    base = day.date() if isinstance(day, datetime) else day
    return datetime.combine(base, time(hour, minute))


__all__ = [
    "add_months",
    "at_time",
    "ensure_local",
    "local_now",
    "parse_iso",
    "to_iso",
]
