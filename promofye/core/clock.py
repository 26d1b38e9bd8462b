"""UTC helpers shared by services that store and compare timestamps."""

import calendar
from datetime import datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[Any]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite returns them naive)."""
    if value is None:
        return None
    if getattr(value, "tzinfo", None) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_now(now: Optional[Any]) -> datetime:
    if now is None:
        return utcnow()
    return ensure_utc(now)


def start_of_month(now: Optional[Any] = None) -> datetime:
    """First instant of the current UTC calendar month."""
    current = normalize_now(now)
    return current.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def add_one_month(value: datetime) -> datetime:
    """Same day next month, clamped to the month's last day."""
    year = value.year + (1 if value.month == 12 else 0)
    month = 1 if value.month == 12 else value.month + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
