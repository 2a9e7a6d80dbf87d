"""Calendar helpers shared by the analytics modules."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from goaltracker.errors import InvalidInput


def _tz(tz_name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidInput(f"Unknown timezone: {tz_name}") from exc


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_aware(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def local_date(dt: datetime, tz_name: str | None = None) -> date:
    """Calendar day of ``dt`` in the given timezone."""
    return as_aware(dt).astimezone(_tz(tz_name)).date()


def whole_days_between(start: datetime, end: datetime) -> int:
    """Whole elapsed days from start to end (negative when end is earlier)."""
    delta = as_aware(end) - as_aware(start)
    if delta >= timedelta(0):
        return delta.days
    return -((-delta).days)


def start_of_week(dt: datetime) -> datetime:
    """Monday 00:00 UTC of the ISO week containing ``dt``."""
    d = as_aware(dt).astimezone(timezone.utc).date()
    monday = d - timedelta(days=d.weekday())
    return datetime.combine(monday, time.min, tzinfo=timezone.utc)


def start_of_month(dt: datetime, tz_name: str | None = None) -> datetime:
    local = as_aware(dt).astimezone(_tz(tz_name))
    return datetime.combine(local.date().replace(day=1), time.min, tzinfo=_tz(tz_name))


def shift_month(month_start: datetime, months: int) -> datetime:
    """First day of the month ``months`` away from ``month_start``."""
    index = month_start.year * 12 + (month_start.month - 1) + months
    year, month = divmod(index, 12)
    return month_start.replace(year=year, month=month + 1, day=1)


def end_of_year(dt: datetime) -> datetime:
    d = as_aware(dt)
    return d.replace(month=12, day=31, hour=0, minute=0, second=0, microsecond=0)
