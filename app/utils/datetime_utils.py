"""
Datetime helpers.

Everything is stored in UTC. Campaign "days" and vendor opening hours are local
(settings.timezone), so conversions go through pytz here.
"""
from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta
from typing import Any

import pytz

from app.core.config import settings

_CLOCK_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])?\s*$")


def iso_or_none(dt: datetime | None | Any) -> str | None:
    """
    Return ISO format string for dt, or None if dt is None.
    Accepts datetime or SQLAlchemy DateTime (Mapped[DateTime | None]) for convenience.
    """
    if dt is None:
        return None
    if hasattr(dt, "isoformat"):
        return dt.isoformat()
    return None


def dt_replace_utc(dt: datetime | None | Any) -> datetime | None:
    """
    Return dt with tzinfo=UTC if naive, or None if dt is None.
    Use for optional datetimes that may be naive (e.g. from SQLite).
    """
    if dt is None:
        return None
    if isinstance(dt, datetime):
        return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt
    return None


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(dt: datetime | None) -> datetime | None:
    """Aware UTC datetime (naive input is assumed to be UTC already)."""
    dt = dt_replace_utc(dt)
    return dt.astimezone(UTC) if dt is not None else None


def get_timezone():
    return pytz.timezone(settings.timezone)


def local_now(now: datetime | None = None) -> datetime:
    """Current time (or `now`) in the business timezone."""
    now = dt_replace_utc(now) or utc_now()
    return now.astimezone(get_timezone())


def local_day_bounds(now: datetime | None = None, days_ago: int = 0) -> tuple[datetime, datetime]:
    """
    Start/end of a local calendar day as UTC datetimes.

    days_ago=0 is today, 1 is yesterday and so on. End is exclusive.
    """
    tz = get_timezone()
    local = local_now(now)
    day = local.date() - timedelta(days=days_ago)
    start_local = tz.localize(datetime(day.year, day.month, day.day))
    end_local = tz.localize(datetime(day.year, day.month, day.day) + timedelta(days=1))
    return start_local.astimezone(UTC), end_local.astimezone(UTC)


def local_date_str(now: datetime | None = None) -> str:
    """YYYY-MM-DD for the local day."""
    return local_now(now).strftime("%Y-%m-%d")


def js_weekday(dt: datetime) -> int:
    """Day of week with 0=Sunday..6=Saturday (vendor operating_days convention)."""
    return (dt.weekday() + 1) % 7


def parse_clock_time(value: str | None) -> int | None:
    """
    Parse "9:30 AM", "09:30" or "9:30" into minutes since midnight.
    Returns None if unparseable.
    """
    if not value:
        return None
    match = _CLOCK_RE.match(value)
    if not match:
        return None
    hour, minute, period = int(match.group(1)), int(match.group(2)), match.group(3)
    if minute > 59:
        return None
    if period:
        if hour < 1 or hour > 12:
            return None
        period = period.upper()
        if period == "PM" and hour != 12:
            hour += 12
        elif period == "AM" and hour == 12:
            hour = 0
    elif hour > 23:
        return None
    return hour * 60 + minute
