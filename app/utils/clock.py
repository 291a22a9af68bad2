"""
Time helpers. All stored timestamps are timezone-aware UTC.
"""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from app.core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values read back from storage (SQLite drops tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def from_venue_time(value: datetime, tz_name: Optional[str] = None) -> datetime:
    """Interpret naive user input in the venue's timezone and convert to UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=ZoneInfo(tz_name or settings.VENUE_TIMEZONE))
    return value.astimezone(timezone.utc)
