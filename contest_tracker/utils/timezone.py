"""Timezone conversion utilities"""
from datetime import datetime
from typing import Optional
import pytz


def to_utc(dt: datetime, tz: Optional[str] = None) -> datetime:
    """
    Convert a datetime to naive UTC.

    Args:
        dt: Datetime object (naive or timezone-aware)
        tz: Optional timezone string (e.g., 'Asia/Kolkata')
            If provided and dt is naive, dt is assumed to be in that timezone

    Returns:
        Naive datetime object in UTC
    """
    if dt.tzinfo is None:
        if tz:
            # Naive datetime, assume it's in the specified timezone
            tz_obj = pytz.timezone(tz)
            dt = tz_obj.localize(dt)
        else:
            # Naive datetime, assume UTC
            dt = pytz.UTC.localize(dt)

    return dt.astimezone(pytz.UTC).replace(tzinfo=None, microsecond=0)


def from_timestamp(seconds: float) -> datetime:
    """Convert a Unix timestamp to a naive UTC datetime"""
    return datetime.fromtimestamp(int(seconds), tz=pytz.UTC).replace(tzinfo=None)


def parse_iso(value: str, tz: Optional[str] = None) -> datetime:
    """
    Parse an ISO 8601 string into a naive UTC datetime.

    Strings without an offset are interpreted in ``tz`` (UTC by default).
    A trailing ``Z`` is accepted.
    """
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(value), tz)


def now_utc() -> datetime:
    """Get current UTC time as naive datetime"""
    return datetime.now(pytz.UTC).replace(tzinfo=None)
