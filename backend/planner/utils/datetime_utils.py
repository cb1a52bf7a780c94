"""
Timezone-aware datetime utilities.

This module provides utilities for working with timezone-aware datetimes,
ensuring consistent handling across the scheduling engine.
"""

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional

# UTC timezone constant
UTC = timezone.utc


def ensure_aware(dt: datetime, tz: tzinfo) -> datetime:
    """
    Make a datetime timezone-aware.

    Naive datetimes are read as wall-clock time in ``tz``; aware ones are
    returned unchanged.

    Args:
        dt: datetime to normalize
        tz: timezone assumed for naive input

    Returns:
        datetime: Timezone-aware datetime
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is timezone-aware and in UTC.

    Args:
        dt: datetime to convert (can be None, naive, or timezone-aware)

    Returns:
        Optional[datetime]: UTC timezone-aware datetime, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def parse_iso_datetime(value: str, tz: tzinfo = UTC) -> datetime:
    """
    Parse an ISO 8601 timestamp from a calendar payload.

    A trailing "Z" means UTC and explicit offsets are kept; naive values are
    read as wall-clock time in ``tz``.

    Raises:
        ValueError: If the string is not an ISO timestamp
    """
    dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    return ensure_aware(dt, tz)


def format_utc_iso(dt: datetime) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SS.000Z`` (the calendar API wire format)."""
    utc_dt = ensure_utc(dt)
    return utc_dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc_dt.microsecond // 1000:03d}Z"


def parse_time_to_minutes(value: str) -> Optional[int]:
    """
    Parse ``HH:MM`` into minutes since midnight.

    ``24:00`` is accepted as the end of the day. Returns None for anything
    that is not a valid clock time.
    """
    parts = value.strip().split(":")
    if len(parts) != 2:
        return None
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
    except ValueError:
        return None
    if hours == 24 and minutes == 0:
        return 24 * 60
    if hours < 0 or hours > 23 or minutes < 0 or minutes > 59:
        return None
    return hours * 60 + minutes


def format_minutes_as_time(minutes: int) -> str:
    """Inverse of :func:`parse_time_to_minutes`."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def local_midnight(day: date, tz: tzinfo) -> datetime:
    """Start of ``day`` in ``tz``."""
    return datetime.combine(day, datetime.min.time(), tzinfo=tz)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from ``start`` to ``end``."""
    return int((end - start) // timedelta(minutes=1))
