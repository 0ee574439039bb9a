"""
Datetime utilities for consistent timezone handling across the engine.

All engine logic works on timezone-aware datetimes. Wall-clock decisions
(schedule slots, quiet hours, template dates) are made in the configured
engine timezone (ENGINE_TIMEZONE, UTC by default).
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from core.config import ENGINE_TIMEZONE

logger = logging.getLogger(__name__)

ENGINE_TZ = ZoneInfo(ENGINE_TIMEZONE)


def engine_now() -> datetime:
    """
    Get the current datetime in the engine timezone.

    Returns:
        Current timezone-aware datetime
    """
    return datetime.now(ENGINE_TZ)


def ensure_engine_tz(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware and expressed in the engine timezone.

    Args:
        dt: Datetime to normalize

    Returns:
        Timezone-aware datetime in the engine timezone, or None if input is None
    """
    if dt is None:
        return None
    return to_engine_tz(dt)


def to_engine_tz(dt: datetime) -> datetime:
    """Express a datetime in the engine timezone, treating naive values as engine wall-clock time."""
    if dt.tzinfo is None:
        # If naive, assume it's already engine wall-clock time
        return dt.replace(tzinfo=ENGINE_TZ)
    return dt.astimezone(ENGINE_TZ)


def to_utc(dt: datetime) -> datetime:
    """Convert a datetime to UTC, treating naive values as engine wall-clock time."""
    return to_engine_tz(dt).astimezone(timezone.utc)


def parse_hhmm(value: str) -> tuple[int, int]:
    """
    Parse an "HH:MM" 24-hour time string.

    Raises:
        ValueError: If the string is not a valid HH:MM time
    """
    try:
        parts = value.split(':')
        if len(parts) != 2:
            raise ValueError("Time must be in HH:MM format")
        hour = int(parts[0])
        minute = int(parts[1])
    except (ValueError, AttributeError) as e:
        raise ValueError(f"Invalid time format: {value}. Must be HH:MM (24-hour format)") from e
    if hour < 0 or hour > 23:
        raise ValueError(f"Invalid time format: {value}. Hour must be between 0 and 23")
    if minute < 0 or minute > 59:
        raise ValueError(f"Invalid time format: {value}. Minute must be between 0 and 59")
    return hour, minute


def hhmm_to_minutes(value: str) -> int:
    """Convert "HH:MM" to minute-of-day."""
    hour, minute = parse_hhmm(value)
    return hour * 60 + minute


def minute_of_day(dt: datetime) -> int:
    """Minute-of-day of a datetime in the engine timezone."""
    local = to_engine_tz(dt)
    return local.hour * 60 + local.minute


def format_hhmm(dt: datetime) -> str:
    """Format the engine wall-clock time of a datetime as "HH:MM"."""
    local = to_engine_tz(dt)
    return f"{local.hour:02d}:{local.minute:02d}"


def truncate_to_minute(dt: datetime) -> datetime:
    """Drop seconds and microseconds. The result is in the engine timezone."""
    local = to_engine_tz(dt)
    return local.replace(second=0, microsecond=0)


def sunday_based_weekday(dt: datetime) -> int:
    """
    Weekday index with Sunday = 0 ... Saturday = 6, in the engine timezone.

    Python's weekday() returns 0=Monday ... 6=Sunday; schedules use Sunday = 0.
    """
    local = to_engine_tz(dt)
    return (local.weekday() + 1) % 7


def start_of_day(dt: datetime) -> datetime:
    """Midnight of the engine-timezone day containing dt."""
    local = to_engine_tz(dt)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def minutes_between(earlier: datetime, later: datetime) -> float:
    """Elapsed minutes from earlier to later (negative if later precedes earlier)."""
    return (later - earlier) / timedelta(minutes=1)


def format_display_date(dt: datetime) -> str:
    """
    Format a date for user-facing messages, e.g. "3/14/2026".

    Used by the {{date}} template placeholder.
    """
    local = to_engine_tz(dt)
    return f"{local.month}/{local.day}/{local.year}"


def format_display_time(dt: datetime) -> str:
    """
    Format a time for user-facing messages in 12-hour format, e.g. "9:05:00 AM".

    Used by the {{time}} template placeholder.
    """
    local = to_engine_tz(dt)

    hour = local.hour
    if hour == 0:
        hour_12 = 12
        period = 'AM'
    elif hour < 12:
        hour_12 = hour
        period = 'AM'
    elif hour == 12:
        hour_12 = 12
        period = 'PM'
    else:
        hour_12 = hour - 12
        period = 'PM'

    return f"{hour_12}:{local.minute:02d}:{local.second:02d} {period}"
