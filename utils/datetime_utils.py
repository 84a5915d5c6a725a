"""
Datetime utilities for scheduling.
Calendar dates and times of day are kept separate, the way appointments
are booked; timestamps exchanged with Supabase are timezone-aware ISO strings.
"""

from datetime import date, datetime, time, timezone
from typing import Union

import pytz

WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def business_now(tz_name: str) -> datetime:
    """Current time in the business timezone."""
    return utc_now().astimezone(pytz.timezone(tz_name))


def parse_iso_datetime(iso_string: str) -> datetime:
    """
    Parse ISO format datetime string to timezone-aware datetime.
    Handles both 'Z' suffix and '+00:00' timezone formats.

    Raises:
        ValueError: If datetime string cannot be parsed
    """
    normalized = iso_string.replace("Z", "+00:00")

    try:
        dt = datetime.fromisoformat(normalized)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except ValueError as e:
        raise ValueError(f"Invalid datetime string: {iso_string}") from e


def to_iso_string(dt: datetime) -> str:
    """Convert datetime to ISO format string, assuming UTC for naive values."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return dt.isoformat()


def parse_date(value: Union[date, datetime, str]) -> date:
    """
    Convert a calendar date given as date or 'YYYY-MM-DD' string.

    Raises:
        ValueError: If the string is not a valid ISO date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as e:
            raise ValueError(f"Invalid date string: {value!r}") from e
    raise ValueError(f"Cannot convert {type(value)} to date")


def parse_time(value: Union[time, str]) -> time:
    """
    Convert a time of day given as time or 'HH:MM' string.

    Raises:
        ValueError: If the string is not a valid time
    """
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        try:
            return time.fromisoformat(value.strip())
        except ValueError as e:
            raise ValueError(f"Invalid time string: {value!r}") from e
    raise ValueError(f"Cannot convert {type(value)} to time")


def time_to_minutes(value: Union[time, str]) -> int:
    """Minutes since midnight, ignoring seconds."""
    t = parse_time(value)
    return t.hour * 60 + t.minute


def minutes_to_time(minutes: int) -> time:
    """Inverse of time_to_minutes. Values past midnight are rejected."""
    if minutes < 0 or minutes >= 24 * 60:
        raise ValueError(f"Minute offset out of range for a single day: {minutes}")
    return time(minutes // 60, minutes % 60)


def format_minutes(minutes: int) -> str:
    """
    Format minutes since midnight as HH:MM.

    Unlike minutes_to_time this does not wrap or fail past 24:00, so an
    appointment ending exactly at midnight renders as "24:00".
    """
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def weekday_name(value: date) -> str:
    """Lowercase English weekday name used as business-hours key."""
    return WEEKDAY_NAMES[value.weekday()]


def combine_local(day: date, at: time, tz_name: str) -> datetime:
    """Attach the business timezone to a calendar date and time of day."""
    tz = pytz.timezone(tz_name)
    return tz.localize(datetime.combine(day, at))
