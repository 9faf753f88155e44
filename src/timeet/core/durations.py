"""Duration arithmetic and formatting shared by meetings and agendas.

Clients send durations as time-of-day strings ("00:15:00" means fifteen
minutes), so parsing goes through ``datetime.time`` before becoming a
``timedelta``.
"""

from __future__ import annotations

from datetime import time, timedelta

from src.timeet.core.errors import BadRequestError

ZERO = timedelta(0)


def time_of_day_to_duration(value: time) -> timedelta:
    """Convert a time-of-day value into the duration since midnight."""
    return timedelta(
        hours=value.hour,
        minutes=value.minute,
        seconds=value.second,
        microseconds=value.microsecond,
    )


def parse_time_of_day(value: str, field: str = "ModifiedDuration") -> timedelta:
    """Parse ``HH:MM`` or ``HH:MM:SS`` into a duration.

    Raises:
        BadRequestError: If the string is not a valid time of day.
    """
    try:
        parsed = time.fromisoformat(value.strip())
    except (ValueError, AttributeError):
        raise BadRequestError(field, f"Invalid duration format: {value!r}") from None
    return time_of_day_to_duration(parsed)


def duration_diff(actual: timedelta, estimated: timedelta) -> timedelta:
    """Signed difference between actual and estimated durations."""
    return actual - estimated


def clamp_non_negative(value: timedelta) -> timedelta:
    return value if value > ZERO else ZERO


def format_duration(value: timedelta) -> str:
    """Render a duration as ``H:MM:SS``, prefixed with ``-`` when negative.

    Sub-second precision is dropped.
    """
    sign = "-" if value < ZERO else ""
    total_seconds = int(abs(value).total_seconds())
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{sign}{hours}:{minutes:02d}:{seconds:02d}"
