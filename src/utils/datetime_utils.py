"""
Datetime utilities for consistent timezone handling across the application.

Appointment dates and times are stored as naive values interpreted in the
clinic timezone (``CLINIC_TIMEZONE``). Anything compared against "now" is
made timezone-aware in that zone first.
"""

import logging
from datetime import date, datetime, time
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from core.config import CLINIC_TIMEZONE

logger = logging.getLogger(__name__)


@lru_cache
def clinic_tz() -> ZoneInfo:
    """Timezone all business logic is evaluated in."""
    return ZoneInfo(CLINIC_TIMEZONE)


def clinic_now() -> datetime:
    """
    Get current datetime in the clinic timezone.

    Returns:
        Current timezone-aware datetime
    """
    return datetime.now(clinic_tz())


def ensure_clinic_tz(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware in the clinic timezone.

    Naive datetimes are assumed to already be clinic-local time.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=clinic_tz())
    return dt.astimezone(clinic_tz())


def combine_local(day: date, time_of_day: time) -> datetime:
    """Combine a stored date and time into an aware clinic-local datetime."""
    return datetime.combine(day, time_of_day).replace(tzinfo=clinic_tz())


def parse_time_string(time_str: str) -> time:
    """
    Parse an "H", "H:MM" or "H:MM:SS" string into a time.

    Raises:
        ValueError: If any component is not numeric or out of range
    """
    parts = time_str.strip().split(":")
    if not parts or len(parts) > 3 or not all(p.strip().isdigit() for p in parts):
        raise ValueError(f"Invalid time format: {time_str}. Expected HH:MM")

    hour = int(parts[0])
    minute = int(parts[1]) if len(parts) > 1 else 0
    second = int(parts[2]) if len(parts) > 2 else 0
    return time(hour, minute, second)


def format_clock(dt: datetime | time) -> str:
    """Format as 24-hour HH:MM."""
    return dt.strftime("%H:%M")
