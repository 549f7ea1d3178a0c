"""
Half-open time intervals and the overlap predicate.

``overlaps`` is the only place interval arithmetic is done. Conflict checks,
reschedule reports and room availability all go through it so that boundary
handling is identical everywhere: an appointment ending at 10:30 and one
starting at 10:30 do not conflict.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List

from utils.datetime_utils import combine_local, ensure_clinic_tz, format_clock


@dataclass(frozen=True)
class TimeInterval:
    """
    Time range ``[start, end)``; ``end`` is exclusive.

    Both ends are timezone-aware clinic-local datetimes. Appointment slots
    sit on a single day; availability query windows may span several.
    """
    start: datetime
    end: datetime

    @classmethod
    def from_slot(cls, day: date, start_time: time, duration_minutes: int) -> "TimeInterval":
        """Interval for an appointment stored as date + time-of-day + duration."""
        start = combine_local(day, start_time)
        return cls(start, start + timedelta(minutes=duration_minutes))

    @classmethod
    def between(cls, start: datetime, end: datetime) -> "TimeInterval":
        """Interval for an arbitrary window; naive datetimes are taken as clinic-local."""
        return cls(ensure_clinic_tz(start), ensure_clinic_tz(end))  # type: ignore[arg-type]

    @property
    def is_empty(self) -> bool:
        """Zero-length and reversed intervals cover no time."""
        return self.end <= self.start

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def dates(self) -> List[date]:
        """Calendar dates touched by the interval, in order."""
        if self.is_empty:
            return []
        last = (self.end - timedelta(microseconds=1)).date()
        days: List[date] = []
        current = self.start.date()
        while current <= last:
            days.append(current)
            current += timedelta(days=1)
        return days

    def overlaps(self, other: "TimeInterval") -> bool:
        return overlaps(self, other)

    def format_clock_range(self) -> str:
        """Format as "HH:MM - HH:MM" for conflict reports."""
        return f"{format_clock(self.start)} - {format_clock(self.end)}"


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    """
    Strict half-open overlap test: ``a.start < b.end and a.end > b.start``.

    Adjacent intervals do not overlap, and an empty interval overlaps nothing.
    """
    if a.is_empty or b.is_empty:
        return False
    return a.start < b.end and a.end > b.start
