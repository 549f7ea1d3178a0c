"""
Shared types module.

This module contains dataclasses and types that are used across multiple services.
"""

from .scheduling import (
    ConflictingAppointment,
    ConflictEntry,
    ConflictReport,
    RescheduleResult,
    RoomBooking,
    RoomAvailability,
)

__all__ = [
    "ConflictingAppointment",
    "ConflictEntry",
    "ConflictReport",
    "RescheduleResult",
    "RoomBooking",
    "RoomAvailability",
]
