"""Scheduling domain exceptions."""

from typing import Any


class SchedulingError(Exception):
    """Base class for business-rule violations raised by the scheduling services."""

    error_code = "scheduling_error"

    def __init__(self, message: str, status_code: int = 400):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

    def to_detail(self) -> dict[str, Any]:
        """Structured detail for API error responses."""
        return {"error": self.error_code, "message": self.message}


class NotFound(SchedulingError):
    """Referenced appointment or room does not exist."""

    error_code = "not_found"

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class Forbidden(SchedulingError):
    """Caller may not act on this appointment."""

    error_code = "forbidden"

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, status_code=403)


class ClinicianUnavailable(SchedulingError):
    """The clinician already has an active appointment overlapping the slot."""

    error_code = "clinician_unavailable"

    def __init__(self, message: str = "Clinician is not available at the requested time."):
        super().__init__(message, status_code=409)


class RoomUnavailable(SchedulingError):
    """The exam room already has an active appointment overlapping the slot."""

    error_code = "room_unavailable"

    def __init__(self, message: str = "Room is not available at the requested time."):
        super().__init__(message, status_code=409)


class RoomInactive(SchedulingError):
    """The exam room is deactivated and cannot be booked."""

    error_code = "room_inactive"

    def __init__(self, message: str = "Room is not active."):
        super().__init__(message, status_code=400)


class InvalidTransition(SchedulingError):
    """The requested status change is not allowed from the current status."""

    error_code = "invalid_transition"

    def __init__(self, current_status: str, target_status: str, message: str | None = None):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            message or f"Cannot change appointment from '{current_status}' to '{target_status}'.",
            status_code=409,
        )


class CancellationWindowExpired(SchedulingError):
    """Patient tried to cancel too close to the appointment start."""

    error_code = "cancellation_window_expired"

    def __init__(self, minimum_hours: int):
        self.minimum_hours = minimum_hours
        super().__init__(
            f"This appointment cannot be cancelled. It must be at least {minimum_hours} hours "
            f"before the appointment time.",
            status_code=422,
        )

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail["minimum_hours"] = self.minimum_hours
        return detail


class InvalidSlot(SchedulingError):
    """Requested slot is malformed (e.g., runs past midnight)."""

    error_code = "invalid_slot"

    def __init__(self, message: str = "Appointment must end on the day it starts."):
        super().__init__(message, status_code=422)


class DuplicateRoomNumber(SchedulingError):
    """Another exam room already uses this room number."""

    error_code = "duplicate_room_number"

    def __init__(self, room_number: str):
        self.room_number = room_number
        super().__init__(f"Room number '{room_number}' is already in use.", status_code=409)


class InvalidFilter(SchedulingError):
    """A listing filter value is not recognised."""

    error_code = "invalid_filter"

    def __init__(self, name: str, value: object):
        self.name = name
        super().__init__(f"Invalid value for {name}: {value!r}", status_code=422)
