"""
Shared response models for API endpoints.

This module contains Pydantic response models that are shared across
the appointment and exam room endpoints.
"""

from datetime import datetime, date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from models import Appointment, ExamRoom
from utils.datetime_utils import format_clock


class ExamRoomResponse(BaseModel):
    """Response model for exam room information."""
    id: int
    organization_id: Optional[int] = None
    room_number: str
    name: str
    floor: int
    equipment: Optional[List[str]] = None
    capacity: int
    is_active: bool
    notes: Optional[str] = None

    @classmethod
    def from_room(cls, room: ExamRoom) -> "ExamRoomResponse":
        return cls(
            id=room.id,
            organization_id=room.organization_id,
            room_number=room.room_number,
            name=room.name,
            floor=room.floor,
            equipment=room.equipment,
            capacity=room.capacity,
            is_active=room.is_active,
            notes=room.notes,
        )


class ExamRoomListResponse(BaseModel):
    """Response model for listing exam rooms."""
    rooms: List[ExamRoomResponse]


class AppointmentResponse(BaseModel):
    """Response model for appointment information."""
    id: int
    organization_id: Optional[int] = None
    patient_id: int
    patient_name: str
    clinician_id: int
    exam_room_id: Optional[int] = None
    appointment_date: date  # Serialized to YYYY-MM-DD in JSON
    start_time: str  # Format: "HH:MM"
    end_time: str  # Format: "HH:MM"
    duration_minutes: int
    appointment_type: str
    status: str
    notes: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "AppointmentResponse":
        interval = appointment.interval
        return cls(
            id=appointment.id,
            organization_id=appointment.organization_id,
            patient_id=appointment.patient_id,
            patient_name=appointment.patient_name,
            clinician_id=appointment.clinician_id,
            exam_room_id=appointment.exam_room_id,
            appointment_date=appointment.appointment_date,
            start_time=format_clock(interval.start),
            end_time=format_clock(interval.end),
            duration_minutes=appointment.duration_minutes,
            appointment_type=appointment.appointment_type,
            status=appointment.status,
            notes=appointment.notes,
            cancelled_at=appointment.cancelled_at,
            cancellation_reason=appointment.cancellation_reason,
        )


class AppointmentListResponse(BaseModel):
    """Response model for paginated appointment listings."""
    appointments: List[AppointmentResponse]
    total: int
    page: int
    page_size: int


class CalendarResponse(BaseModel):
    """Response model for calendar view."""
    start_date: date
    end_date: date
    appointments: List[AppointmentResponse]


class RescheduleResponse(BaseModel):
    """Response model for a successful reschedule."""
    success: bool = True
    forced: bool = False  # True when moved despite reported conflicts
    appointment: AppointmentResponse


class ConflictReportResponse(BaseModel):
    """
    Response model for a reschedule blocked by conflicts (HTTP 409).

    Each conflict has ``type`` ("clinician" or "room"), ``message`` and
    ``conflictingAppointments`` ([{id, patientName, time}]).
    """
    success: bool = False
    conflicts: List[Dict[str, Any]]


class RoomAvailabilityListResponse(BaseModel):
    """Response model for exam room availability over a window."""
    rooms: List[Dict[str, Any]]  # RoomAvailability.to_dict()
