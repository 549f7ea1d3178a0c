"""
Request models validated by the scheduling services.

Shape validation happens here, before any database work: duration bounds,
note lengths, category values and the single-day rule for appointment slots.
"""

from datetime import date, time
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.config import MAX_DURATION_MINUTES, MIN_DURATION_MINUTES
from core.constants import AppointmentCategory, MAX_CANCELLATION_REASON_LENGTH, MAX_NOTES_LENGTH
from utils.datetime_utils import parse_time_string


def _coerce_time(value: Any) -> Any:
    if isinstance(value, str):
        return parse_time_string(value)
    return value


def ends_same_day(start: time, duration_minutes: int) -> bool:
    """True if a slot starting at ``start`` ends no later than midnight."""
    start_seconds = start.hour * 3600 + start.minute * 60 + start.second
    return start_seconds + duration_minutes * 60 <= 24 * 3600


class ScheduleRequest(BaseModel):
    """Request to book a new appointment."""
    model_config = ConfigDict(str_strip_whitespace=True)

    patient_id: int
    clinician_id: int
    appointment_date: date
    appointment_time: time  # Accepts "HH:MM"
    duration_minutes: int = Field(ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)
    appointment_type: AppointmentCategory = AppointmentCategory.ROUTINE
    exam_room_id: Optional[int] = None
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)
    organization_id: Optional[int] = None

    @field_validator('appointment_time', mode='before')
    @classmethod
    def parse_time(cls, v: Any) -> Any:
        return _coerce_time(v)

    @model_validator(mode='after')
    def validate_single_day(self) -> "ScheduleRequest":
        if not ends_same_day(self.appointment_time, self.duration_minutes):
            raise ValueError('Appointment must end on the day it starts')
        return self


class RescheduleRequest(BaseModel):
    """Request to move an appointment to a new slot."""
    appointment_date: date
    appointment_time: time
    duration_minutes: Optional[int] = Field(default=None, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)
    force: bool = False
    """Move even when the new slot conflicts (after a human reviewed the report)."""

    @field_validator('appointment_time', mode='before')
    @classmethod
    def parse_time(cls, v: Any) -> Any:
        return _coerce_time(v)


class ScheduleUpdate(BaseModel):
    """Partial update of an appointment's details; unset fields are kept."""
    clinician_id: Optional[int] = None
    exam_room_id: Optional[int] = None
    appointment_date: Optional[date] = None
    appointment_time: Optional[time] = None
    duration_minutes: Optional[int] = Field(default=None, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)
    appointment_type: Optional[AppointmentCategory] = None
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)

    @field_validator('appointment_time', mode='before')
    @classmethod
    def parse_time(cls, v: Any) -> Any:
        return _coerce_time(v)

    @property
    def changes_slot(self) -> bool:
        """True when the clinician or the time slot changes."""
        fields = self.model_fields_set
        return bool(fields & {'clinician_id', 'appointment_date', 'appointment_time', 'duration_minutes'})


class CancelRequest(BaseModel):
    """Request to cancel an appointment."""
    model_config = ConfigDict(str_strip_whitespace=True)

    reason: str = Field(min_length=1, max_length=MAX_CANCELLATION_REASON_LENGTH)

