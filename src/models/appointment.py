"""
Appointment model representing scheduled visits between a patient and a clinician.

The appointment slot is stored as a calendar date, a time of day and a
duration. The half-open interval it occupies is derived on demand and never
stored, so every conflict check works from the same three columns.
"""

from datetime import date as date_type, datetime, time
from typing import Any, Dict, Optional

from sqlalchemy import String, ForeignKey, Index, TIMESTAMP, Date, Time, Integer, Text, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import AppointmentStatus, UNKNOWN_PATIENT_NAME
from core.database import Base
from utils.time_interval import TimeInterval


class Appointment(Base):
    """
    Appointment entity.

    Appointments are created in status 'scheduled' and move through the
    status transitions defined in ``core.constants.ALLOWED_TRANSITIONS``.
    They are never physically deleted.
    """

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the appointment."""

    organization_id: Mapped[Optional[int]] = mapped_column(nullable=True)
    """Organization (tenant) the appointment belongs to."""

    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id", ondelete="RESTRICT"))
    """Reference to the patient who has booked this appointment."""

    clinician_id: Mapped[int] = mapped_column(Integer)
    """Opaque key of the clinician seeing the patient."""

    exam_room_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("exam_rooms.id", ondelete="SET NULL"), nullable=True
    )
    """Optional exam room the appointment takes place in."""

    appointment_date: Mapped[date_type] = mapped_column(Date)
    """Calendar date of the appointment (clinic-local)."""

    appointment_time: Mapped[time] = mapped_column(Time)
    """Start time of day (clinic-local)."""

    duration_minutes: Mapped[int] = mapped_column(Integer)

    appointment_type: Mapped[str] = mapped_column(String(50), default="routine")
    """Valid values: 'routine', 'follow_up', 'consultation', 'emergency'."""

    status: Mapped[str] = mapped_column(String(50), default=AppointmentStatus.SCHEDULED.value)
    """Valid values: 'scheduled', 'in_progress', 'completed', 'cancelled', 'no_show'."""

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    """Set together with cancellation_reason, only when the appointment is cancelled."""

    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    patient = relationship("Patient", back_populates="appointments")
    exam_room = relationship("ExamRoom", back_populates="appointments")

    __table_args__ = (
        CheckConstraint('duration_minutes > 0', name='check_positive_duration'),
        Index('idx_appointments_date_time', 'appointment_date', 'appointment_time'),
        # Coarse conflict lookups filter on resource + date
        Index('idx_appointments_clinician_date', 'clinician_id', 'appointment_date'),
        Index('idx_appointments_room_date', 'exam_room_id', 'appointment_date'),
        Index('idx_appointments_status', 'status'),
        Index('idx_appointments_patient', 'patient_id'),
    )

    @property
    def status_enum(self) -> AppointmentStatus:
        return AppointmentStatus(self.status)

    @property
    def is_active(self) -> bool:
        """Active appointments occupy their clinician and room."""
        return self.status_enum.is_active

    @property
    def interval(self) -> TimeInterval:
        """Half-open interval ``[date+time, date+time+duration)``."""
        return TimeInterval.from_slot(self.appointment_date, self.appointment_time, self.duration_minutes)

    @property
    def start_datetime(self) -> datetime:
        return self.interval.start

    @property
    def end_datetime(self) -> datetime:
        return self.interval.end

    @property
    def patient_name(self) -> str:
        """Display name of the patient, or a fallback when the record is missing."""
        if self.patient is None:
            return UNKNOWN_PATIENT_NAME
        return self.patient.full_name

    def to_snapshot(self) -> Dict[str, Any]:
        """Attribute snapshot recorded in audit logs."""
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "patient_id": self.patient_id,
            "clinician_id": self.clinician_id,
            "exam_room_id": self.exam_room_id,
            "appointment_date": self.appointment_date.isoformat() if self.appointment_date else None,
            "appointment_time": self.appointment_time.strftime("%H:%M:%S") if self.appointment_time else None,
            "duration_minutes": self.duration_minutes,
            "appointment_type": self.appointment_type,
            "status": self.status,
            "notes": self.notes,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "cancellation_reason": self.cancellation_reason,
        }

    def __repr__(self) -> str:
        return (
            f"<Appointment(id={self.id}, clinician_id={self.clinician_id}, room={self.exam_room_id}, "
            f"date={self.appointment_date}, time={self.appointment_time}, status={self.status})>"
        )
