"""
Patient-facing appointment operations.

Patients can list their own appointments and cancel scheduled ones, but only
up to ``PATIENT_CANCELLATION_HOURS`` before the appointment starts. The clinic
side (``AppointmentService.cancel``) has no such restriction.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from sqlalchemy.orm import Session, joinedload

from core.config import PATIENT_CANCELLATION_HOURS
from core.constants import (
    AUDIT_RESOURCE_APPOINTMENT,
    AppointmentStatus,
    AuditAction,
    DEFAULT_PATIENT_CANCELLATION_REASON,
)
from core.database import transaction
from core.exceptions import CancellationWindowExpired, Forbidden, InvalidTransition, NotFound
from models import Appointment
from services.appointment_repository import AppointmentRepository
from services.appointment_schemas import CancelRequest
from services.audit_service import AuditService, AuditSink, emit_audit
from utils.datetime_utils import clinic_now, combine_local, ensure_clinic_tz

logger = logging.getLogger(__name__)


class PatientAppointmentService:
    """Appointment operations performed by the patient themselves."""

    def __init__(
        self,
        db: Session,
        audit: Optional[AuditSink] = None,
        now_provider: Callable[[], datetime] = clinic_now,
        cancellation_hours: int = PATIENT_CANCELLATION_HOURS,
    ):
        self.db = db
        self.repository = AppointmentRepository(db)
        self.audit: AuditSink = audit or AuditService(db)
        self.now_provider = now_provider
        self.cancellation_hours = cancellation_hours

    def list_for_patient(
        self,
        patient_id: int,
        status: Optional[AppointmentStatus] = None,
        upcoming: bool = False,
    ) -> List[Appointment]:
        """
        A patient's appointments, newest first.

        Args:
            patient_id: Patient whose appointments to list
            status: Only this status
            upcoming: Only appointments on or after today

        Returns:
            Appointments with exam room loaded
        """
        query = self.db.query(Appointment).options(joinedload(Appointment.exam_room)).filter(
            Appointment.patient_id == patient_id
        )

        if status is not None:
            query = query.filter(Appointment.status == AppointmentStatus(status).value)

        if upcoming:
            query = query.filter(Appointment.appointment_date >= self.now_provider().date())

        return query.order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc()).all()

    def can_cancel(self, patient_id: int, appointment: Appointment) -> bool:
        """
        Check whether a patient may cancel an appointment right now.

        Requires ownership, a status that has not started yet, and at least
        ``cancellation_hours`` until the start. Exactly 24h00m before is
        still allowed.
        """
        if appointment.patient_id != patient_id:
            return False
        if not appointment.status_enum.is_patient_cancellable:
            return False
        return self._within_window(appointment)

    def cancel(self, patient_id: int, appointment_id: int, reason: Optional[str] = None) -> Appointment:
        """
        Cancel an appointment on behalf of its patient.

        Args:
            patient_id: Patient making the request
            appointment_id: Appointment to cancel
            reason: Optional reason; defaults to "Cancelled by patient"

        Returns:
            The cancelled appointment

        Raises:
            NotFound: If the appointment does not exist
            Forbidden: If the appointment belongs to another patient
            InvalidTransition: If the appointment is not in 'scheduled'
            CancellationWindowExpired: If it starts in less than the minimum notice
        """
        request = CancelRequest(reason=reason or DEFAULT_PATIENT_CANCELLATION_REASON)

        with transaction(self.db):
            appointment = self.repository.get(appointment_id, for_update=True)
            if not appointment:
                raise NotFound("Appointment not found")

            if appointment.patient_id != patient_id:
                logger.warning(f"Patient {patient_id} tried to cancel appointment {appointment_id} of another patient")
                raise Forbidden("You do not have access to this appointment.")

            if not appointment.status_enum.is_patient_cancellable:
                raise InvalidTransition(
                    appointment.status, AppointmentStatus.CANCELLED.value,
                    message=f"A {appointment.status} appointment cannot be cancelled.",
                )

            if not self._within_window(appointment):
                logger.warning(
                    f"Patient {patient_id} cancellation of appointment {appointment_id} refused: "
                    f"less than {self.cancellation_hours}h notice"
                )
                raise CancellationWindowExpired(self.cancellation_hours)

            before = appointment.to_snapshot()
            appointment.status = AppointmentStatus.CANCELLED.value
            appointment.cancelled_at = self.now_provider()
            appointment.cancellation_reason = request.reason
            self.db.flush()

            emit_audit(
                self.audit, AuditAction.UPDATE, AUDIT_RESOURCE_APPOINTMENT, appointment.id,
                before=before, after=appointment.to_snapshot(),
            )

        logger.info(f"Patient {patient_id} cancelled appointment {appointment_id}")
        return appointment

    def _within_window(self, appointment: Appointment) -> bool:
        # Compare in UTC: elapsed time, not wall-clock time, across DST changes
        start = combine_local(appointment.appointment_date, appointment.appointment_time).astimezone(timezone.utc)
        now = ensure_clinic_tz(self.now_provider()).astimezone(timezone.utc)  # type: ignore[union-attr]
        return now <= start - timedelta(hours=self.cancellation_hours)
