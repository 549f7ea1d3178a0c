"""
Appointment scheduling engine.

This module owns the invariant that no two active appointments share a
clinician or an exam room at overlapping times. Every mutating operation
runs as one transaction: lock the affected resources, check conflicts,
write, record an audit entry, commit. Any error rolls the whole thing back.
"""

import logging
from datetime import date, datetime, time
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from core.database import transaction
from core.constants import (
    ALLOWED_TRANSITIONS,
    AUDIT_RESOURCE_APPOINTMENT,
    AppointmentStatus,
    AuditAction,
    ResourceKind,
)
from core.exceptions import (
    ClinicianUnavailable,
    InvalidSlot,
    InvalidTransition,
    NotFound,
    RoomInactive,
    RoomUnavailable,
)
from models import Appointment, ExamRoom, Patient
from services.appointment_repository import AppointmentRepository
from services.appointment_schemas import CancelRequest, RescheduleRequest, ScheduleRequest, ScheduleUpdate, ends_same_day
from services.audit_service import AuditService, AuditSink, emit_audit
from services.conflict_service import ConflictDetector
from shared_types import ConflictReport, RescheduleResult
from shared_types.scheduling import CLINICIAN_CONFLICT_MESSAGE, ROOM_CONFLICT_MESSAGE
from utils.datetime_utils import clinic_now
from utils.time_interval import TimeInterval

logger = logging.getLogger(__name__)


# Messages for the transitions users hit most often
_TRANSITION_MESSAGES: Dict[Tuple[AppointmentStatus, AppointmentStatus], str] = {
    (AppointmentStatus.CANCELLED, AppointmentStatus.CANCELLED): "Appointment is already cancelled.",
    (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED): "Cannot cancel a completed appointment.",
    (AppointmentStatus.NO_SHOW, AppointmentStatus.CANCELLED): "Cannot cancel an appointment marked as no-show.",
}


class AppointmentService:
    """
    Scheduling engine for one database session.

    Holds no state of its own beyond its collaborators, so a new instance
    per request (or per thread) is the intended usage.
    """

    def __init__(
        self,
        db: Session,
        audit: Optional[AuditSink] = None,
        now_provider: Callable[[], datetime] = clinic_now,
        repository: Optional[AppointmentRepository] = None,
    ):
        self.db = db
        self.repository = repository or AppointmentRepository(db)
        self.conflicts = ConflictDetector(self.repository)
        self.audit: AuditSink = audit or AuditService(db)
        self.now_provider = now_provider

    # ===== Reads =====

    def get_appointment(self, appointment_id: int) -> Appointment:
        """
        Get an appointment by ID.

        Raises:
            NotFound: If the appointment does not exist
        """
        appointment = self.repository.get(appointment_id)
        if not appointment:
            raise NotFound("Appointment not found")
        return appointment

    def check_reschedule_conflicts(self, appointment: Appointment, candidate: TimeInterval) -> ConflictReport:
        """
        Build the conflict report for moving an appointment to ``candidate``.

        The appointment's own record is excluded, so moving within its current
        slot never reports a conflict with itself. Room conflicts are only
        checked when a room is assigned.
        """
        report = ConflictReport()
        report.add(
            "clinician",
            CLINICIAN_CONFLICT_MESSAGE,
            self.conflicts.find_clinician_conflicts(appointment.clinician_id, candidate, appointment.id),
        )
        if appointment.exam_room_id:
            report.add(
                "room",
                ROOM_CONFLICT_MESSAGE,
                self.conflicts.find_room_conflicts(appointment.exam_room_id, candidate, appointment.id),
            )
        return report

    # ===== Mutations =====

    def schedule(self, request: Union[ScheduleRequest, Dict[str, Any]]) -> Appointment:
        """
        Book a new appointment.

        Args:
            request: Validated request or a dict to validate

        Returns:
            The persisted appointment in status 'scheduled'

        Raises:
            pydantic.ValidationError: If the request shape is invalid
            NotFound: If the patient or exam room does not exist
            ClinicianUnavailable: If the clinician has an overlapping appointment
            RoomInactive: If the requested room is deactivated
            RoomUnavailable: If the room has an overlapping appointment
        """
        if not isinstance(request, ScheduleRequest):
            request = ScheduleRequest.model_validate(request)

        candidate = TimeInterval.from_slot(
            request.appointment_date, request.appointment_time, request.duration_minutes
        )

        with transaction(self.db):
            resources: List[Tuple[ResourceKind, int]] = [(ResourceKind.CLINICIAN, request.clinician_id)]
            if request.exam_room_id:
                resources.append((ResourceKind.ROOM, request.exam_room_id))
            self.repository.lock_resources(resources)

            if self.db.get(Patient, request.patient_id) is None:
                raise NotFound("Patient not found")

            if self.conflicts.find_clinician_conflicts(request.clinician_id, candidate):
                logger.warning(
                    f"Clinician {request.clinician_id} unavailable for {candidate.start.isoformat()}"
                )
                raise ClinicianUnavailable()

            if request.exam_room_id:
                room = self._require_room(request.exam_room_id)
                if self.conflicts.find_room_conflicts(room.id, candidate):
                    logger.warning(f"Room {room.id} unavailable for {candidate.start.isoformat()}")
                    raise RoomUnavailable()

            appointment = Appointment(
                organization_id=request.organization_id,
                patient_id=request.patient_id,
                clinician_id=request.clinician_id,
                exam_room_id=request.exam_room_id or None,
                appointment_date=request.appointment_date,
                appointment_time=request.appointment_time,
                duration_minutes=request.duration_minutes,
                appointment_type=request.appointment_type.value,
                status=AppointmentStatus.SCHEDULED.value,
                notes=request.notes,
            )
            self.repository.save(appointment)

            emit_audit(
                self.audit, AuditAction.CREATE, AUDIT_RESOURCE_APPOINTMENT, appointment.id,
                after=appointment.to_snapshot(),
            )

        logger.info(
            f"Scheduled appointment {appointment.id} for clinician {appointment.clinician_id} "
            f"at {candidate.start.isoformat()}"
        )
        return appointment

    def reschedule(
        self,
        appointment_id: int,
        new_date: date,
        new_time: time,
        new_duration: Optional[int] = None,
        force: bool = False,
    ) -> RescheduleResult:
        """
        Move an appointment to a new slot, or report why it cannot move.

        Unlike ``schedule``, conflicts are not raised: they come back as a
        ConflictReport listing every colliding appointment so a person can pick
        another slot or repeat the call with ``force=True``.

        Args:
            appointment_id: Appointment to move
            new_date: New calendar date
            new_time: New start time
            new_duration: New duration in minutes (None keeps the current one)
            force: Move even if the report is non-empty

        Returns:
            RescheduleResult with the moved appointment, or with the report
            and no changes made

        Raises:
            NotFound: If the appointment does not exist
            InvalidTransition: If the appointment is no longer active
            InvalidSlot: If the new slot runs past midnight
        """
        request = RescheduleRequest(
            appointment_date=new_date,
            appointment_time=new_time,
            duration_minutes=new_duration,
            force=force,
        )

        with transaction(self.db):
            appointment = self._get_for_update(appointment_id)
            if not appointment.is_active:
                raise InvalidTransition(
                    appointment.status, AppointmentStatus.SCHEDULED.value,
                    message=f"Cannot reschedule a {appointment.status} appointment.",
                )

            duration = request.duration_minutes or appointment.duration_minutes
            if not ends_same_day(request.appointment_time, duration):
                raise InvalidSlot()

            self.repository.lock_resources(self._resources_of(appointment.clinician_id, appointment.exam_room_id))

            candidate = TimeInterval.from_slot(request.appointment_date, request.appointment_time, duration)
            report = self.check_reschedule_conflicts(appointment, candidate)

            if report.has_conflicts and not request.force:
                logger.warning(
                    f"Reschedule of appointment {appointment_id} blocked by {report.conflict_types} conflicts"
                )
                return RescheduleResult(report=report)

            before = appointment.to_snapshot()
            appointment.appointment_date = request.appointment_date
            appointment.appointment_time = request.appointment_time
            appointment.duration_minutes = duration
            self.db.flush()

            emit_audit(
                self.audit, AuditAction.UPDATE, AUDIT_RESOURCE_APPOINTMENT, appointment.id,
                before=before, after=appointment.to_snapshot(),
            )

        if report.has_conflicts:
            logger.warning(f"Appointment {appointment_id} force-rescheduled despite {report.conflict_types} conflicts")
        logger.info(f"Rescheduled appointment {appointment_id} to {candidate.start.isoformat()}")
        return RescheduleResult(appointment=appointment, report=report, forced=report.has_conflicts)

    def cancel(self, appointment_id: int, reason: str) -> Appointment:
        """
        Cancel an appointment (clinic side, no time restriction).

        Raises:
            pydantic.ValidationError: If the reason is empty or too long
            NotFound: If the appointment does not exist
            InvalidTransition: If the appointment is already completed,
                cancelled or marked no-show
        """
        request = CancelRequest(reason=reason)
        return self._transition(appointment_id, AppointmentStatus.CANCELLED, reason=request.reason)

    def start(self, appointment_id: int) -> Appointment:
        """Mark a scheduled appointment as in progress."""
        return self._transition(appointment_id, AppointmentStatus.IN_PROGRESS)

    def complete(self, appointment_id: int) -> Appointment:
        """Mark an in-progress appointment as completed."""
        return self._transition(appointment_id, AppointmentStatus.COMPLETED)

    def mark_no_show(self, appointment_id: int) -> Appointment:
        """Mark a scheduled appointment as a no-show."""
        return self._transition(appointment_id, AppointmentStatus.NO_SHOW)

    def assign_room(self, appointment_id: int, room_id: int) -> Appointment:
        """
        Assign an exam room to an appointment at its current slot.

        Raises:
            NotFound: If the appointment or room does not exist
            RoomInactive: If the room is deactivated (checked before conflicts)
            RoomUnavailable: If another active appointment holds the room
        """
        with transaction(self.db):
            appointment = self._get_for_update(appointment_id)
            self.repository.lock_resources([(ResourceKind.ROOM, room_id)])
            room = self._require_room(room_id)

            if self.conflicts.find_room_conflicts(room.id, appointment.interval, appointment.id):
                logger.warning(f"Room {room.id} unavailable for appointment {appointment_id}")
                raise RoomUnavailable("Room is not available at the appointment time.")

            before = appointment.to_snapshot()
            appointment.exam_room_id = room.id
            self.db.flush()

            emit_audit(
                self.audit, AuditAction.UPDATE, AUDIT_RESOURCE_APPOINTMENT, appointment.id,
                before=before, after=appointment.to_snapshot(),
            )

        logger.info(f"Assigned room {room.id} to appointment {appointment_id}")
        return appointment

    def update_details(self, appointment_id: int, update: Union[ScheduleUpdate, Dict[str, Any]]) -> Appointment:
        """
        Update an appointment's clinician, room, slot, category or notes.

        Conflicts fail fast here (like ``schedule``); use ``reschedule`` for
        the report-and-review flow.

        Raises:
            NotFound: If the appointment or a new room does not exist
            InvalidTransition: If the appointment is in a terminal status
            InvalidSlot: If the resulting slot runs past midnight
            ClinicianUnavailable: If the (new) clinician is busy in the slot
            RoomInactive: If the new room is deactivated
            RoomUnavailable: If the room is busy in the slot
        """
        if not isinstance(update, ScheduleUpdate):
            update = ScheduleUpdate.model_validate(update)
        fields = update.model_fields_set

        with transaction(self.db):
            appointment = self._get_for_update(appointment_id)
            if appointment.status_enum.is_terminal:
                raise InvalidTransition(
                    appointment.status, appointment.status,
                    message=f"Cannot modify a {appointment.status} appointment.",
                )

            clinician_id = update.clinician_id if update.clinician_id is not None else appointment.clinician_id
            room_id = update.exam_room_id if 'exam_room_id' in fields else appointment.exam_room_id
            new_date = update.appointment_date or appointment.appointment_date
            new_time = update.appointment_time or appointment.appointment_time
            duration = update.duration_minutes or appointment.duration_minutes

            if not ends_same_day(new_time, duration):
                raise InvalidSlot()

            self.repository.lock_resources(self._resources_of(clinician_id, room_id))
            candidate = TimeInterval.from_slot(new_date, new_time, duration)

            if update.changes_slot and self.conflicts.find_clinician_conflicts(clinician_id, candidate, appointment.id):
                raise ClinicianUnavailable()

            room_changed = 'exam_room_id' in fields and room_id != appointment.exam_room_id
            if room_id and (room_changed or update.changes_slot):
                room = self._require_room(room_id)
                if self.conflicts.find_room_conflicts(room.id, candidate, appointment.id):
                    raise RoomUnavailable()

            before = appointment.to_snapshot()
            appointment.clinician_id = clinician_id
            appointment.exam_room_id = room_id or None
            appointment.appointment_date = new_date
            appointment.appointment_time = new_time
            appointment.duration_minutes = duration
            if update.appointment_type is not None:
                appointment.appointment_type = update.appointment_type.value
            if 'notes' in fields:
                appointment.notes = update.notes
            self.db.flush()

            emit_audit(
                self.audit, AuditAction.UPDATE, AUDIT_RESOURCE_APPOINTMENT, appointment.id,
                before=before, after=appointment.to_snapshot(),
            )

        logger.info(f"Updated appointment {appointment_id} ({', '.join(sorted(fields))})")
        return appointment

    # ===== Helpers =====

    def _transition(
        self,
        appointment_id: int,
        target: AppointmentStatus,
        reason: Optional[str] = None,
    ) -> Appointment:
        """Apply one status transition from ALLOWED_TRANSITIONS."""
        with transaction(self.db):
            appointment = self._get_for_update(appointment_id)
            current = appointment.status_enum

            if target not in ALLOWED_TRANSITIONS[current]:
                logger.warning(f"Rejected transition {current.value} -> {target.value} for appointment {appointment_id}")
                raise InvalidTransition(
                    current.value, target.value,
                    message=_TRANSITION_MESSAGES.get((current, target)),
                )

            before = appointment.to_snapshot()
            appointment.status = target.value
            if target is AppointmentStatus.CANCELLED:
                appointment.cancelled_at = self.now_provider()
                appointment.cancellation_reason = reason
            self.db.flush()

            emit_audit(
                self.audit, AuditAction.UPDATE, AUDIT_RESOURCE_APPOINTMENT, appointment.id,
                before=before, after=appointment.to_snapshot(),
            )

        logger.info(f"Appointment {appointment_id}: {current.value} -> {target.value}")
        return appointment

    def _get_for_update(self, appointment_id: int) -> Appointment:
        appointment = self.repository.get(appointment_id, for_update=True)
        if not appointment:
            raise NotFound("Appointment not found")
        return appointment

    def _require_room(self, room_id: int) -> ExamRoom:
        """
        Fetch an assignable room or raise.

        The room row stays locked until commit, so a concurrent deactivation
        cannot slip in between this check and the booking.
        """
        room = self.repository.get_room(room_id, for_update=True)
        if not room:
            raise NotFound("Exam room not found")
        if not room.is_active:
            logger.warning(f"Attempt to book inactive room {room_id}")
            raise RoomInactive()
        return room

    @staticmethod
    def _resources_of(clinician_id: int, room_id: Optional[int]) -> List[Tuple[ResourceKind, int]]:
        resources: List[Tuple[ResourceKind, int]] = [(ResourceKind.CLINICIAN, clinician_id)]
        if room_id:
            resources.append((ResourceKind.ROOM, room_id))
        return resources
