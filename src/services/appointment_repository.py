"""
Appointment repository: SQLAlchemy persistence for the scheduling services.

The repository applies the coarse part of every conflict lookup (resource,
calendar date, active status, excluded id) in SQL, where it is indexable.
Exact interval overlap is left to the callers, which filter the returned
rows with ``utils.time_interval.overlaps``.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from core.constants import ACTIVE_STATUS_VALUES, ResourceKind
from models import Appointment, ExamRoom, ResourceLock

logger = logging.getLogger(__name__)


class AppointmentRepository:
    """Persistence of appointments and exam rooms for one database session."""

    def __init__(self, db: Session):
        self.db = db

    # ===== Reads =====

    def active_appointments_for(
        self,
        resource_kind: ResourceKind,
        resource_id: int,
        dates: Sequence[date],
        exclude_appointment_id: Optional[int] = None,
        organization_id: Optional[int] = None,
    ) -> List[Appointment]:
        """
        Active appointments holding a resource on any of the given dates.

        Args:
            resource_kind: Clinician or room
            resource_id: Clinician or exam room ID
            dates: Calendar dates to look at
            exclude_appointment_id: Appointment to leave out (the one being moved)
            organization_id: Optional organization scope

        Returns:
            Appointments with status scheduled/in_progress, ordered by start
        """
        if not dates:
            return []

        query = self.db.query(Appointment).options(joinedload(Appointment.patient)).filter(
            Appointment.appointment_date.in_(list(dates)),
            Appointment.status.in_(ACTIVE_STATUS_VALUES),
        )

        if resource_kind == ResourceKind.CLINICIAN:
            query = query.filter(Appointment.clinician_id == resource_id)
        else:
            query = query.filter(Appointment.exam_room_id == resource_id)

        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)

        if organization_id is not None:
            query = query.filter(Appointment.organization_id == organization_id)

        return query.order_by(Appointment.appointment_date, Appointment.appointment_time).all()

    def active_room_appointments_on(
        self,
        dates: Sequence[date],
        organization_id: Optional[int] = None,
    ) -> List[Appointment]:
        """Active appointments with any room assigned on any of the given dates."""
        if not dates:
            return []

        query = self.db.query(Appointment).filter(
            Appointment.appointment_date.in_(list(dates)),
            Appointment.exam_room_id.isnot(None),
            Appointment.status.in_(ACTIVE_STATUS_VALUES),
        )
        if organization_id is not None:
            query = query.filter(Appointment.organization_id == organization_id)
        return query.all()

    def get(self, appointment_id: int, for_update: bool = False) -> Optional[Appointment]:
        """Fetch an appointment, optionally locking its row for the transaction."""
        query = self.db.query(Appointment).filter(Appointment.id == appointment_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_room(self, room_id: int, for_update: bool = False) -> Optional[ExamRoom]:
        """Fetch an exam room; ``for_update`` locks its row and re-reads it from the database."""
        query = self.db.query(ExamRoom).filter(ExamRoom.id == room_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def active_rooms(
        self,
        organization_id: Optional[int] = None,
        room_id: Optional[int] = None,
    ) -> List[ExamRoom]:
        """Active exam rooms in scope, ordered by room number."""
        query = self.db.query(ExamRoom).filter(ExamRoom.is_active.is_(True))
        if organization_id is not None:
            query = query.filter(ExamRoom.organization_id == organization_id)
        if room_id is not None:
            query = query.filter(ExamRoom.id == room_id)
        return query.order_by(ExamRoom.room_number).all()

    # ===== Writes =====

    def save(self, appointment: Appointment) -> Appointment:
        """Stage an appointment in the current transaction and assign its ID."""
        self.db.add(appointment)
        self.db.flush()
        return appointment

    def lock_resources(self, resources: Iterable[Tuple[ResourceKind, int]]) -> None:
        """
        Lock the given resources until the current transaction ends.

        Locks are taken in a fixed order so two transactions touching the same
        clinician and room cannot deadlock.
        """
        for kind, resource_id in sorted({(ResourceKind(k).value, rid) for k, rid in resources}):
            self._lock_resource(kind, resource_id)

    def _lock_resource(self, kind: str, resource_id: int) -> None:
        lock = self._select_lock(kind, resource_id)
        if lock is not None:
            return

        try:
            with self.db.begin_nested():
                self.db.add(ResourceLock(resource_kind=kind, resource_id=resource_id))
        except IntegrityError:
            # Another transaction created the row first; wait on its lock below
            logger.debug(f"Lock row for {kind} {resource_id} created concurrently")

        self._select_lock(kind, resource_id)

    def _select_lock(self, kind: str, resource_id: int) -> Optional[ResourceLock]:
        return self.db.query(ResourceLock).filter(
            ResourceLock.resource_kind == kind,
            ResourceLock.resource_id == resource_id,
        ).with_for_update().first()
