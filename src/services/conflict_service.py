"""
Conflict detection for clinicians and exam rooms.

A conflict is an active appointment on the same resource whose interval
overlaps the candidate interval. Lookups run in two phases: the repository
narrows by resource, date and status, then ``overlaps`` decides exactly.
"""

import logging
from datetime import date, time
from typing import List, Optional

from core.constants import ResourceKind
from models import Appointment
from services.appointment_repository import AppointmentRepository
from utils.time_interval import TimeInterval, overlaps

logger = logging.getLogger(__name__)


class ConflictDetector:
    """Finds active appointments that collide with a candidate interval."""

    def __init__(self, repository: AppointmentRepository):
        self.repository = repository

    def find_clinician_conflicts(
        self,
        clinician_id: int,
        candidate: TimeInterval,
        exclude_appointment_id: Optional[int] = None,
    ) -> List[Appointment]:
        """
        Active appointments of a clinician overlapping the candidate interval.

        Args:
            clinician_id: Clinician key
            candidate: Interval being requested
            exclude_appointment_id: Appointment to ignore (the one being rescheduled)

        Returns:
            Conflicting appointments; empty for unknown clinicians
        """
        return self._find_conflicts(ResourceKind.CLINICIAN, clinician_id, candidate, exclude_appointment_id)

    def find_room_conflicts(
        self,
        room_id: int,
        candidate: TimeInterval,
        exclude_appointment_id: Optional[int] = None,
    ) -> List[Appointment]:
        """Active appointments in an exam room overlapping the candidate interval."""
        return self._find_conflicts(ResourceKind.ROOM, room_id, candidate, exclude_appointment_id)

    def has_clinician_conflict(
        self,
        clinician_id: int,
        appointment_date: date,
        appointment_time: time,
        duration_minutes: int,
        exclude_appointment_id: Optional[int] = None,
    ) -> bool:
        candidate = TimeInterval.from_slot(appointment_date, appointment_time, duration_minutes)
        return bool(self.find_clinician_conflicts(clinician_id, candidate, exclude_appointment_id))

    def has_room_conflict(
        self,
        room_id: int,
        appointment_date: date,
        appointment_time: time,
        duration_minutes: int,
        exclude_appointment_id: Optional[int] = None,
    ) -> bool:
        candidate = TimeInterval.from_slot(appointment_date, appointment_time, duration_minutes)
        return bool(self.find_room_conflicts(room_id, candidate, exclude_appointment_id))

    def _find_conflicts(
        self,
        kind: ResourceKind,
        resource_id: int,
        candidate: TimeInterval,
        exclude_appointment_id: Optional[int],
    ) -> List[Appointment]:
        if candidate.is_empty:
            return []

        same_day = self.repository.active_appointments_for(
            kind,
            resource_id,
            candidate.dates(),
            exclude_appointment_id=exclude_appointment_id,
        )
        conflicts = [a for a in same_day if overlaps(candidate, a.interval)]

        if conflicts:
            logger.debug(
                f"{kind.value} {resource_id} has {len(conflicts)} conflict(s) with "
                f"{candidate.start.isoformat()}-{candidate.end.isoformat()}"
            )
        return conflicts
