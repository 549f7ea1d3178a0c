"""
Exam room availability for calendar views.

Read-only: reports, for each active room in scope, whether any active
appointment overlaps a query window. Windows may span several days; the
same ``overlaps`` predicate used for booking decides what counts as busy.
"""

import logging
from datetime import date, datetime, time
from typing import List, Optional

from core.constants import ResourceKind, UNKNOWN_PATIENT_DISPLAY_NAME
from models import Appointment, ExamRoom
from services.appointment_repository import AppointmentRepository
from shared_types import RoomAvailability, RoomBooking
from utils.time_interval import TimeInterval, overlaps

logger = logging.getLogger(__name__)


class AvailabilityCalculator:
    """Computes busy/available status of exam rooms."""

    def __init__(self, repository: AppointmentRepository):
        self.repository = repository

    def get_availability(
        self,
        window_start: datetime,
        window_end: datetime,
        room_id: Optional[int] = None,
        organization_id: Optional[int] = None,
    ) -> List[RoomAvailability]:
        """
        Availability of active rooms during ``[window_start, window_end)``.

        Args:
            window_start: Start of the query window (naive = clinic-local)
            window_end: End of the query window, exclusive
            room_id: Restrict to a single room; None means all active rooms
            organization_id: Optional organization scope

        Returns:
            One entry per active room in scope. Empty and reversed windows
            return an empty list.
        """
        window = TimeInterval.between(window_start, window_end)
        if window.is_empty:
            logger.debug(f"Empty availability window {window_start} - {window_end}")
            return []

        rooms = self.repository.active_rooms(organization_id=organization_id, room_id=room_id)
        days = window.dates()

        return [self._room_availability(room, window, days, organization_id) for room in rooms]

    def available_rooms(
        self,
        appointment_date: date,
        appointment_time: time,
        duration_minutes: int,
        organization_id: Optional[int] = None,
    ) -> List[ExamRoom]:
        """
        Active rooms with no overlapping active appointment in a slot.

        A slot running past midnight is checked against bookings on every
        date it touches.

        Returns:
            Free rooms ordered by room number
        """
        slot = TimeInterval.from_slot(appointment_date, appointment_time, duration_minutes)
        if slot.is_empty:
            return []

        busy_room_ids = {
            a.exam_room_id
            for a in self.repository.active_room_appointments_on(slot.dates(), organization_id)
            if overlaps(slot, a.interval)
        }
        rooms = self.repository.active_rooms(organization_id=organization_id)
        return [room for room in rooms if room.id not in busy_room_ids]

    def _room_availability(
        self,
        room: ExamRoom,
        window: TimeInterval,
        days: List[date],
        organization_id: Optional[int],
    ) -> RoomAvailability:
        candidates = self.repository.active_appointments_for(
            ResourceKind.ROOM, room.id, days, organization_id=organization_id
        )
        bookings = [self._booking(a) for a in candidates if overlaps(window, a.interval)]
        return RoomAvailability(
            room_id=room.id,
            room_name=room.name,
            room_number=room.room_number,
            is_active=room.is_active,
            conflicting_appointments=bookings,
        )

    @staticmethod
    def _booking(appointment: Appointment) -> RoomBooking:
        interval = appointment.interval
        return RoomBooking(
            id=appointment.id,
            start=interval.start.isoformat(),
            end=interval.end.isoformat(),
            patient_name=appointment.patient.full_name if appointment.patient else UNKNOWN_PATIENT_DISPLAY_NAME,
        )
