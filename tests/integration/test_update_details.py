"""
Integration tests for editing appointment details.
"""

from datetime import time

import pytest

from core.constants import AppointmentStatus
from core.exceptions import ClinicianUnavailable, InvalidSlot, InvalidTransition, RoomInactive, RoomUnavailable
from models import Appointment
from services import AppointmentService
from tests.conftest import create_appointment, create_patient, create_room


class TestUpdateDetails:
    """Test cases for AppointmentService.update_details."""

    def test_notes_and_category(self, db_session):
        patient = create_patient(db_session)
        appointment = create_appointment(db_session, patient)

        updated = AppointmentService(db_session).update_details(
            appointment.id, {"notes": "Bring X-rays", "appointment_type": "follow_up"}
        )

        assert updated.notes == "Bring X-rays"
        assert updated.appointment_type == "follow_up"

    def test_notes_only_update_skips_conflict_checks(self, db_session):
        """Pre-existing overlaps (e.g. from a forced reschedule) do not block note edits."""
        patient = create_patient(db_session)
        create_appointment(db_session, patient, clinician_id=1, start=time(10, 0))
        overlapping = create_appointment(db_session, patient, clinician_id=1, start=time(10, 15))

        updated = AppointmentService(db_session).update_details(overlapping.id, {"notes": "ok"})

        assert updated.notes == "ok"

    def test_change_clinician_into_conflict(self, db_session):
        patient = create_patient(db_session)
        create_appointment(db_session, patient, clinician_id=2, start=time(10, 0))
        appointment = create_appointment(db_session, patient, clinician_id=1, start=time(10, 0))

        with pytest.raises(ClinicianUnavailable):
            AppointmentService(db_session).update_details(appointment.id, {"clinician_id": 2})

        db_session.expire_all()
        assert db_session.get(Appointment, appointment.id).clinician_id == 1

    def test_change_time_checks_existing_room(self, db_session):
        patient = create_patient(db_session)
        room = create_room(db_session)
        create_appointment(db_session, patient, clinician_id=2, start=time(11, 0), exam_room=room)
        appointment = create_appointment(db_session, patient, clinician_id=1, start=time(9, 0), exam_room=room)

        with pytest.raises(RoomUnavailable):
            AppointmentService(db_session).update_details(appointment.id, {"appointment_time": "11:15"})

    def test_change_room(self, db_session):
        patient = create_patient(db_session)
        room = create_room(db_session, "101")
        inactive = create_room(db_session, "102", is_active=False)
        appointment = create_appointment(db_session, patient)
        service = AppointmentService(db_session)

        assert service.update_details(appointment.id, {"exam_room_id": room.id}).exam_room_id == room.id
        with pytest.raises(RoomInactive):
            service.update_details(appointment.id, {"exam_room_id": inactive.id})

    def test_clear_room(self, db_session):
        patient = create_patient(db_session)
        room = create_room(db_session)
        appointment = create_appointment(db_session, patient, exam_room=room)

        assert AppointmentService(db_session).update_details(appointment.id, {"exam_room_id": None}).exam_room_id is None

    def test_slot_past_midnight(self, db_session):
        patient = create_patient(db_session)
        appointment = create_appointment(db_session, patient, duration_minutes=60)

        with pytest.raises(InvalidSlot):
            AppointmentService(db_session).update_details(appointment.id, {"appointment_time": "23:30"})

    def test_terminal_appointment_is_read_only(self, db_session):
        patient = create_patient(db_session)
        appointment = create_appointment(db_session, patient, status=AppointmentStatus.COMPLETED)

        with pytest.raises(InvalidTransition):
            AppointmentService(db_session).update_details(appointment.id, {"notes": "late note"})
