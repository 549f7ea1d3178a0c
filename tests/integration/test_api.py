"""
Integration tests for the HTTP API.
"""

from datetime import time
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from core.database import get_db
from main import app
from tests.conftest import create_appointment, create_patient, create_room, schedule_payload


@pytest.fixture
def client(db_session) -> Generator[TestClient, None, None]:
    """TestClient whose requests use the test's database session."""
    def override_get_db() -> Generator[Session, None, None]:
        # Don't close the session as it's managed by the test fixture
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestAppointmentEndpoints:
    """Integration tests for /api/appointments."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_create_and_get(self, client, db_session):
        patient = create_patient(db_session, first_name="Ada", last_name="Lovelace")
        room = create_room(db_session)

        response = client.post("/api/appointments", json=schedule_payload(patient, exam_room=room))

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "scheduled"
        assert data["start_time"] == "10:00"
        assert data["end_time"] == "10:30"
        assert data["patient_name"] == "Ada Lovelace"

        fetched = client.get(f"/api/appointments/{data['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["exam_room_id"] == room.id

    def test_double_booking_returns_409(self, client, db_session):
        patient = create_patient(db_session)
        create_appointment(db_session, patient, clinician_id=1, start=time(10, 0))

        response = client.post("/api/appointments", json=schedule_payload(patient, start="10:15"))

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "clinician_unavailable"

    def test_validation_error_returns_422(self, client, db_session):
        patient = create_patient(db_session)

        response = client.post("/api/appointments", json=schedule_payload(patient, duration_minutes=300))

        assert response.status_code == 422

    def test_inactive_room_returns_400(self, client, db_session):
        patient = create_patient(db_session)
        room = create_room(db_session, is_active=False)

        response = client.post("/api/appointments", json=schedule_payload(patient, exam_room=room))

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "room_inactive"

    def test_missing_appointment_returns_404(self, client):
        response = client.get("/api/appointments/999")

        assert response.status_code == 404
        assert response.json()["detail"] == {"error": "not_found", "message": "Appointment not found"}

    def test_reschedule_conflict_returns_report(self, client, db_session):
        alice = create_patient(db_session, first_name="Alice", last_name="Smith")
        first = create_appointment(db_session, alice, clinician_id=1, start=time(10, 0))
        second = create_appointment(db_session, alice, clinician_id=1, start=time(11, 0))

        response = client.post(
            f"/api/appointments/{second.id}/reschedule",
            json={"appointment_date": "2026-03-03", "appointment_time": "10:15"},
        )

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["conflicts"][0]["type"] == "clinician"
        assert body["conflicts"][0]["conflictingAppointments"] == [
            {"id": first.id, "patientName": "Alice Smith", "time": "10:00 - 10:30"}
        ]

    def test_reschedule_forced(self, client, db_session):
        patient = create_patient(db_session)
        create_appointment(db_session, patient, clinician_id=1, start=time(10, 0))
        moving = create_appointment(db_session, patient, clinician_id=1, start=time(11, 0))

        response = client.post(
            f"/api/appointments/{moving.id}/reschedule",
            json={"appointment_date": "2026-03-03", "appointment_time": "10:15", "force": True},
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["forced"] is True
        assert response.json()["appointment"]["start_time"] == "10:15"

    def test_status_endpoints(self, client, db_session):
        patient = create_patient(db_session)
        appointment = create_appointment(db_session, patient)

        assert client.post(f"/api/appointments/{appointment.id}/start").json()["status"] == "in_progress"
        assert client.post(f"/api/appointments/{appointment.id}/complete").json()["status"] == "completed"

        response = client.post(f"/api/appointments/{appointment.id}/cancel", json={"reason": "Too late"})
        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "invalid_transition"

    def test_cancel_and_no_show(self, client, db_session):
        patient = create_patient(db_session)
        first = create_appointment(db_session, patient)
        second = create_appointment(db_session, patient, clinician_id=2)

        cancelled = client.post(f"/api/appointments/{first.id}/cancel", json={"reason": "Sick"})
        assert cancelled.status_code == 200
        assert cancelled.json()["cancellation_reason"] == "Sick"

        assert client.post(f"/api/appointments/{second.id}/no-show").json()["status"] == "no_show"

    def test_assign_room(self, client, db_session):
        patient = create_patient(db_session)
        room = create_room(db_session)
        appointment = create_appointment(db_session, patient)

        response = client.post(f"/api/appointments/{appointment.id}/room", json={"exam_room_id": room.id})

        assert response.status_code == 200
        assert response.json()["exam_room_id"] == room.id

    def test_update_details(self, client, db_session):
        patient = create_patient(db_session)
        appointment = create_appointment(db_session, patient)

        response = client.put(f"/api/appointments/{appointment.id}", json={"notes": "Fasting required"})

        assert response.status_code == 200
        assert response.json()["notes"] == "Fasting required"

    @pytest.mark.parametrize("params,field", [
        ({"clinician_id": "abc"}, "clinician_id"),
        ({"exam_room_id": "abc"}, "exam_room_id"),
        ({"status": "bogus"}, "status"),
    ])
    def test_list_rejects_bad_filters(self, client, params, field):
        response = client.get("/api/appointments", params=params)

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["error"] == "invalid_filter"
        assert field in detail["message"]

    def test_list_and_calendar(self, client, db_session):
        patient = create_patient(db_session)
        create_appointment(db_session, patient)
        create_appointment(db_session, patient, clinician_id=2)

        listing = client.get("/api/appointments", params={"status": "all", "clinician_id": "2"})
        assert listing.status_code == 200
        assert listing.json()["total"] == 1
        assert listing.json()["page_size"] == 15

        calendar = client.get("/api/appointments/calendar", params={"start_date": "2026-03-03"})
        assert calendar.status_code == 200
        assert len(calendar.json()["appointments"]) == 2


class TestPatientEndpoints:
    """Integration tests for /api/patients/{id}/appointments."""

    def test_patient_cancel_window_expired(self, client, db_session):
        patient = create_patient(db_session)
        # APPOINTMENT_DAY is in the past relative to the real clock
        appointment = create_appointment(db_session, patient)

        response = client.post(f"/api/patients/{patient.id}/appointments/{appointment.id}/cancel")

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["error"] == "cancellation_window_expired"
        assert detail["minimum_hours"] == 24

    def test_patient_cancel_other_patient_forbidden(self, client, db_session):
        owner = create_patient(db_session)
        other = create_patient(db_session, first_name="Other")
        appointment = create_appointment(db_session, owner)

        response = client.post(
            f"/api/patients/{other.id}/appointments/{appointment.id}/cancel", json={"reason": "Not mine"}
        )

        assert response.status_code == 403

    def test_list_patient_appointments(self, client, db_session):
        patient = create_patient(db_session)
        create_appointment(db_session, patient)

        response = client.get(f"/api/patients/{patient.id}/appointments")

        assert response.status_code == 200
        assert response.json()["total"] == 1


class TestExamRoomEndpoints:
    """Integration tests for /api/exam-rooms."""

    def test_create_list_deactivate(self, client):
        created = client.post("/api/exam-rooms", json={"room_number": "501", "name": "Cardiology"})
        assert created.status_code == 201
        room_id = created.json()["id"]

        duplicate = client.post("/api/exam-rooms", json={"room_number": "501", "name": "Again"})
        assert duplicate.status_code == 409

        assert client.post(f"/api/exam-rooms/{room_id}/deactivate").json()["is_active"] is False
        assert client.get("/api/exam-rooms", params={"active_only": True}).json()["rooms"] == []
        assert client.post(f"/api/exam-rooms/{room_id}/activate").json()["is_active"] is True

        updated = client.put(f"/api/exam-rooms/{room_id}", json={"floor": 5})
        assert updated.json()["floor"] == 5

    @pytest.mark.parametrize("payload", [{"is_active": None}, {"name": None}, {"room_number": None}])
    def test_update_rejects_null_required_fields(self, client, db_session, payload):
        room = create_room(db_session)

        response = client.put(f"/api/exam-rooms/{room.id}", json=payload)

        assert response.status_code == 422
        fetched = client.get(f"/api/exam-rooms/{room.id}").json()
        assert fetched["is_active"] is True
        assert fetched["room_number"] == "101"

    def test_availability(self, client, db_session):
        patient = create_patient(db_session)
        busy = create_room(db_session, "101")
        create_room(db_session, "102")
        create_appointment(db_session, patient, start=time(9, 30), exam_room=busy)

        response = client.get(
            "/api/exam-rooms/availability",
            params={"start": "2026-03-03T09:00:00", "end": "2026-03-03T10:00:00"},
        )

        assert response.status_code == 200
        rooms = {r["roomNumber"]: r for r in response.json()["rooms"]}
        assert rooms["101"]["availability"] == "busy"
        assert rooms["102"]["availability"] == "available"

    def test_available_rooms(self, client, db_session):
        patient = create_patient(db_session)
        busy = create_room(db_session, "101")
        free = create_room(db_session, "102")
        create_appointment(db_session, patient, start=time(9, 30), exam_room=busy)

        response = client.get(
            "/api/exam-rooms/available",
            params={"date": "2026-03-03", "time": "09:45", "duration_minutes": 30},
        )

        assert response.status_code == 200
        assert [r["id"] for r in response.json()["rooms"]] == [free.id]

    def test_available_rooms_bad_time(self, client):
        response = client.get(
            "/api/exam-rooms/available",
            params={"date": "2026-03-03", "time": "noon", "duration_minutes": 30},
        )

        assert response.status_code == 422
