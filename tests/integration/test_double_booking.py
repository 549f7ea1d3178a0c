"""
Integration test verifying concurrent bookings cannot double-book.

Threads, each with its own session, race to put overlapping appointments on
the same clinician (or room) through schedule, reschedule, assign_room and
update_details. Exactly one must win.
"""

import threading
from datetime import time

import pytest

from core.exceptions import ClinicianUnavailable, RoomInactive, RoomUnavailable, SchedulingError
from models import Appointment, ExamRoom
from services import AppointmentService, ExamRoomService
from tests.conftest import APPOINTMENT_DAY, create_appointment, create_patient, create_room, schedule_payload


def _run_concurrently(session_factory, actions):
    """Run each action(session) in its own thread and session; return (results, errors)."""
    barrier = threading.Barrier(len(actions))
    results = []
    errors = []
    lock = threading.Lock()

    def worker(action):
        session = session_factory()
        try:
            barrier.wait(timeout=10)
            result = action(session)
            with lock:
                results.append(result)
        except SchedulingError as e:
            with lock:
                errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=(a,)) for a in actions]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert not any(t.is_alive() for t in threads), "worker threads did not finish"
    return results, errors


def _race(session_factory, payloads):
    """Run one schedule() per payload in parallel threads; return (appointment ids, errors)."""
    results, errors = _run_concurrently(
        session_factory,
        [lambda session, p=p: AppointmentService(session).schedule(p) for p in payloads],
    )
    return [a.id for a in results], errors


def _reschedule(appointment_id, new_time):
    return lambda session: AppointmentService(session).reschedule(appointment_id, APPOINTMENT_DAY, new_time)


def test_concurrent_clinician_bookings_one_wins(db_session, session_factory):
    patient = create_patient(db_session)
    other = create_patient(db_session, first_name="John")
    # Release the session's connection before the threads start
    db_session.commit()

    successes, errors = _race(session_factory, [
        schedule_payload(patient, clinician_id=5, start="10:00"),
        schedule_payload(other, clinician_id=5, start="10:15"),
    ])

    assert len(successes) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], ClinicianUnavailable)
    assert db_session.query(Appointment).filter(Appointment.clinician_id == 5).count() == 1


def test_concurrent_room_bookings_one_wins(db_session, session_factory):
    patient = create_patient(db_session)
    room = create_room(db_session)
    db_session.commit()

    successes, errors = _race(session_factory, [
        schedule_payload(patient, clinician_id=1, start="10:00", exam_room=room),
        schedule_payload(patient, clinician_id=2, start="10:00", exam_room=room),
    ])

    assert len(successes) == 1
    assert [type(e) for e in errors] == [RoomUnavailable]


@pytest.mark.parametrize("attempts", [4])
def test_many_concurrent_bookings_same_slot(db_session, session_factory, attempts):
    patient = create_patient(db_session)
    db_session.commit()

    successes, errors = _race(session_factory, [
        schedule_payload(patient, clinician_id=9, start="14:00", duration_minutes=45)
        for _ in range(attempts)
    ])

    assert len(successes) == 1
    assert len(errors) == attempts - 1
    booked = db_session.query(Appointment).filter(Appointment.clinician_id == 9).all()
    assert [a.appointment_time for a in booked] == [time(14, 0)]


def test_concurrent_room_assignments_one_wins(db_session, session_factory):
    patient = create_patient(db_session)
    room = create_room(db_session)
    first = create_appointment(db_session, patient, clinician_id=1, start=time(10, 0))
    second = create_appointment(db_session, patient, clinician_id=2, start=time(10, 15))
    db_session.commit()

    results, errors = _run_concurrently(session_factory, [
        lambda session: AppointmentService(session).assign_room(first.id, room.id),
        lambda session: AppointmentService(session).assign_room(second.id, room.id),
    ])

    assert len(results) == 1
    assert [type(e) for e in errors] == [RoomUnavailable]
    assert db_session.query(Appointment).filter(Appointment.exam_room_id == room.id).count() == 1


def test_concurrent_reschedules_into_same_slot(db_session, session_factory):
    patient = create_patient(db_session)
    first = create_appointment(db_session, patient, clinician_id=4, start=time(10, 0))
    second = create_appointment(db_session, patient, clinician_id=4, start=time(11, 0))
    db_session.commit()

    results, errors = _run_concurrently(session_factory, [
        _reschedule(first.id, time(14, 0)),
        _reschedule(second.id, time(14, 0)),
    ])

    assert errors == []
    moved = [r for r in results if r.success]
    blocked = [r for r in results if not r.success]
    assert len(moved) == 1
    assert blocked[0].report.conflict_types == ["clinician"]
    assert db_session.query(Appointment).filter(
        Appointment.clinician_id == 4,
        Appointment.appointment_time == time(14, 0),
    ).count() == 1


def test_schedule_racing_reschedule_on_one_clinician(db_session, session_factory):
    patient = create_patient(db_session)
    other = create_patient(db_session, first_name="John")
    existing = create_appointment(db_session, patient, clinician_id=6, start=time(11, 0))
    db_session.commit()

    results, errors = _run_concurrently(session_factory, [
        lambda session: AppointmentService(session).schedule(
            schedule_payload(other, clinician_id=6, start="14:00")
        ),
        _reschedule(existing.id, time(14, 15)),
    ])

    winners = [r for r in results if isinstance(r, Appointment) or r.success]
    assert len(winners) == 1
    # The loser either got a ClinicianUnavailable or an unsuccessful reschedule report
    assert len(errors) + (len(results) - len(winners)) == 1
    assert all(isinstance(e, ClinicianUnavailable) for e in errors)
    assert db_session.query(Appointment).filter(
        Appointment.clinician_id == 6,
        Appointment.appointment_time.in_([time(14, 0), time(14, 15)]),
    ).count() == 1


def test_concurrent_detail_updates_onto_one_clinician(db_session, session_factory):
    patient = create_patient(db_session)
    first = create_appointment(db_session, patient, clinician_id=7, start=time(10, 0))
    second = create_appointment(db_session, patient, clinician_id=8, start=time(10, 0))
    db_session.commit()

    results, errors = _run_concurrently(session_factory, [
        lambda session: AppointmentService(session).update_details(first.id, {"clinician_id": 3}),
        lambda session: AppointmentService(session).update_details(second.id, {"clinician_id": 3}),
    ])

    assert len(results) == 1
    assert [type(e) for e in errors] == [ClinicianUnavailable]
    assert db_session.query(Appointment).filter(Appointment.clinician_id == 3).count() == 1


def test_room_assignment_racing_deactivation(db_session, session_factory):
    patient = create_patient(db_session)
    room = create_room(db_session)
    appointment = create_appointment(db_session, patient)
    db_session.commit()

    results, errors = _run_concurrently(session_factory, [
        lambda session: AppointmentService(session).assign_room(appointment.id, room.id),
        lambda session: ExamRoomService(session).deactivate_room(room.id),
    ])

    db_session.expire_all()
    assert db_session.get(ExamRoom, room.id).is_active is False
    assigned_room = db_session.get(Appointment, appointment.id).exam_room_id
    if errors:
        # Deactivation committed first, so the assignment saw an inactive room
        assert [type(e) for e in errors] == [RoomInactive]
        assert assigned_room is None
    else:
        # Assignment committed first; deactivation keeps existing appointments
        assert len(results) == 2
        assert assigned_room == room.id
