"""
Test configuration and shared fixtures for the Clinic Scheduler test suite.

Each test gets its own database: a SQLite file under pytest's tmp_path, or
the PostgreSQL database named by TEST_DATABASE_URL. Tables are created from
the SQLAlchemy metadata and dropped again afterwards.
"""

import os
from datetime import date, datetime, time
from typing import Generator, List, Optional

import pytest
from sqlalchemy.orm import Session, sessionmaker

from core.constants import AppointmentStatus
from core.database import Base, create_db_engine
from models import Appointment, ExamRoom, Patient
from utils.datetime_utils import clinic_tz

# Import all models to ensure they're registered with SQLAlchemy
import models  # noqa: F401


TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

# Fixed "now" for tests that depend on the current time: Monday 2026-03-02 09:00
FIXED_NOW = datetime(2026, 3, 2, 9, 0, tzinfo=clinic_tz())

# Default appointment date used across tests (the day after FIXED_NOW)
APPOINTMENT_DAY = date(2026, 3, 3)


@pytest.fixture
def db_engine(tmp_path):
    """
    Create a database engine with a fresh schema for one test.

    SQLite is used unless TEST_DATABASE_URL points elsewhere. The engine is
    built with ``create_db_engine`` so tests run with the same transaction
    behaviour as the application.
    """
    url = TEST_DATABASE_URL or f"sqlite:///{tmp_path / 'scheduler_test.db'}"
    engine = create_db_engine(url)

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> sessionmaker:
    """Session factory for tests that need several independent sessions (threads)."""
    return sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    """Provide a database session for a test."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def fixed_now():
    """Now-provider returning FIXED_NOW, for services that take ``now_provider``."""
    return lambda: FIXED_NOW


# ===== Helper creators =====

def create_patient(
    db: Session,
    first_name: str = "Jane",
    last_name: str = "Doe",
    organization_id: Optional[int] = None,
) -> Patient:
    """Create and commit a patient."""
    patient = Patient(first_name=first_name, last_name=last_name, organization_id=organization_id)
    db.add(patient)
    db.commit()
    return patient


def create_room(
    db: Session,
    room_number: str = "101",
    name: Optional[str] = None,
    is_active: bool = True,
    organization_id: Optional[int] = None,
) -> ExamRoom:
    """Create and commit an exam room."""
    room = ExamRoom(
        room_number=room_number,
        name=name or f"Exam Room {room_number}",
        is_active=is_active,
        organization_id=organization_id,
        equipment=["exam table"],
    )
    db.add(room)
    db.commit()
    return room


def create_appointment(
    db: Session,
    patient: Patient,
    clinician_id: int = 1,
    start: time = time(10, 0),
    duration_minutes: int = 30,
    appointment_date: date = APPOINTMENT_DAY,
    exam_room: Optional[ExamRoom] = None,
    status: AppointmentStatus = AppointmentStatus.SCHEDULED,
    organization_id: Optional[int] = None,
) -> Appointment:
    """
    Insert an appointment directly, bypassing conflict checks.

    Useful for arranging existing bookings (including ones in terminal
    statuses) before exercising the services.
    """
    appointment = Appointment(
        organization_id=organization_id,
        patient_id=patient.id,
        clinician_id=clinician_id,
        exam_room_id=exam_room.id if exam_room else None,
        appointment_date=appointment_date,
        appointment_time=start,
        duration_minutes=duration_minutes,
        status=status.value,
    )
    db.add(appointment)
    db.commit()
    return appointment


def schedule_payload(
    patient: Patient,
    clinician_id: int = 1,
    start: str = "10:00",
    duration_minutes: int = 30,
    appointment_date: date = APPOINTMENT_DAY,
    exam_room: Optional[ExamRoom] = None,
    **extra,
) -> dict:
    """Build a ScheduleRequest-shaped dict."""
    payload = {
        "patient_id": patient.id,
        "clinician_id": clinician_id,
        "appointment_date": appointment_date.isoformat(),
        "appointment_time": start,
        "duration_minutes": duration_minutes,
    }
    if exam_room is not None:
        payload["exam_room_id"] = exam_room.id
    payload.update(extra)
    return payload


def audit_actions(db: Session, resource_type: str = "Appointment") -> List[str]:
    """Actions recorded in the audit log for a resource type, oldest first."""
    from models import AuditLog

    rows = db.query(AuditLog).filter(AuditLog.resource_type == resource_type).order_by(AuditLog.id).all()
    return [row.action for row in rows]
