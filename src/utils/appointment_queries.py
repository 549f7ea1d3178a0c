"""
Utility functions for appointment listing queries.

Used by the list and calendar endpoints. Filter values arrive straight from
query strings, so "all" (and "none" for rooms) are accepted as "no filter".
"""

from datetime import date
from typing import List, Optional, Union

from sqlalchemy.orm import Query, Session, joinedload

from core.constants import AppointmentStatus, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from core.exceptions import InvalidFilter
from models import Appointment

_NO_FILTER = {"all", ""}
_NO_ROOM_FILTER = {"all", "none", ""}

FilterValue = Optional[Union[int, str]]


def _is_unset(value: FilterValue, sentinels: set) -> bool:
    return value is None or (isinstance(value, str) and value.strip().lower() in sentinels)


def _parse_status(value: FilterValue) -> str:
    if isinstance(value, AppointmentStatus):
        return value.value
    try:
        return AppointmentStatus(str(value).strip().lower()).value
    except ValueError:
        raise InvalidFilter("status", value)


def _parse_id(name: str, value: FilterValue) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise InvalidFilter(name, value)


def _base_query(db: Session, organization_id: Optional[int]) -> Query[Appointment]:
    # Eager load what list/calendar responses display to avoid N+1 queries
    query = db.query(Appointment).options(
        joinedload(Appointment.patient),
        joinedload(Appointment.exam_room),
    )
    if organization_id is not None:
        query = query.filter(Appointment.organization_id == organization_id)
    return query


def filter_appointments(
    db: Session,
    organization_id: Optional[int] = None,
    status: Optional[str] = None,
    on_date: Optional[date] = None,
    clinician_id: FilterValue = None,
    exam_room_id: FilterValue = None,
    page: Optional[int] = 1,
    page_size: Optional[int] = DEFAULT_PAGE_SIZE,
) -> tuple[List[Appointment], int]:
    """
    Filtered appointment listing, newest date first.

    Args:
        db: Database session
        organization_id: Optional organization scope
        status: Status value, or "all"/None for every status
        on_date: Only appointments on this date
        clinician_id: Clinician key, or "all"/None
        exam_room_id: Room ID, or "all"/"none"/None
        page: Page number (1-indexed). If None, returns all matches.
        page_size: Items per page, capped at MAX_PAGE_SIZE

    Returns:
        Tuple of (appointments on the requested page, total count)

    Raises:
        InvalidFilter: If status is not a known appointment status, or an ID
            filter is neither a sentinel nor an integer
    """
    query = _base_query(db, organization_id)

    if not _is_unset(status, _NO_FILTER):
        query = query.filter(Appointment.status == _parse_status(status))

    if on_date is not None:
        query = query.filter(Appointment.appointment_date == on_date)

    if not _is_unset(clinician_id, _NO_FILTER):
        query = query.filter(Appointment.clinician_id == _parse_id("clinician_id", clinician_id))

    if not _is_unset(exam_room_id, _NO_ROOM_FILTER):
        query = query.filter(Appointment.exam_room_id == _parse_id("exam_room_id", exam_room_id))

    total = query.count()

    query = query.order_by(
        Appointment.appointment_date.desc(),
        Appointment.appointment_time.desc(),
        Appointment.id.desc(),
    )

    if page is not None and page_size is not None:
        page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        offset = (max(page, 1) - 1) * page_size
        query = query.offset(offset).limit(page_size)

    return query.all(), total


def calendar_appointments(
    db: Session,
    organization_id: Optional[int],
    start_date: date,
    end_date: date,
    clinician_id: Optional[int] = None,
    exam_room_id: Optional[int] = None,
) -> List[Appointment]:
    """
    Appointments shown on the calendar between two dates (inclusive).

    Cancelled appointments are left out; completed and no-show ones stay so
    the day's history remains visible.
    """
    query = _base_query(db, organization_id).filter(
        Appointment.appointment_date >= start_date,
        Appointment.appointment_date <= end_date,
        Appointment.status != AppointmentStatus.CANCELLED.value,
    )

    if clinician_id is not None:
        query = query.filter(Appointment.clinician_id == clinician_id)

    if exam_room_id is not None:
        query = query.filter(Appointment.exam_room_id == exam_room_id)

    return query.order_by(Appointment.appointment_date, Appointment.appointment_time).all()
