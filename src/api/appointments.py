# pyright: reportMissingTypeStubs=false
"""
Appointment API endpoints.

Scheduling, rescheduling, status changes and room assignment for the clinic
side, plus patient-initiated cancellation. Domain errors raised by the
services are turned into HTTP responses by the handler registered in main.py.
"""

import logging
from datetime import date as date_type
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from core.constants import AppointmentStatus, DEFAULT_PAGE_SIZE, MAX_CANCELLATION_REASON_LENGTH, MAX_PAGE_SIZE
from core.database import get_db
from services import AppointmentService, PatientAppointmentService
from services.appointment_schemas import CancelRequest, RescheduleRequest, ScheduleRequest, ScheduleUpdate
from utils.appointment_queries import calendar_appointments, filter_appointments
from api.responses import (
    AppointmentListResponse, AppointmentResponse, CalendarResponse, ConflictReportResponse, RescheduleResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()
patient_router = APIRouter()


# ===== Request Models =====

class AssignRoomRequest(BaseModel):
    """Request model for assigning an exam room."""
    exam_room_id: int


class PatientCancelRequest(BaseModel):
    """Request model for patient-initiated cancellation."""
    reason: Optional[str] = Field(default=None, max_length=MAX_CANCELLATION_REASON_LENGTH)


# ===== Dependencies =====

def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    return AppointmentService(db)


def get_patient_appointment_service(db: Session = Depends(get_db)) -> PatientAppointmentService:
    return PatientAppointmentService(db)


# ===== Clinic endpoints =====

@router.post("", status_code=status.HTTP_201_CREATED, summary="Schedule an appointment")
def create_appointment(
    request: ScheduleRequest,
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentResponse:
    """
    Book a new appointment.

    Fails with 409 if the clinician or the exam room already has an
    overlapping active appointment.
    """
    appointment = service.schedule(request)
    return AppointmentResponse.from_appointment(appointment)


@router.get("", summary="List appointments")
def list_appointments(
    organization_id: Optional[int] = None,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    date: Optional[date_type] = None,
    clinician_id: Optional[str] = None,
    exam_room_id: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
) -> AppointmentListResponse:
    """
    List appointments, newest date first.

    ``status``, ``clinician_id`` and ``exam_room_id`` accept "all" to disable
    the filter; ``exam_room_id`` also accepts "none".
    """
    appointments, total = filter_appointments(
        db,
        organization_id=organization_id,
        status=status_filter,
        on_date=date,
        clinician_id=clinician_id,
        exam_room_id=exam_room_id,
        page=page,
        page_size=page_size,
    )
    return AppointmentListResponse(
        appointments=[AppointmentResponse.from_appointment(a) for a in appointments],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/calendar", summary="Appointments for the calendar view")
def get_calendar(
    start_date: date_type,
    end_date: Optional[date_type] = None,
    organization_id: Optional[int] = None,
    clinician_id: Optional[int] = None,
    exam_room_id: Optional[int] = None,
    db: Session = Depends(get_db),
) -> CalendarResponse:
    """Non-cancelled appointments between two dates (inclusive)."""
    end_date = end_date or start_date
    appointments = calendar_appointments(
        db, organization_id, start_date, end_date,
        clinician_id=clinician_id, exam_room_id=exam_room_id,
    )
    return CalendarResponse(
        start_date=start_date,
        end_date=end_date,
        appointments=[AppointmentResponse.from_appointment(a) for a in appointments],
    )


@router.get("/{appointment_id}", summary="Get an appointment")
def get_appointment(
    appointment_id: int,
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentResponse:
    return AppointmentResponse.from_appointment(service.get_appointment(appointment_id))


@router.put("/{appointment_id}", summary="Update appointment details")
def update_appointment(
    appointment_id: int,
    request: ScheduleUpdate,
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentResponse:
    appointment = service.update_details(appointment_id, request)
    return AppointmentResponse.from_appointment(appointment)


@router.post(
    "/{appointment_id}/reschedule",
    summary="Reschedule an appointment",
    response_model=RescheduleResponse,
    responses={409: {"model": ConflictReportResponse, "description": "Conflicts with other appointments"}},
)
def reschedule_appointment(
    appointment_id: int,
    request: RescheduleRequest,
    service: AppointmentService = Depends(get_appointment_service),
) -> Union[RescheduleResponse, JSONResponse]:
    """
    Move an appointment to a new slot.

    When the new slot conflicts, nothing changes and a 409 carries the full
    conflict report. Repeat with ``force: true`` to move anyway.
    """
    result = service.reschedule(
        appointment_id,
        request.appointment_date,
        request.appointment_time,
        new_duration=request.duration_minutes,
        force=request.force,
    )

    if not result.success:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=result.report.to_dict())

    return RescheduleResponse(
        forced=result.forced,
        appointment=AppointmentResponse.from_appointment(result.appointment),  # type: ignore[arg-type]
    )


@router.post("/{appointment_id}/cancel", summary="Cancel an appointment")
def cancel_appointment(
    appointment_id: int,
    request: CancelRequest,
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentResponse:
    return AppointmentResponse.from_appointment(service.cancel(appointment_id, request.reason))


@router.post("/{appointment_id}/start", summary="Mark an appointment as in progress")
def start_appointment(
    appointment_id: int,
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentResponse:
    return AppointmentResponse.from_appointment(service.start(appointment_id))


@router.post("/{appointment_id}/complete", summary="Mark an appointment as completed")
def complete_appointment(
    appointment_id: int,
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentResponse:
    return AppointmentResponse.from_appointment(service.complete(appointment_id))


@router.post("/{appointment_id}/no-show", summary="Mark an appointment as no-show")
def mark_no_show(
    appointment_id: int,
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentResponse:
    return AppointmentResponse.from_appointment(service.mark_no_show(appointment_id))


@router.post("/{appointment_id}/room", summary="Assign an exam room")
def assign_room(
    appointment_id: int,
    request: AssignRoomRequest,
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentResponse:
    return AppointmentResponse.from_appointment(service.assign_room(appointment_id, request.exam_room_id))


# ===== Patient endpoints =====

@patient_router.get("/{patient_id}/appointments", summary="List a patient's appointments")
def list_patient_appointments(
    patient_id: int,
    status_filter: Optional[AppointmentStatus] = Query(default=None, alias="status"),
    upcoming: bool = False,
    service: PatientAppointmentService = Depends(get_patient_appointment_service),
) -> AppointmentListResponse:
    appointments = service.list_for_patient(patient_id, status=status_filter, upcoming=upcoming)
    return AppointmentListResponse(
        appointments=[AppointmentResponse.from_appointment(a) for a in appointments],
        total=len(appointments),
        page=1,
        page_size=len(appointments),
    )


@patient_router.post("/{patient_id}/appointments/{appointment_id}/cancel", summary="Cancel own appointment")
def patient_cancel_appointment(
    patient_id: int,
    appointment_id: int,
    request: Optional[PatientCancelRequest] = None,
    service: PatientAppointmentService = Depends(get_patient_appointment_service),
) -> AppointmentResponse:
    """
    Cancel an appointment as the patient.

    Only scheduled appointments starting at least 24 hours from now can be
    cancelled; otherwise 422 ``cancellation_window_expired``.
    """
    reason = request.reason if request else None
    appointment = service.cancel(patient_id, appointment_id, reason=reason)
    return AppointmentResponse.from_appointment(appointment)
