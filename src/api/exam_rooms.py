# pyright: reportMissingTypeStubs=false
"""
Exam room API endpoints.

Room management and availability lookups for the calendar.
"""

import logging
from datetime import date as date_type, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from core.config import MAX_DURATION_MINUTES, MIN_DURATION_MINUTES
from core.database import get_db
from services import AvailabilityCalculator, ExamRoomService
from services.appointment_repository import AppointmentRepository
from services.exam_room_service import ExamRoomCreate, ExamRoomUpdate
from utils.datetime_utils import parse_time_string
from api.responses import ExamRoomListResponse, ExamRoomResponse, RoomAvailabilityListResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def get_exam_room_service(db: Session = Depends(get_db)) -> ExamRoomService:
    return ExamRoomService(db)


def get_availability_calculator(db: Session = Depends(get_db)) -> AvailabilityCalculator:
    return AvailabilityCalculator(AppointmentRepository(db))


@router.get("/availability", summary="Room availability for a time window")
def get_room_availability(
    start: datetime,
    end: datetime,
    room_id: Optional[int] = None,
    organization_id: Optional[int] = None,
    calculator: AvailabilityCalculator = Depends(get_availability_calculator),
) -> RoomAvailabilityListResponse:
    """
    Busy/available status of every active room during ``[start, end)``.

    Busy rooms list the appointments occupying them. An empty or reversed
    window returns no rooms.
    """
    rooms = calculator.get_availability(start, end, room_id=room_id, organization_id=organization_id)
    return RoomAvailabilityListResponse(rooms=[r.to_dict() for r in rooms])


@router.get("/available", summary="Rooms free for a slot")
def get_available_rooms(
    date: date_type,
    time: str = Query(description="Start time, HH:MM"),
    duration_minutes: int = Query(ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES),
    organization_id: Optional[int] = None,
    calculator: AvailabilityCalculator = Depends(get_availability_calculator),
) -> ExamRoomListResponse:
    try:
        start_time = parse_time_string(time)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    rooms = calculator.available_rooms(date, start_time, duration_minutes, organization_id=organization_id)
    return ExamRoomListResponse(rooms=[ExamRoomResponse.from_room(r) for r in rooms])


@router.get("", summary="List exam rooms")
def list_rooms(
    organization_id: Optional[int] = None,
    active_only: bool = False,
    service: ExamRoomService = Depends(get_exam_room_service),
) -> ExamRoomListResponse:
    rooms = service.list_rooms(organization_id=organization_id, active_only=active_only)
    return ExamRoomListResponse(rooms=[ExamRoomResponse.from_room(r) for r in rooms])


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create an exam room")
def create_room(
    request: ExamRoomCreate,
    service: ExamRoomService = Depends(get_exam_room_service),
) -> ExamRoomResponse:
    return ExamRoomResponse.from_room(service.create_room(request))


@router.get("/{room_id}", summary="Get an exam room")
def get_room(
    room_id: int,
    service: ExamRoomService = Depends(get_exam_room_service),
) -> ExamRoomResponse:
    return ExamRoomResponse.from_room(service.get_room(room_id))


@router.put("/{room_id}", summary="Update an exam room")
def update_room(
    room_id: int,
    request: ExamRoomUpdate,
    service: ExamRoomService = Depends(get_exam_room_service),
) -> ExamRoomResponse:
    return ExamRoomResponse.from_room(service.update_room(room_id, request))


@router.post("/{room_id}/activate", summary="Activate an exam room")
def activate_room(
    room_id: int,
    service: ExamRoomService = Depends(get_exam_room_service),
) -> ExamRoomResponse:
    return ExamRoomResponse.from_room(service.activate_room(room_id))


@router.post("/{room_id}/deactivate", summary="Deactivate an exam room")
def deactivate_room(
    room_id: int,
    service: ExamRoomService = Depends(get_exam_room_service),
) -> ExamRoomResponse:
    """Deactivate a room. Appointments already in it are left as they are."""
    return ExamRoomResponse.from_room(service.deactivate_room(room_id))
