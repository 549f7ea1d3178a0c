"""
Exam room management.

Creating, editing and (de)activating rooms. Rooms are never deleted;
deactivating one hides it from assignment and availability while keeping
its past appointments intact.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session

from core.constants import AUDIT_RESOURCE_EXAM_ROOM, AuditAction, MAX_NOTES_LENGTH, MAX_STRING_LENGTH
from core.database import transaction
from core.exceptions import DuplicateRoomNumber, NotFound
from models import ExamRoom
from services.audit_service import AuditService, AuditSink, emit_audit

logger = logging.getLogger(__name__)


class ExamRoomCreate(BaseModel):
    """Fields for a new exam room."""
    model_config = ConfigDict(str_strip_whitespace=True)

    room_number: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=MAX_STRING_LENGTH)
    floor: int = 1
    equipment: Optional[List[str]] = None
    capacity: int = Field(default=1, ge=1)
    is_active: bool = True
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)
    organization_id: Optional[int] = None


class ExamRoomUpdate(BaseModel):
    """Partial update of an exam room; unset fields are kept."""
    model_config = ConfigDict(str_strip_whitespace=True)

    room_number: Optional[str] = Field(default=None, min_length=1, max_length=50)
    name: Optional[str] = Field(default=None, min_length=1, max_length=MAX_STRING_LENGTH)
    floor: Optional[int] = None
    equipment: Optional[List[str]] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)

    @field_validator('room_number', 'name', 'floor', 'capacity', 'is_active')
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        # Omit a field to keep it; these columns are NOT NULL
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class ExamRoomService:
    """Exam room CRUD with audit logging."""

    def __init__(self, db: Session, audit: Optional[AuditSink] = None):
        self.db = db
        self.audit: AuditSink = audit or AuditService(db)

    def get_room(self, room_id: int, for_update: bool = False) -> ExamRoom:
        query = self.db.query(ExamRoom).filter(ExamRoom.id == room_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        room = query.first()
        if not room:
            raise NotFound("Exam room not found")
        return room

    def list_rooms(self, organization_id: Optional[int] = None, active_only: bool = False) -> List[ExamRoom]:
        """Rooms ordered by room number, optionally only active ones."""
        query = self.db.query(ExamRoom)
        if organization_id is not None:
            query = query.filter(ExamRoom.organization_id == organization_id)
        if active_only:
            query = query.filter(ExamRoom.is_active.is_(True))
        return query.order_by(ExamRoom.room_number).all()

    def create_room(self, data: Union[ExamRoomCreate, Dict[str, Any]]) -> ExamRoom:
        """
        Create an exam room.

        Raises:
            pydantic.ValidationError: If the fields are invalid
            DuplicateRoomNumber: If the room number is taken
        """
        if not isinstance(data, ExamRoomCreate):
            data = ExamRoomCreate.model_validate(data)

        with transaction(self.db):
            self._ensure_number_free(data.room_number)

            room = ExamRoom(**data.model_dump())
            self.db.add(room)
            self.db.flush()

            emit_audit(self.audit, AuditAction.CREATE, AUDIT_RESOURCE_EXAM_ROOM, room.id, after=room.to_snapshot())

        logger.info(f"Created exam room {room.id} ({room.room_number})")
        return room

    def update_room(self, room_id: int, data: Union[ExamRoomUpdate, Dict[str, Any]]) -> ExamRoom:
        """
        Update an exam room.

        Deactivating a room does not touch appointments already assigned to it.

        Raises:
            pydantic.ValidationError: If a required field is set to null
            NotFound: If the room does not exist
            DuplicateRoomNumber: If the new room number is taken
        """
        if not isinstance(data, ExamRoomUpdate):
            data = ExamRoomUpdate.model_validate(data)
        changes = data.model_dump(exclude_unset=True)

        with transaction(self.db):
            # Row lock serializes with bookings that check is_active under the same lock
            room = self.get_room(room_id, for_update=True)
            if changes.get('room_number') and changes['room_number'] != room.room_number:
                self._ensure_number_free(changes['room_number'])

            before = room.to_snapshot()
            for key, value in changes.items():
                setattr(room, key, value)
            self.db.flush()

            emit_audit(
                self.audit, AuditAction.UPDATE, AUDIT_RESOURCE_EXAM_ROOM, room.id,
                before=before, after=room.to_snapshot(),
            )

        logger.info(f"Updated exam room {room_id}: {sorted(changes)}")
        return room

    def activate_room(self, room_id: int) -> ExamRoom:
        return self.update_room(room_id, ExamRoomUpdate(is_active=True))

    def deactivate_room(self, room_id: int) -> ExamRoom:
        return self.update_room(room_id, ExamRoomUpdate(is_active=False))

    def _ensure_number_free(self, room_number: str) -> None:
        exists = self.db.query(ExamRoom.id).filter(ExamRoom.room_number == room_number).first()
        if exists:
            raise DuplicateRoomNumber(room_number)
