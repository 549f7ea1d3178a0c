"""
Exam room model representing bookable physical rooms.

Rooms are the second resource kind (besides clinicians) that the scheduling
engine keeps free of overlapping appointments. Deactivated rooms stay in the
table but are never offered for assignment or reported by availability.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, String, TIMESTAMP, Text, Boolean, Integer, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class ExamRoom(Base):
    """
    Exam room entity.

    Examples: "101 - General Exam", "204 - Ultrasound"
    """

    __tablename__ = "exam_rooms"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the room."""

    organization_id: Mapped[Optional[int]] = mapped_column(nullable=True)
    """Organization (tenant) that owns the room."""

    room_number: Mapped[str] = mapped_column(String(50), unique=True)
    """Identifying number shown on the door (e.g., "101")."""

    name: Mapped[str] = mapped_column(String(255))
    """Display name of the room."""

    floor: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    equipment: Mapped[Optional[List[str]]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=True
    )
    """List of equipment available in the room."""

    capacity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """Only active rooms can be assigned to appointments."""

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    appointments = relationship("Appointment", back_populates="exam_room")

    __table_args__ = (
        Index('idx_exam_rooms_active_number', 'is_active', 'room_number'),
        Index('idx_exam_rooms_organization', 'organization_id'),
    )

    def to_snapshot(self) -> Dict[str, Any]:
        """Attribute snapshot recorded in audit logs."""
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "room_number": self.room_number,
            "name": self.name,
            "floor": self.floor,
            "equipment": list(self.equipment) if self.equipment else None,
            "capacity": self.capacity,
            "is_active": self.is_active,
            "notes": self.notes,
        }

    def __repr__(self) -> str:
        return f"<ExamRoom(id={self.id}, number={self.room_number}, active={self.is_active})>"
