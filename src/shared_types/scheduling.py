"""
Shared types for scheduling results.

Conflict reports and room availability are returned to callers as data rather
than raised, so they live here as plain dataclasses with ``to_dict`` methods
producing the JSON shape the API layer sends.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from models import Appointment


ConflictType = Literal["clinician", "room"]

CLINICIAN_CONFLICT_MESSAGE = "Clinician has a conflicting appointment at this time."
ROOM_CONFLICT_MESSAGE = "Exam room is occupied at this time."


@dataclass
class ConflictingAppointment:
    """An existing appointment that blocks a reschedule."""
    id: int
    patient_name: str
    time: str  # Format: "HH:MM - HH:MM"

    @classmethod
    def from_appointment(cls, appointment: "Appointment") -> "ConflictingAppointment":
        return cls(
            id=appointment.id,
            patient_name=appointment.patient_name,
            time=appointment.interval.format_clock_range(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "patientName": self.patient_name, "time": self.time}


@dataclass
class ConflictEntry:
    """All conflicts of one kind (clinician or room)."""
    type: ConflictType
    message: str
    conflicting_appointments: List[ConflictingAppointment] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "message": self.message,
            "conflictingAppointments": [c.to_dict() for c in self.conflicting_appointments],
        }


@dataclass
class ConflictReport:
    """
    Structured description of everything blocking a reschedule.

    An empty report means the new slot is free.
    """
    conflicts: List[ConflictEntry] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def conflict_types(self) -> List[str]:
        return [c.type for c in self.conflicts]

    def add(self, conflict_type: ConflictType, message: str, appointments: List["Appointment"]) -> None:
        if not appointments:
            return
        self.conflicts.append(ConflictEntry(
            type=conflict_type,
            message=message,
            conflicting_appointments=[ConflictingAppointment.from_appointment(a) for a in appointments],
        ))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": not self.has_conflicts,
            "conflicts": [c.to_dict() for c in self.conflicts],
        }


@dataclass
class RescheduleResult:
    """
    Outcome of a reschedule attempt.

    Exactly one of ``appointment`` (moved) or a non-empty ``report``
    (nothing changed) is meaningful; ``forced`` marks a move made despite
    conflicts.
    """
    appointment: Optional["Appointment"] = None
    report: ConflictReport = field(default_factory=ConflictReport)
    forced: bool = False

    @property
    def success(self) -> bool:
        return self.appointment is not None


@dataclass
class RoomBooking:
    """Appointment occupying a room during an availability window."""
    id: int
    start: str  # ISO-8601
    end: str  # ISO-8601
    patient_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "start": self.start, "end": self.end, "patientName": self.patient_name}


@dataclass
class RoomAvailability:
    """Busy/available status of one exam room for a query window."""
    room_id: int
    room_name: str
    room_number: str
    is_active: bool
    conflicting_appointments: List[RoomBooking] = field(default_factory=list)

    @property
    def availability(self) -> Literal["available", "busy"]:
        return "busy" if self.conflicting_appointments else "available"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "roomId": self.room_id,
            "roomName": self.room_name,
            "roomNumber": self.room_number,
            "isActive": self.is_active,
            "availability": self.availability,
            "conflictingAppointments": [b.to_dict() for b in self.conflicting_appointments],
        }
