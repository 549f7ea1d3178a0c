"""Application constants and configuration values."""

from enum import Enum

from core.config import FRONTEND_URL

# Database field lengths
MAX_STRING_LENGTH = 255
MAX_NOTES_LENGTH = 1000
MAX_CANCELLATION_REASON_LENGTH = 500

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

_CORS_ORIGINS_RAW = [
    "http://localhost:5173",
    FRONTEND_URL,
]

CORS_ORIGINS = [origin for origin in _CORS_ORIGINS_RAW if origin and origin.strip()]


class AppointmentStatus(str, Enum):
    """Lifecycle status of an appointment."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

    @property
    def is_active(self) -> bool:
        """Active appointments occupy their clinician and room."""
        return self in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self]

    @property
    def is_patient_cancellable(self) -> bool:
        """Patients may only cancel appointments that have not started."""
        return self is AppointmentStatus.SCHEDULED


class AppointmentCategory(str, Enum):
    """Kind of visit being booked."""
    ROUTINE = "routine"
    FOLLOW_UP = "follow_up"
    CONSULTATION = "consultation"
    EMERGENCY = "emergency"


class AuditAction(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class ResourceKind(str, Enum):
    """Bookable resources subject to conflict checks."""
    CLINICIAN = "clinician"
    ROOM = "room"


ACTIVE_STATUSES = frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.IN_PROGRESS})

ACTIVE_STATUS_VALUES = tuple(s.value for s in ACTIVE_STATUSES)

# Scheduled -> {InProgress, Cancelled, NoShow}, InProgress -> {Completed, Cancelled}
ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset({
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }),
    AppointmentStatus.IN_PROGRESS: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

# Audit resource types
AUDIT_RESOURCE_APPOINTMENT = "Appointment"
AUDIT_RESOURCE_EXAM_ROOM = "ExamRoom"

# Display fallbacks when a patient record is missing
UNKNOWN_PATIENT_NAME = "Unknown"
UNKNOWN_PATIENT_DISPLAY_NAME = "Unknown Patient"

DEFAULT_PATIENT_CANCELLATION_REASON = "Cancelled by patient"

# Listing defaults
DEFAULT_PAGE_SIZE = 15
MAX_PAGE_SIZE = 100
