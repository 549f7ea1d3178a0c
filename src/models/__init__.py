# Package initialization
# Import all models to ensure relationships are properly established
from .patient import Patient
from .exam_room import ExamRoom
from .appointment import Appointment
from .audit_log import AuditLog
from .resource_lock import ResourceLock

__all__ = [
    "Patient",
    "ExamRoom",
    "Appointment",
    "AuditLog",
    "ResourceLock",
]
