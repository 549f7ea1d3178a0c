"""
Services package for scheduling business logic.

This package contains service classes that encapsulate the business rules
shared by the API endpoints and scripts.
"""

from .appointment_service import AppointmentService
from .availability_service import AvailabilityCalculator
from .conflict_service import ConflictDetector
from .exam_room_service import ExamRoomService
from .patient_appointment_service import PatientAppointmentService
from .audit_service import AuditService

__all__ = [
    "AppointmentService",
    "AvailabilityCalculator",
    "ConflictDetector",
    "ExamRoomService",
    "PatientAppointmentService",
    "AuditService",
]
