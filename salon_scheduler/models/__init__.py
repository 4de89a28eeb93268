# salon_scheduler/models/__init__.py
from .base import Base
from .business import Business, Location
from .client import Client
from .service import Service
from .staff import Staff, StaffService
from .availability import StaffSchedule, StaffBreak, StaffTimeOff
from .appointment import (
    Appointment,
    AppointmentService,
    AppointmentStatus,
    GroupParticipant,
    INACTIVE_STATUSES,
)

__all__ = [
    "Base",
    "Business",
    "Location",
    "Client",
    "Service",
    "Staff",
    "StaffService",
    "StaffSchedule",
    "StaffBreak",
    "StaffTimeOff",
    "Appointment",
    "AppointmentService",
    "AppointmentStatus",
    "GroupParticipant",
    "INACTIVE_STATUSES",
]
