# salon_scheduler/schemas/__init__.py
from .common import CamelModel

from .task_payloads import BookingNotificationPayload

from .availability import (
    SlotResponse,
    StaffSummary,
    StaffAvailabilityResponse,
    StaffSlotsResponse,
    MergedSlotResponse,
    MultiStaffAvailabilityResponse,
    NoStaffAvailabilityResponse,
)

from .booking import (
    BookingServiceRequest,
    CreateBookingRequest,
    UpdateBookingRequest,
    RescheduleRequest,
    RecurringBookingRequest,
    GroupBookingRequest,
    AddParticipantRequest,
    PublicBookingRequest,
    AppointmentResponse,
    AppointmentListResponse,
    RecurringSeriesResponse,
    CancelSeriesResponse,
    PublicBookingResponse,
)

__all__ = [
    "CamelModel",
    "BookingNotificationPayload",
    "SlotResponse",
    "StaffSummary",
    "StaffAvailabilityResponse",
    "StaffSlotsResponse",
    "MergedSlotResponse",
    "MultiStaffAvailabilityResponse",
    "NoStaffAvailabilityResponse",
    "BookingServiceRequest",
    "CreateBookingRequest",
    "UpdateBookingRequest",
    "RescheduleRequest",
    "RecurringBookingRequest",
    "GroupBookingRequest",
    "AddParticipantRequest",
    "PublicBookingRequest",
    "AppointmentResponse",
    "AppointmentListResponse",
    "RecurringSeriesResponse",
    "CancelSeriesResponse",
    "PublicBookingResponse",
]
