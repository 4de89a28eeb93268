"""
Availability responses
"""
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from salon_scheduler.schemas.common import CamelModel, display_time
from salon_scheduler.services.scheduling.intervals import TimeRange


class SlotResponse(CamelModel):
    """A bookable window; ``startTime``/``endTime`` are display strings"""
    start: datetime
    end: datetime
    start_time: str
    end_time: str

    @classmethod
    def from_range(cls, slot: TimeRange) -> "SlotResponse":
        return cls(
            start=slot.start,
            end=slot.end,
            start_time=display_time(slot.start),
            end_time=display_time(slot.end),
        )


class StaffSummary(CamelModel):
    id: UUID
    name: str


class StaffAvailabilityResponse(CamelModel):
    date: date
    service_id: UUID
    service_duration: int
    staff: Optional[StaffSummary] = None
    slots: List[SlotResponse]
    total_slots: int


class StaffSlotsResponse(CamelModel):
    staff: StaffSummary
    slots: List[SlotResponse]
    total_slots: int


class MergedSlotResponse(CamelModel):
    start_time: datetime
    display_time: str
    available_staff: List[UUID]
    staff_count: int


class MultiStaffAvailabilityResponse(CamelModel):
    date: date
    service_id: UUID
    service_duration: int
    by_staff: List[StaffSlotsResponse]
    all_slots: List[MergedSlotResponse]
    total_available_slots: int


class NoStaffAvailabilityResponse(CamelModel):
    date: date
    service_id: UUID
    message: str = "No staff members available for this service"
    availability: List[StaffSlotsResponse] = []
