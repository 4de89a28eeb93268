"""
Pydantic schemas for booking requests and appointment responses
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from salon_scheduler.models.appointment import AppointmentStatus
from salon_scheduler.schemas.common import CamelModel


# ============================================================================
# Request Schemas
# ============================================================================

class BookingServiceRequest(CamelModel):
    service_id: UUID
    staff_id: UUID
    start_time: datetime

    @field_validator("start_time")
    @classmethod
    def strip_timezone(cls, v: datetime) -> datetime:
        # Times are business-local wall clock; an offset, if sent, is ignored
        return v.replace(tzinfo=None)


class CreateBookingRequest(CamelModel):
    business_id: UUID
    location_id: UUID
    client_id: Optional[UUID] = None
    services: List[BookingServiceRequest] = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=1000)
    source: Literal["online", "pos", "phone", "walk_in"] = "online"


class UpdateBookingRequest(CamelModel):
    """All fields optional - only send what you want to change"""
    status: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=1000)
    internal_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None


class RescheduleRequest(CamelModel):
    new_start: datetime
    new_staff_id: Optional[UUID] = None

    @field_validator("new_start")
    @classmethod
    def strip_timezone(cls, v: datetime) -> datetime:
        return v.replace(tzinfo=None)


class RecurringBookingRequest(CamelModel):
    client_id: UUID
    service_id: UUID
    staff_id: UUID
    start_time: datetime
    notes: Optional[str] = Field(None, max_length=1000)
    recurrence_rule: Literal["weekly", "biweekly", "monthly"]
    recurrence_end_date: date
    location_id: Optional[UUID] = None

    @field_validator("start_time")
    @classmethod
    def strip_timezone(cls, v: datetime) -> datetime:
        return v.replace(tzinfo=None)


class GroupBookingRequest(CamelModel):
    service_id: UUID
    staff_id: UUID
    start_time: datetime
    max_participants: int = Field(..., ge=1)
    client_ids: List[UUID] = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=1000)
    location_id: Optional[UUID] = None

    @field_validator("start_time")
    @classmethod
    def strip_timezone(cls, v: datetime) -> datetime:
        return v.replace(tzinfo=None)


class AddParticipantRequest(CamelModel):
    client_id: UUID


class PublicBookingRequest(CamelModel):
    business_id: UUID
    service_id: UUID
    staff_id: UUID
    start_time: datetime
    client_first_name: str = Field(..., min_length=1, max_length=100)
    client_last_name: str = Field(..., min_length=1, max_length=100)
    client_email: EmailStr
    client_phone: str = Field(..., min_length=1, max_length=30)
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("start_time")
    @classmethod
    def strip_timezone(cls, v: datetime) -> datetime:
        return v.replace(tzinfo=None)

    @field_validator("client_first_name", "client_last_name", "client_phone")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


# ============================================================================
# Response Schemas
# ============================================================================

class ClientSummary(CamelModel):
    id: UUID
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class StaffInfo(CamelModel):
    id: UUID
    first_name: str
    last_name: str


class AppointmentServiceResponse(CamelModel):
    id: UUID
    service_id: UUID
    staff_id: UUID
    name: str
    duration_minutes: int
    price: Decimal
    tax_amount: Decimal
    final_price: Decimal
    start_time: datetime
    end_time: datetime
    status: str
    sort_order: int
    staff: Optional[StaffInfo] = None


class GroupParticipantResponse(CamelModel):
    client_id: UUID


class AppointmentResponse(CamelModel):
    id: UUID
    business_id: UUID
    location_id: UUID
    client_id: Optional[UUID] = None
    booking_reference: str
    status: AppointmentStatus
    source: Optional[str] = None
    start_time: datetime
    end_time: datetime
    total_duration: int
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    confirmation_sent_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    no_show_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    series_id: Optional[UUID] = None
    parent_appointment_id: Optional[UUID] = None
    recurrence_rule: Optional[str] = None
    recurrence_end_date: Optional[date] = None
    is_group_booking: bool = False
    max_participants: Optional[int] = None
    client: Optional[ClientSummary] = None
    services: List[AppointmentServiceResponse] = []
    group_participants: List[GroupParticipantResponse] = []


class PaginationMeta(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AppointmentListResponse(CamelModel):
    appointments: List[AppointmentResponse]
    pagination: PaginationMeta


class RecurringSeriesResponse(CamelModel):
    series_id: UUID
    count: int
    appointment_ids: List[UUID]
    skipped: List[datetime]


class CancelSeriesResponse(CamelModel):
    series_id: UUID
    count: int


class PublicBookingResponse(CamelModel):
    id: UUID
    booking_reference: str
