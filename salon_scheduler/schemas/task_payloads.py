from __future__ import annotations
# salon_scheduler/schemas/task_payloads.py
from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime


class BookingNotificationPayload(BaseModel):
    """Payload handed to the notification worker after a booking change commits"""
    kind: Literal["confirmation", "cancellation", "rescheduled"] = Field(..., description="Notification type")
    appointment_id: str = Field(..., description="Appointment ID")
    booking_reference: str = Field(..., description="Human-facing booking reference")
    client_name: str = Field(..., description="Client display name")
    client_email: Optional[str] = Field(None, description="Client email, if known")
    client_phone: Optional[str] = Field(None, description="Client phone, if known")
    service_name: str = Field(..., description="Service names, comma separated")
    staff_name: str = Field(..., description="Staff names, comma separated")
    business_name: str = Field(..., description="Business display name")
    start_time: datetime = Field(..., description="Appointment start (local time)")
    previous_start_time: Optional[datetime] = Field(None, description="Start before a reschedule")
    cancellation_reason: Optional[str] = Field(None, description="Reason given on cancellation")
