"""
Public booking API - clients book themselves in from the booking page
File: salon_scheduler/api/v1/public/booking.py
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from salon_scheduler.api.dependencies import get_notification_dispatcher, get_rate_limiter
from salon_scheduler.config.database import get_db
from salon_scheduler.schemas.booking import PublicBookingRequest, PublicBookingResponse
from salon_scheduler.services.client.public_booking_service import PublicBookingService
from salon_scheduler.services.notification.notification_dispatcher import NotificationDispatcher
from salon_scheduler.services.rate_limit.rate_limiter import RateLimiter

router = APIRouter()


@router.post("/bookings", response_model=PublicBookingResponse, status_code=status.HTTP_201_CREATED)
async def create_public_booking(
        request: PublicBookingRequest,
        db: Session = Depends(get_db),
        rate_limiter: RateLimiter = Depends(get_rate_limiter),
        dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """No authentication; limited to a few attempts per email per hour"""
    appointment = await PublicBookingService.create_public_booking(
        db,
        rate_limiter,
        business_id=request.business_id,
        service_id=request.service_id,
        staff_id=request.staff_id,
        start_time=request.start_time,
        client_first_name=request.client_first_name,
        client_last_name=request.client_last_name,
        client_email=str(request.client_email),
        client_phone=request.client_phone,
        notes=request.notes,
        dispatcher=dispatcher,
    )
    return PublicBookingResponse(id=appointment.id, booking_reference=appointment.booking_reference)
