# ============================================================================
# salon_scheduler/api/v1/bookings.py
# Booking endpoints - thin HTTP layer over the booking services
# ============================================================================
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from salon_scheduler.api.dependencies import BusinessContext, get_business_context, get_notification_dispatcher
from salon_scheduler.config.database import get_db
from salon_scheduler.schemas.booking import (
    AppointmentListResponse,
    AppointmentResponse,
    CreateBookingRequest,
    RescheduleRequest,
    UpdateBookingRequest,
)
from salon_scheduler.services.appointment.appointment_query_service import AppointmentQueryService
from salon_scheduler.services.appointment.booking_service import BookingLine, BookingService
from salon_scheduler.services.appointment.status_service import StatusService
from salon_scheduler.services.notification.notification_dispatcher import NotificationDispatcher

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _detailed(db: Session, appointment_id: UUID) -> AppointmentResponse:
    return AppointmentResponse.model_validate(AppointmentQueryService.get_appointment(db, appointment_id))


@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
        request: CreateBookingRequest,
        db: Session = Depends(get_db),
        dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """
    Book one or more services. Each line must be an open slot; the commit
    re-checks every line against existing bookings.
    """
    appointment = BookingService.create_multi_service_booking(
        db,
        business_id=request.business_id,
        location_id=request.location_id,
        lines=[BookingLine(s.service_id, s.staff_id, s.start_time) for s in request.services],
        client_id=request.client_id,
        notes=request.notes,
        source=request.source,
        dispatcher=dispatcher,
    )
    return _detailed(db, appointment.id)


@router.get("", response_model=AppointmentListResponse)
async def list_bookings(
        business_id: UUID = Query(..., alias="businessId"),
        start_date: Optional[date] = Query(None, alias="startDate"),
        end_date: Optional[date] = Query(None, alias="endDate"),
        status_filter: Optional[str] = Query(None, alias="status"),
        staff_id: Optional[UUID] = Query(None, alias="staffId"),
        client_id: Optional[UUID] = Query(None, alias="clientId"),
        page: int = Query(1, ge=1),
        limit: int = Query(50, ge=1, le=100),
        db: Session = Depends(get_db)
):
    result = AppointmentQueryService.list_appointments(
        db=db,
        business_id=business_id,
        start_date=start_date,
        end_date=end_date,
        status=status_filter,
        staff_id=staff_id,
        client_id=client_id,
        page=page,
        limit=limit,
    )
    return AppointmentListResponse(
        appointments=[AppointmentResponse.model_validate(a) for a in result["appointments"]],
        pagination=result["pagination"],
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_booking(
        appointment_id: UUID = Path(..., description="The appointment ID"),
        context: BusinessContext = Depends(get_business_context),
        db: Session = Depends(get_db)
):
    appointment = AppointmentQueryService.get_appointment(db, appointment_id, context.business_id)
    return AppointmentResponse.model_validate(appointment)


@router.patch("/{appointment_id}", response_model=AppointmentResponse)
async def update_booking(
        request: UpdateBookingRequest,
        appointment_id: UUID = Path(..., description="The appointment ID"),
        context: BusinessContext = Depends(get_business_context),
        db: Session = Depends(get_db),
        dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Status changes must follow the appointment lifecycle"""
    StatusService.update_appointment(
        db,
        appointment_id,
        business_id=context.business_id,
        status=request.status,
        notes=request.notes,
        internal_notes=request.internal_notes,
        cancellation_reason=request.cancellation_reason,
        cancelled_by=request.cancelled_by,
        dispatcher=dispatcher,
    )
    return _detailed(db, appointment_id)


@router.delete("/{appointment_id}", response_model=AppointmentResponse)
async def cancel_booking(
        appointment_id: UUID = Path(..., description="The appointment ID"),
        reason: Optional[str] = Query(None),
        cancelled_by: Optional[str] = Query(None, alias="cancelledBy"),
        context: BusinessContext = Depends(get_business_context),
        db: Session = Depends(get_db),
        dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Soft cancel: the appointment is kept with status cancelled"""
    StatusService.cancel_appointment(
        db,
        appointment_id,
        business_id=context.business_id,
        reason=reason,
        cancelled_by=cancelled_by,
        dispatcher=dispatcher,
    )
    return _detailed(db, appointment_id)


@router.post("/{appointment_id}/reschedule", response_model=AppointmentResponse)
async def reschedule_booking(
        request: RescheduleRequest,
        appointment_id: UUID = Path(..., description="The appointment ID"),
        context: BusinessContext = Depends(get_business_context),
        db: Session = Depends(get_db),
        dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    BookingService.reschedule(
        db,
        appointment_id,
        request.new_start,
        business_id=context.business_id,
        new_staff_id=request.new_staff_id,
        dispatcher=dispatcher,
    )
    return _detailed(db, appointment_id)
