# ============================================================================
# salon_scheduler/api/v1/appointments.py
# Recurring series and group bookings (JWT business context required)
# ============================================================================
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from salon_scheduler.api.dependencies import BusinessContext, get_business_context, get_notification_dispatcher
from salon_scheduler.config.database import get_db
from salon_scheduler.schemas.booking import (
    AddParticipantRequest,
    AppointmentResponse,
    CancelSeriesResponse,
    GroupBookingRequest,
    RecurringBookingRequest,
    RecurringSeriesResponse,
)
from salon_scheduler.services.appointment.appointment_query_service import AppointmentQueryService
from salon_scheduler.services.appointment.group_service import GroupBookingService
from salon_scheduler.services.appointment.recurring_service import RecurringService
from salon_scheduler.services.notification.notification_dispatcher import NotificationDispatcher

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post("/recurring", response_model=RecurringSeriesResponse, status_code=status.HTTP_201_CREATED)
async def create_recurring_series(
        request: RecurringBookingRequest,
        context: BusinessContext = Depends(get_business_context),
        db: Session = Depends(get_db),
        dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """
    Book a weekly, biweekly or monthly series. Occurrences that clash with an
    existing booking are skipped and listed in ``skipped``.
    """
    result = RecurringService.create_recurring_series(
        db,
        business_id=context.business_id,
        client_id=request.client_id,
        service_id=request.service_id,
        staff_id=request.staff_id,
        start_time=request.start_time,
        recurrence_rule=request.recurrence_rule,
        recurrence_end_date=request.recurrence_end_date,
        notes=request.notes,
        location_id=request.location_id,
        dispatcher=dispatcher,
    )
    return RecurringSeriesResponse(
        series_id=result.series_id,
        count=len(result.created),
        appointment_ids=[a.id for a in result.created],
        skipped=result.skipped,
    )


@router.delete("/recurring/{series_id}", response_model=CancelSeriesResponse)
async def cancel_recurring_series(
        series_id: UUID = Path(..., description="The series ID"),
        cancel_from: Optional[date] = Query(None, alias="cancelFrom"),
        context: BusinessContext = Depends(get_business_context),
        db: Session = Depends(get_db),
):
    count = RecurringService.cancel_series(db, context.business_id, series_id, cancel_from)
    return CancelSeriesResponse(series_id=series_id, count=count)


@router.post("/groups", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_group_booking(
        request: GroupBookingRequest,
        context: BusinessContext = Depends(get_business_context),
        db: Session = Depends(get_db),
        dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    appointment = GroupBookingService.create_group_booking(
        db,
        business_id=context.business_id,
        service_id=request.service_id,
        staff_id=request.staff_id,
        start_time=request.start_time,
        max_participants=request.max_participants,
        client_ids=request.client_ids,
        notes=request.notes,
        location_id=request.location_id,
        dispatcher=dispatcher,
    )
    return AppointmentResponse.model_validate(AppointmentQueryService.get_appointment(db, appointment.id))


@router.post("/groups/{appointment_id}/participants", response_model=AppointmentResponse)
async def add_group_participant(
        request: AddParticipantRequest,
        appointment_id: UUID = Path(..., description="The group appointment ID"),
        context: BusinessContext = Depends(get_business_context),
        db: Session = Depends(get_db),
):
    GroupBookingService.add_participant(db, appointment_id, request.client_id, context.business_id)
    return AppointmentResponse.model_validate(AppointmentQueryService.get_appointment(db, appointment_id))


@router.delete("/groups/{appointment_id}/participants/{client_id}", response_model=AppointmentResponse)
async def remove_group_participant(
        appointment_id: UUID = Path(..., description="The group appointment ID"),
        client_id: UUID = Path(..., description="The participant's client ID"),
        context: BusinessContext = Depends(get_business_context),
        db: Session = Depends(get_db),
):
    GroupBookingService.remove_participant(db, appointment_id, client_id, context.business_id)
    return AppointmentResponse.model_validate(AppointmentQueryService.get_appointment(db, appointment_id))
