"""Recurring appointment series"""
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import List, Optional
from uuid import UUID, uuid4
import logging

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from salon_scheduler.config.settings import settings
from salon_scheduler.core.exceptions import ConflictError, NotFoundError, ValidationError
from salon_scheduler.models.appointment import Appointment, AppointmentService, AppointmentStatus
from salon_scheduler.services.appointment.booking_service import BookingService
from salon_scheduler.services.notification.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)

RECURRENCE_STEPS = {
    "weekly": relativedelta(weeks=1),
    "biweekly": relativedelta(weeks=2),
    "monthly": relativedelta(months=1),
}

# Terminal statuses are left alone by a series cancellation
_SERIES_UNTOUCHED = (
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
)


@dataclass
class RecurringSeriesResult:
    series_id: UUID
    created: List[Appointment] = field(default_factory=list)
    skipped: List[datetime] = field(default_factory=list)


def generate_occurrence_starts(
        base_start: datetime,
        rule: str,
        end_date: date,
        limit: Optional[int] = None,
) -> List[datetime]:
    """
    Occurrence starts from ``base_start`` up to and including ``end_date``.

    Each occurrence is computed from the base, so a monthly series that starts
    on the 31st lands on the last day of shorter months and returns to the 31st
    afterwards. Never more than ``limit`` (default RECURRING_MAX_OCCURRENCES).
    """
    step = RECURRENCE_STEPS.get(rule)
    if step is None:
        raise ValidationError(f"Invalid recurrence rule: {rule}. Use weekly, biweekly or monthly")

    limit = limit or settings.RECURRING_MAX_OCCURRENCES
    starts: List[datetime] = []
    while len(starts) < limit:
        occurrence = base_start + step * len(starts)
        if occurrence.date() > end_date:
            break
        starts.append(occurrence)
    return starts


class RecurringService:

    @staticmethod
    def create_recurring_series(
            db: Session,
            business_id: UUID,
            client_id: UUID,
            service_id: UUID,
            staff_id: UUID,
            start_time: datetime,
            recurrence_rule: str,
            recurrence_end_date: date,
            notes: Optional[str] = None,
            location_id: Optional[UUID] = None,
            dispatcher: Optional[NotificationDispatcher] = None,
    ) -> RecurringSeriesResult:
        """
        Book every occurrence of the series through the booking primitive.

        Occurrences commit one by one. An occurrence that conflicts with an
        existing booking is skipped and reported in ``skipped``; the others are
        kept. The first created occurrence is the parent of the rest and the
        only one that sends a confirmation or counts as a client visit.

        Raises:
            ConflictError: every occurrence conflicted
        """
        if recurrence_end_date < start_time.date():
            raise ValidationError("Recurrence end date must be on or after the start date")

        starts = generate_occurrence_starts(start_time, recurrence_rule, recurrence_end_date)
        result = RecurringSeriesResult(series_id=uuid4())
        parent_id = None

        for occurrence_start in starts:
            try:
                appointment = BookingService.create_booking(
                    db,
                    service_id=service_id,
                    staff_id=staff_id,
                    start_time=occurrence_start,
                    client_id=client_id,
                    notes=notes,
                    business_id=business_id,
                    location_id=location_id,
                    source="pos",
                    status=AppointmentStatus.CONFIRMED,
                    dispatcher=dispatcher,
                    notify=parent_id is None,
                    record_visit=parent_id is None,
                    series_id=result.series_id,
                    parent_appointment_id=parent_id,
                    recurrence_rule=recurrence_rule,
                    recurrence_end_date=recurrence_end_date,
                )
            except ConflictError:
                logger.warning(f"⚠️ Series {result.series_id}: skipping {occurrence_start.isoformat()}, slot taken")
                result.skipped.append(occurrence_start)
                continue

            if parent_id is None:
                parent_id = appointment.id
            result.created.append(appointment)

        if not result.created:
            raise ConflictError("Every occurrence of the series conflicts with an existing booking")

        logger.info(
            f"Series {result.series_id} ({recurrence_rule}): "
            f"{len(result.created)} created, {len(result.skipped)} skipped"
        )
        return result

    @staticmethod
    def cancel_series(
            db: Session,
            business_id: UUID,
            series_id: UUID,
            cancel_from: Optional[date] = None,
    ) -> int:
        """Cancel the open occurrences of a series in one batch; returns how many changed"""
        exists = db.query(Appointment.id).filter(
            Appointment.series_id == series_id,
            Appointment.business_id == business_id,
        ).first()
        if not exists:
            raise NotFoundError.for_resource("Series")

        filters = [
            Appointment.series_id == series_id,
            Appointment.business_id == business_id,
            Appointment.status.notin_(_SERIES_UNTOUCHED),
        ]
        if cancel_from is not None:
            filters.append(Appointment.start_time >= datetime.combine(cancel_from, time.min))

        try:
            ids = [row.id for row in db.query(Appointment.id).filter(*filters).all()]
            if ids:
                db.query(Appointment).filter(Appointment.id.in_(ids)).update(
                    {
                        Appointment.status: AppointmentStatus.CANCELLED,
                        Appointment.cancelled_at: datetime.now(),
                        Appointment.cancellation_reason: "Recurring series cancelled",
                    },
                    synchronize_session="fetch",
                )
                db.query(AppointmentService).filter(AppointmentService.appointment_id.in_(ids)).update(
                    {AppointmentService.status: "cancelled"},
                    synchronize_session="fetch",
                )
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Series {series_id}: cancelled {len(ids)} occurrence(s)")
        return len(ids)
