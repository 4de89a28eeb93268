"""Appointment status machine"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, FrozenSet, Optional, Union
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from salon_scheduler.core.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from salon_scheduler.models.appointment import Appointment, AppointmentStatus
from salon_scheduler.services.notification.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)

S = AppointmentStatus

# Directed edges; a status with no outgoing edges is terminal
ALLOWED_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    S.PENDING: frozenset({S.CONFIRMED, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.CHECKED_IN, S.CANCELLED, S.NO_SHOW}),
    S.CHECKED_IN: frozenset({S.IN_PROGRESS, S.CANCELLED}),
    S.IN_PROGRESS: frozenset({S.COMPLETED, S.CANCELLED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
    S.NO_SHOW: frozenset(),
}

# Statuses DELETE refuses to cancel
NOT_CANCELLABLE = (S.COMPLETED, S.CANCELLED)

# Timestamp column stamped on entering a status; in_progress has none
_STAMPED_FIELDS = {
    S.CONFIRMED: "confirmation_sent_at",
    S.CHECKED_IN: "checked_in_at",
    S.COMPLETED: "completed_at",
    S.CANCELLED: "cancelled_at",
    S.NO_SHOW: "no_show_at",
}


def parse_status(value: Union[str, AppointmentStatus]) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid status: {value}")


def is_terminal(status: AppointmentStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]


def validate_transition(current: AppointmentStatus, new: AppointmentStatus) -> None:
    """Raise ``InvalidTransitionError`` unless ``current -> new`` is an edge of the table"""
    if new not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, new.value)


def apply_transition(
        appointment: Appointment,
        new_status: AppointmentStatus,
        now: Optional[datetime] = None,
        cancellation_reason: Optional[str] = None,
        cancelled_by: Optional[str] = None,
) -> None:
    """Validate and apply the change in memory: status, timestamp and side fields"""
    validate_transition(appointment.status, new_status)
    now = now or datetime.now()

    appointment.status = new_status
    stamped_field = _STAMPED_FIELDS.get(new_status)
    if stamped_field:
        setattr(appointment, stamped_field, now)

    if new_status == S.CANCELLED:
        if cancellation_reason is not None:
            appointment.cancellation_reason = cancellation_reason
        if cancelled_by is not None:
            appointment.cancelled_by = cancelled_by
        for line in appointment.services:
            line.status = "cancelled"

    elif new_status == S.COMPLETED:
        credit_clients(appointment)


def credit_clients(appointment: Appointment) -> None:
    """Add the amount paid to ``total_spent``; group participants each get their per-person share"""
    total = Decimal(str(appointment.total_amount or 0))
    participants = [p.client for p in appointment.group_participants] if appointment.is_group_booking else []

    if participants:
        share = (total / len(participants)).quantize(Decimal("0.01"))
        credits = [(client, share) for client in participants]
    elif appointment.client is not None:
        credits = [(appointment.client, total)]
    else:
        credits = []

    for client, amount in credits:
        client.total_spent = Decimal(str(client.total_spent or 0)) + amount


class StatusService:
    """Applies status changes to stored appointments"""

    @staticmethod
    def get_for_update(db: Session, appointment_id: UUID, business_id: Optional[UUID] = None) -> Appointment:
        query = db.query(Appointment).filter(Appointment.id == appointment_id)
        if business_id is not None:
            query = query.filter(Appointment.business_id == business_id)
        appointment = query.with_for_update().first()
        if not appointment:
            raise NotFoundError.for_resource("Appointment")
        return appointment

    @staticmethod
    def transition(
            db: Session,
            appointment: Appointment,
            new_status: AppointmentStatus,
            cancellation_reason: Optional[str] = None,
            cancelled_by: Optional[str] = None,
            dispatcher: Optional[NotificationDispatcher] = None,
    ) -> Appointment:
        previous = appointment.status
        try:
            apply_transition(appointment, new_status, cancellation_reason=cancellation_reason, cancelled_by=cancelled_by)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Appointment {appointment.booking_reference}: {previous.value} -> {new_status.value}")
        if new_status == S.CANCELLED:
            (dispatcher or NotificationDispatcher()).booking_cancelled(db, appointment)
        return appointment

    @staticmethod
    def update_appointment(
            db: Session,
            appointment_id: UUID,
            business_id: Optional[UUID] = None,
            status: Optional[Union[str, AppointmentStatus]] = None,
            notes: Optional[str] = None,
            internal_notes: Optional[str] = None,
            cancellation_reason: Optional[str] = None,
            cancelled_by: Optional[str] = None,
            dispatcher: Optional[NotificationDispatcher] = None,
    ) -> Appointment:
        """
        Partial update. A status equal to the current one is not a transition
        and is ignored; any other status must be an edge of the table.
        Cancellation fields are only written by a transition to ``cancelled``.
        """
        new_status = parse_status(status) if status is not None else None
        appointment = StatusService.get_for_update(db, appointment_id, business_id)

        if notes is not None:
            appointment.notes = notes
        if internal_notes is not None:
            appointment.internal_notes = internal_notes

        if new_status is not None and new_status != appointment.status:
            return StatusService.transition(
                db, appointment, new_status,
                cancellation_reason=cancellation_reason,
                cancelled_by=cancelled_by,
                dispatcher=dispatcher,
            )

        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        return appointment

    @staticmethod
    def cancel_appointment(
            db: Session,
            appointment_id: UUID,
            business_id: Optional[UUID] = None,
            reason: Optional[str] = None,
            cancelled_by: Optional[str] = None,
            dispatcher: Optional[NotificationDispatcher] = None,
    ) -> Appointment:
        """Soft cancel; the row is kept with status ``cancelled``"""
        appointment = StatusService.get_for_update(db, appointment_id, business_id)
        if appointment.status in NOT_CANCELLABLE:
            status = appointment.status.value
            db.rollback()
            raise ValidationError(f"Cannot cancel appointment with status {status}")

        return StatusService.transition(
            db, appointment, S.CANCELLED,
            cancellation_reason=reason,
            cancelled_by=cancelled_by,
            dispatcher=dispatcher,
        )
