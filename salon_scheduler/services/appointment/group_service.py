"""Group bookings: one appointment, one staff slot, several clients"""
from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from salon_scheduler.core.exceptions import GroupFullError, NotFoundError, ValidationError
from salon_scheduler.models.appointment import Appointment, AppointmentStatus, GroupParticipant
from salon_scheduler.models.client import Client
from salon_scheduler.models.staff import Staff
from salon_scheduler.services.appointment.booking_service import BookingService
from salon_scheduler.services.appointment.status_service import is_terminal
from salon_scheduler.services.notification.notification_dispatcher import NotificationDispatcher
from salon_scheduler.services.scheduling.pricing import to_money

logger = logging.getLogger(__name__)


def recompute_group_totals(appointment: Appointment, participant_count: int) -> None:
    """Totals are the per-person line amounts times the participant count"""
    per_person_price = sum(to_money(line.price) for line in appointment.services)
    per_person_tax = sum(to_money(line.tax_amount) for line in appointment.services)

    appointment.subtotal = to_money(per_person_price * participant_count)
    appointment.tax_amount = to_money(per_person_tax * participant_count)
    appointment.total_amount = appointment.subtotal + appointment.tax_amount - to_money(appointment.discount_amount)


class GroupBookingService:

    @staticmethod
    def create_group_booking(
            db: Session,
            business_id: UUID,
            service_id: UUID,
            staff_id: UUID,
            start_time: datetime,
            max_participants: int,
            client_ids: Sequence[UUID],
            notes: Optional[str] = None,
            location_id: Optional[UUID] = None,
            dispatcher: Optional[NotificationDispatcher] = None,
    ) -> Appointment:
        """The first client is the appointment's primary client"""
        if max_participants < 1:
            raise ValidationError("maxParticipants must be at least 1")
        if not client_ids:
            raise ValidationError("At least one participant required")
        if len(set(client_ids)) != len(client_ids):
            raise ValidationError("Duplicate participant")
        if len(client_ids) > max_participants:
            raise GroupFullError("Too many participants")

        line = BookingService.plan_line(db, service_id, staff_id, start_time)
        if location_id is None:
            staff = db.get(Staff, staff_id)
            if not staff:
                raise NotFoundError.for_resource("Staff")
            location_id = staff.location_id

        appointment = BookingService.commit_booking(
            db,
            business_id=business_id,
            location_id=location_id,
            lines=[line],
            client_id=client_ids[0],
            notes=notes,
            source="pos",
            status=AppointmentStatus.CONFIRMED,
            participant_ids=list(client_ids),
            is_group_booking=True,
            max_participants=max_participants,
        )

        logger.info(f"👥 Group booking {appointment.booking_reference}: {len(client_ids)}/{max_participants}")
        (dispatcher or NotificationDispatcher()).booking_confirmed(db, appointment)
        return appointment

    @staticmethod
    def _get_group(db: Session, appointment_id: UUID, business_id: Optional[UUID]) -> Appointment:
        query = db.query(Appointment).filter(Appointment.id == appointment_id)
        if business_id is not None:
            query = query.filter(Appointment.business_id == business_id)
        appointment = query.with_for_update().first()
        if not appointment:
            raise NotFoundError.for_resource("Appointment")
        if not appointment.is_group_booking:
            raise ValidationError("Appointment is not a group booking")
        return appointment

    @staticmethod
    def add_participant(
            db: Session,
            appointment_id: UUID,
            client_id: UUID,
            business_id: Optional[UUID] = None,
    ) -> Appointment:
        """Capacity is re-checked under the appointment row lock"""
        try:
            appointment = GroupBookingService._get_group(db, appointment_id, business_id)
            if is_terminal(appointment.status):
                raise ValidationError(
                    f"Cannot add participants to appointment with status {appointment.status.value}"
                )

            current = [p.client_id for p in appointment.group_participants]
            if len(current) >= (appointment.max_participants or 0):
                raise GroupFullError()
            if client_id in current:
                raise ValidationError("Client is already a participant")
            if not db.get(Client, client_id):
                raise NotFoundError.for_resource("Client")

            appointment.group_participants.append(GroupParticipant(client_id=client_id))
            recompute_group_totals(appointment, len(current) + 1)
            BookingService.record_visits(db, [client_id], appointment.start_time)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"👥 Added participant {client_id} to {appointment.booking_reference}")
        return appointment

    @staticmethod
    def remove_participant(
            db: Session,
            appointment_id: UUID,
            client_id: UUID,
            business_id: Optional[UUID] = None,
    ) -> Appointment:
        try:
            appointment = GroupBookingService._get_group(db, appointment_id, business_id)
            participant = next(
                (p for p in appointment.group_participants if p.client_id == client_id), None
            )
            if participant is None:
                raise NotFoundError.for_resource("Participant")

            appointment.group_participants.remove(participant)
            remaining = [p.client_id for p in appointment.group_participants]
            if appointment.client_id == client_id:
                appointment.client_id = remaining[0] if remaining else None
            recompute_group_totals(appointment, len(remaining))
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"👥 Removed participant {client_id} from {appointment.booking_reference}")
        return appointment
