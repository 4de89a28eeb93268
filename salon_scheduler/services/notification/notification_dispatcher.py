"""
Hands booking notifications to the background worker.

Dispatch happens only after the booking transaction has committed, and a
failure to build or enqueue a notification is logged and swallowed: the
booking itself has already succeeded.
"""
from datetime import datetime
from typing import Any, Callable, Dict, Optional
import logging

from sqlalchemy.orm import Session

from salon_scheduler.models.appointment import Appointment
from salon_scheduler.models.business import Business
from salon_scheduler.schemas.task_payloads import BookingNotificationPayload
from salon_scheduler.tasks.notification_tasks import send_booking_notification

logger = logging.getLogger(__name__)

Enqueue = Callable[[Dict[str, Any]], Any]


def _join_unique(values) -> str:
    return ", ".join(dict.fromkeys(v for v in values if v))


class NotificationDispatcher:
    """Send-and-forget boundary between booking services and the notification queue"""

    def __init__(self, enqueue: Optional[Enqueue] = None):
        self._enqueue = enqueue or send_booking_notification.delay

    def booking_confirmed(self, db: Session, appointment: Appointment) -> bool:
        return self._dispatch(db, appointment, "confirmation")

    def booking_cancelled(self, db: Session, appointment: Appointment) -> bool:
        if appointment.client is None or not appointment.client.has_contact_info:
            return False
        return self._dispatch(
            db, appointment, "cancellation",
            cancellation_reason=appointment.cancellation_reason,
        )

    def booking_rescheduled(self, db: Session, appointment: Appointment, previous_start: datetime) -> bool:
        return self._dispatch(db, appointment, "rescheduled", previous_start_time=previous_start)

    def _dispatch(self, db: Session, appointment: Appointment, kind: str, **extra) -> bool:
        try:
            payload = self.build_payload(db, appointment, kind, **extra)
            if payload is None:
                return False
            self._enqueue(payload.model_dump(mode="json"))
            logger.info(f"📨 Queued {kind} for booking {appointment.booking_reference}")
            return True
        except Exception as e:
            logger.error(f"Failed to queue {kind} for booking {appointment.booking_reference}: {e}")
            return False

    @staticmethod
    def build_payload(
            db: Session,
            appointment: Appointment,
            kind: str,
            **extra,
    ) -> Optional[BookingNotificationPayload]:
        """None for walk-ins, who have no client record to notify"""
        client = appointment.client
        if client is None:
            return None

        business = db.get(Business, appointment.business_id)
        return BookingNotificationPayload(
            kind=kind,
            appointment_id=str(appointment.id),
            booking_reference=appointment.booking_reference,
            client_name=client.full_name,
            client_email=client.email,
            client_phone=client.phone,
            service_name=_join_unique(line.name for line in appointment.services),
            staff_name=_join_unique(line.staff.full_name for line in appointment.services if line.staff),
            business_name=business.name if business else "",
            start_time=appointment.start_time,
            **extra,
        )
