# ===== salon_scheduler/tasks/notification_tasks.py =====
from typing import Any, Dict
import logging

from salon_scheduler.config.celery_config import celery_app
from salon_scheduler.schemas.task_payloads import BookingNotificationPayload
from salon_scheduler.services.email.email_service import EmailService

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def send_booking_notification(self, payload: Dict[str, Any]):
    """
    Deliver a booking confirmation, cancellation or reschedule notice

    Args:
        payload: ``BookingNotificationPayload`` in JSON mode
    """
    notification = BookingNotificationPayload.model_validate(payload)
    try:
        logger.info(f"Sending {notification.kind} for booking {notification.booking_reference}")

        sent = EmailService.send_booking_notification(notification)

        return {
            "status": "success" if sent else "skipped",
            "booking_reference": notification.booking_reference,
        }

    except Exception as exc:
        logger.error(f"Failed to send {notification.kind} for {notification.booking_reference}: {exc}")

        # Retry with exponential backoff: 1min, 2min, 4min
        raise self.retry(
            exc=exc,
            countdown=60 * (2 ** self.request.retries)
        )
