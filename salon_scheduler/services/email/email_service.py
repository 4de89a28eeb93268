# ===== salon_scheduler/services/email/email_service.py =====
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional, Tuple
import logging

from salon_scheduler.config.settings import settings
from salon_scheduler.schemas.task_payloads import BookingNotificationPayload

logger = logging.getLogger(__name__)

_SUBJECTS = {
    "confirmation": "Booking Confirmed - {business}",
    "cancellation": "Booking Cancelled - {business}",
    "rescheduled": "Booking Rescheduled - {business}",
}


def format_appointment_time(moment) -> str:
    """'Monday, January 5, 2026 at 2:30 PM'"""
    return f"{moment.strftime('%A, %B')} {moment.day}, {moment.year} at {moment.strftime('%I:%M %p').lstrip('0')}"


class EmailService:
    """Sends booking notification emails via SMTP"""

    @staticmethod
    def _get_smtp_connection():
        try:
            if settings.EMAIL_USE_TLS:
                server = smtplib.SMTP(settings.EMAIL_HOST, settings.EMAIL_PORT)
                server.starttls()
            else:
                server = smtplib.SMTP_SSL(settings.EMAIL_HOST, settings.EMAIL_PORT)

            if settings.EMAIL_USERNAME and settings.EMAIL_PASSWORD:
                server.login(settings.EMAIL_USERNAME, settings.EMAIL_PASSWORD)

            return server
        except Exception as e:
            logger.error(f"Failed to connect to SMTP server: {e}")
            raise

    @staticmethod
    def send_email(
            to_email: str,
            subject: str,
            html_content: str,
            plain_text: Optional[str] = None,
    ) -> bool:
        """
        Send an email using SMTP

        Returns:
            bool: True if sent, False when email delivery is disabled
        """
        if not settings.EMAIL_ENABLED:
            logger.info(f"Email disabled, skipping '{subject}' to {to_email}")
            return False

        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM_ADDRESS}>"
        msg['To'] = to_email

        if plain_text:
            msg.attach(MIMEText(plain_text, 'plain'))
        msg.attach(MIMEText(html_content, 'html'))

        try:
            with EmailService._get_smtp_connection() as server:
                server.sendmail(settings.EMAIL_FROM_ADDRESS, [to_email], msg.as_string())
        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            raise

        logger.info(f"Email sent successfully to {to_email}")
        return True

    @staticmethod
    def render_booking_email(payload: BookingNotificationPayload) -> Tuple[str, str, str]:
        """Subject, HTML body and plain-text body for a booking notification"""
        subject = _SUBJECTS[payload.kind].format(business=payload.business_name)
        when = format_appointment_time(payload.start_time)

        if payload.kind == "confirmation":
            headline = "Your appointment is confirmed"
        elif payload.kind == "cancellation":
            headline = "Your appointment has been cancelled"
        else:
            headline = "Your appointment has been moved"

        lines = [
            f"Hi {payload.client_name},",
            "",
            f"{headline}.",
            "",
            f"Service: {payload.service_name}",
            f"With: {payload.staff_name}",
            f"When: {when}",
        ]
        if payload.previous_start_time is not None:
            lines.append(f"Previously: {format_appointment_time(payload.previous_start_time)}")
        if payload.cancellation_reason:
            lines.append(f"Reason: {payload.cancellation_reason}")
        lines += ["", f"Booking reference: {payload.booking_reference}", "", payload.business_name]
        plain_text = "\n".join(lines)

        rows = "".join(
            f'<p style="margin: 4px 0;">{line}</p>' for line in lines[4:-2] if line
        )
        html_content = f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="UTF-8"></head>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="margin-top: 0;">{headline}</h2>
            <p>Hi {payload.client_name},</p>
            {rows}
            <p style="font-size: 18px; font-weight: bold;">{payload.booking_reference}</p>
            <p style="color: #888;">{payload.business_name}</p>
        </body>
        </html>
        """
        return subject, html_content, plain_text

    @staticmethod
    def send_booking_notification(payload: BookingNotificationPayload) -> bool:
        if not payload.client_email:
            logger.info(f"No email on file for booking {payload.booking_reference}, skipping {payload.kind}")
            return False

        subject, html_content, plain_text = EmailService.render_booking_email(payload)
        return EmailService.send_email(
            to_email=payload.client_email,
            subject=subject,
            html_content=html_content,
            plain_text=plain_text,
        )
