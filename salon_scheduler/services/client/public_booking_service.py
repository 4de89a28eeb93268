"""Self-service bookings made by clients from the public booking page"""
from datetime import datetime
from typing import Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from salon_scheduler.config.settings import settings
from salon_scheduler.core.exceptions import NotFoundError, RateLimitedError, ValidationError
from salon_scheduler.models.appointment import Appointment, AppointmentStatus
from salon_scheduler.models.business import Business, Location
from salon_scheduler.models.client import Client
from salon_scheduler.models.service import Service
from salon_scheduler.models.staff import Staff
from salon_scheduler.services.appointment.booking_service import BookingService
from salon_scheduler.services.availability.availability_service import AvailabilityService
from salon_scheduler.services.notification.notification_dispatcher import NotificationDispatcher
from salon_scheduler.services.rate_limit.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class PublicBookingService:

    @staticmethod
    def find_or_create_client(
            db: Session,
            business_id: UUID,
            first_name: str,
            last_name: str,
            email: str,
            phone: str,
    ) -> Client:
        """Clients are matched on lower-cased email within the business"""
        email = email.strip().lower()
        client = db.query(Client).filter(
            Client.business_id == business_id,
            Client.email == email,
        ).first()
        if client:
            return client

        client = Client(
            business_id=business_id,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email,
            phone=phone.strip(),
            source="online_booking",
        )
        db.add(client)
        db.flush()
        logger.info(f"Created client {client.id} from online booking")
        return client

    @staticmethod
    async def create_public_booking(
            db: Session,
            rate_limiter: RateLimiter,
            business_id: UUID,
            service_id: UUID,
            staff_id: UUID,
            start_time: datetime,
            client_first_name: str,
            client_last_name: str,
            client_email: str,
            client_phone: str,
            notes: Optional[str] = None,
            dispatcher: Optional[NotificationDispatcher] = None,
            now: Optional[datetime] = None,
    ) -> Appointment:
        """
        Book for a client identified only by contact details.

        Raises:
            RateLimitedError: too many attempts for this email in the window
            NotFoundError: unknown business, location, service or staff
            ValidationError: the start is in the past or not an offered slot
            ConflictError: the slot was taken
        """
        email = client_email.strip().lower()
        attempt = await rate_limiter.hit(
            f"booking:{email}",
            settings.PUBLIC_BOOKING_MAX_ATTEMPTS,
            settings.PUBLIC_BOOKING_WINDOW_SECONDS,
        )
        if attempt.limited:
            logger.warning(f"Public booking rate limit hit for {email}")
            raise RateLimitedError(attempt.retry_after_seconds)

        business = db.get(Business, business_id)
        if not business:
            raise NotFoundError.for_resource("Business")

        location = (
            db.query(Location)
            .filter(Location.business_id == business.id, Location.is_active.is_(True))
            .order_by(Location.is_primary.desc())
            .first()
        )
        if not location:
            raise NotFoundError("No active location found")

        service = db.query(Service).filter(
            Service.id == service_id,
            Service.business_id == business.id,
        ).first()
        if not service:
            raise NotFoundError.for_resource("Service")

        staff = (
            db.query(Staff)
            .join(Location, Staff.location_id == Location.id)
            .filter(Staff.id == staff_id, Location.business_id == business.id)
            .first()
        )
        if not staff:
            raise NotFoundError.for_resource("Staff")

        now = now or datetime.now()
        if start_time < now:
            raise ValidationError("Cannot book appointments in the past")
        if not AvailabilityService.is_slot_available(db, staff.id, service.id, start_time, location.id, now=now):
            raise ValidationError(f"Time slot {start_time.isoformat()} is not available for {service.name}")

        client = PublicBookingService.find_or_create_client(
            db, business.id, client_first_name, client_last_name, email, client_phone
        )

        return BookingService.create_booking(
            db,
            service_id=service.id,
            staff_id=staff.id,
            start_time=start_time,
            client_id=client.id,
            notes=notes,
            business_id=business.id,
            location_id=location.id,
            source="online",
            status=AppointmentStatus.CONFIRMED,
            dispatcher=dispatcher,
        )
