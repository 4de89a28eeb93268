# ============================================================================
# salon_scheduler/services/appointment/booking_service.py
# ============================================================================
"""Committing bookings without ever double-booking a staff member"""
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, List, NamedTuple, Optional, Sequence
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from salon_scheduler.config.settings import settings
from salon_scheduler.core.exceptions import ConflictError, NotFoundError, ValidationError
from salon_scheduler.models.appointment import (
    Appointment,
    AppointmentService,
    AppointmentStatus,
    GroupParticipant,
)
from salon_scheduler.models.client import Client
from salon_scheduler.models.service import Service
from salon_scheduler.models.staff import Staff
from salon_scheduler.services.availability.availability_service import AvailabilityService
from salon_scheduler.services.notification.notification_dispatcher import NotificationDispatcher
from salon_scheduler.services.scheduling.booking_queries import find_conflict
from salon_scheduler.services.scheduling.intervals import TimeRange, first_overlap
from salon_scheduler.services.scheduling.pricing import (
    effective_duration,
    effective_price,
    get_staff_offering,
    tax_for,
    to_money,
)

logger = logging.getLogger(__name__)

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

# Appointments in these states keep their times
RESCHEDULE_BLOCKED = (
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
)


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_booking_reference(prefix: Optional[str] = None) -> str:
    """
    ``SAL-<base36 ms timestamp>-<4 random base36 chars>``

    Built locally from the clock and a random suffix, never from a row count,
    so concurrent inserts cannot compute the same value.
    """
    prefix = prefix or settings.BOOKING_REFERENCE_PREFIX
    timestamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"{prefix}-{timestamp}-{suffix}".upper()


class BookingLine(NamedTuple):
    """One requested service/staff/start triple"""
    service_id: UUID
    staff_id: UUID
    start_time: datetime


@dataclass
class PlannedLine:
    """A priced line ready to be written"""
    service: Service
    staff_id: UUID
    start: datetime
    duration: int
    price: Decimal
    tax: Decimal

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration)

    @property
    def window(self) -> TimeRange:
        return TimeRange(self.start, self.end)


class BookingService:
    """Booking transaction manager"""

    @staticmethod
    def plan_line(
            db: Session,
            service_id: UUID,
            staff_id: UUID,
            start_time: datetime,
            require_offering: bool = False,
    ) -> PlannedLine:
        """Resolve duration, price and tax for one line from current data"""
        service = db.get(Service, service_id)
        if not service:
            raise NotFoundError(f"Service {service_id} not found")

        offering = get_staff_offering(db, staff_id, service_id)
        if require_offering and offering is None:
            raise ValidationError(f"Staff {staff_id} does not provide service {service.name}")

        price = effective_price(service, offering)
        return PlannedLine(
            service=service,
            staff_id=staff_id,
            start=start_time,
            duration=effective_duration(service, offering),
            price=price,
            tax=tax_for(service, price),
        )

    @staticmethod
    def create_booking(
            db: Session,
            service_id: UUID,
            staff_id: UUID,
            start_time: datetime,
            client_id: Optional[UUID] = None,
            notes: Optional[str] = None,
            business_id: Optional[UUID] = None,
            location_id: Optional[UUID] = None,
            source: str = "online",
            status: AppointmentStatus = AppointmentStatus.PENDING,
            dispatcher: Optional[NotificationDispatcher] = None,
            notify: bool = True,
            record_visit: bool = True,
            **appointment_fields,
    ) -> Appointment:
        """
        Book one service with one staff member.

        Args:
            business_id: Defaults to the service's business
            location_id: Defaults to the staff member's location
            notify: Queue a confirmation after the commit
            record_visit: Count the booking in the client's visit stats
            appointment_fields: Extra Appointment columns (series and group fields)

        Raises:
            ConflictError: The staff member already has an overlapping booking
        """
        line = BookingService.plan_line(db, service_id, staff_id, start_time)

        if location_id is None:
            staff = db.get(Staff, staff_id)
            if not staff:
                raise NotFoundError.for_resource("Staff")
            location_id = staff.location_id

        appointment = BookingService.commit_booking(
            db,
            business_id=business_id or line.service.business_id,
            location_id=location_id,
            lines=[line],
            client_id=client_id,
            notes=notes,
            source=source,
            status=status,
            record_visit=record_visit,
            **appointment_fields,
        )

        if notify:
            (dispatcher or NotificationDispatcher()).booking_confirmed(db, appointment)
        return appointment

    @staticmethod
    def create_multi_service_booking(
            db: Session,
            business_id: UUID,
            location_id: UUID,
            lines: Sequence[BookingLine],
            client_id: Optional[UUID] = None,
            notes: Optional[str] = None,
            source: str = "online",
            dispatcher: Optional[NotificationDispatcher] = None,
            now: Optional[datetime] = None,
    ) -> Appointment:
        """
        Book several services in one appointment.

        Every line is checked against the availability calculator first; the
        commit then re-checks all of them under the staff lock.
        """
        if not lines:
            raise ValidationError("At least one service is required")

        planned = []
        for requested in lines:
            line = BookingService.plan_line(
                db, requested.service_id, requested.staff_id, requested.start_time,
                require_offering=True,
            )
            available = AvailabilityService.is_slot_available(
                db, requested.staff_id, requested.service_id, requested.start_time, location_id, now=now,
            )
            if not available:
                raise ValidationError(
                    f"Time slot {requested.start_time.isoformat()} is not available for {line.service.name}"
                )
            planned.append(line)

        appointment = BookingService.commit_booking(
            db,
            business_id=business_id,
            location_id=location_id,
            lines=planned,
            client_id=client_id,
            notes=notes,
            source=source,
        )

        (dispatcher or NotificationDispatcher()).booking_confirmed(db, appointment)
        return appointment

    @staticmethod
    def commit_booking(
            db: Session,
            business_id: UUID,
            location_id: UUID,
            lines: List[PlannedLine],
            client_id: Optional[UUID] = None,
            notes: Optional[str] = None,
            source: str = "online",
            status: AppointmentStatus = AppointmentStatus.PENDING,
            participant_ids: Sequence[UUID] = (),
            record_visit: bool = True,
            **appointment_fields,
    ) -> Appointment:
        """
        Lock, re-check and insert in one transaction.

        Line totals are multiplied by the participant count for group bookings.
        Rolls back and raises ``ConflictError`` when any line overlaps a
        committed booking of the same staff member.
        """
        quantity = max(len(participant_ids), 1)
        visit_client_ids = list(participant_ids) or ([client_id] if client_id else [])

        try:
            BookingService._lock_staff(db, [line.staff_id for line in lines])
            BookingService._assert_no_conflicts(db, lines)

            start = min(line.start for line in lines)
            end = max(line.end for line in lines)
            subtotal = to_money(sum(line.price for line in lines) * quantity)
            tax_amount = to_money(sum(line.tax for line in lines) * quantity)

            appointment = Appointment(
                business_id=business_id,
                location_id=location_id,
                client_id=client_id,
                booking_reference=generate_booking_reference(),
                status=status,
                source=source,
                start_time=start,
                end_time=end,
                total_duration=int((end - start).total_seconds() // 60),
                subtotal=subtotal,
                tax_amount=tax_amount,
                discount_amount=Decimal("0.00"),
                total_amount=subtotal + tax_amount,
                notes=notes,
                **appointment_fields,
            )
            for index, line in enumerate(lines):
                appointment.services.append(AppointmentService(
                    service_id=line.service.id,
                    staff_id=line.staff_id,
                    name=line.service.name,
                    duration_minutes=line.duration,
                    price=line.price,
                    tax_amount=line.tax,
                    final_price=line.price + line.tax,
                    start_time=line.start,
                    end_time=line.end,
                    status="scheduled",
                    sort_order=index,
                ))
            for participant_id in participant_ids:
                appointment.group_participants.append(GroupParticipant(client_id=participant_id))

            db.add(appointment)
            if record_visit:
                BookingService.record_visits(db, visit_client_ids, start)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"✅ Booked {appointment.booking_reference}: {len(lines)} service(s) "
            f"at {start.isoformat()} for staff {', '.join(str(line.staff_id) for line in lines)}"
        )
        return appointment

    @staticmethod
    def reschedule(
            db: Session,
            appointment_id: UUID,
            new_start: datetime,
            business_id: Optional[UUID] = None,
            new_staff_id: Optional[UUID] = None,
            dispatcher: Optional[NotificationDispatcher] = None,
    ) -> Appointment:
        """
        Move an appointment to ``new_start``, shifting every line by the same
        amount. ``new_staff_id`` reassigns the first line.
        """
        query = db.query(Appointment).filter(Appointment.id == appointment_id)
        if business_id is not None:
            query = query.filter(Appointment.business_id == business_id)
        appointment = query.first()
        if not appointment:
            raise NotFoundError.for_resource("Appointment")

        if appointment.status in RESCHEDULE_BLOCKED:
            raise ValidationError(f"Cannot reschedule appointment with status {appointment.status.value}")

        previous_start = appointment.start_time
        delta = new_start - previous_start
        moves = []
        for index, line in enumerate(appointment.services):
            staff_id = new_staff_id if (index == 0 and new_staff_id) else line.staff_id
            moves.append((line, staff_id, line.start_time + delta, line.end_time + delta))

        try:
            BookingService._lock_staff(db, [staff_id for _, staff_id, _, _ in moves])
            planned: List[tuple] = []
            for line, staff_id, start, end in moves:
                window = TimeRange(start, end)
                if find_conflict(db, staff_id, window, exclude_appointment_id=appointment.id) or first_overlap(
                        window, [w for sid, w in planned if sid == staff_id]):
                    raise ConflictError(
                        f"Time slot {start.isoformat()} is no longer available for {line.name}"
                    )
                planned.append((staff_id, window))

            for line, staff_id, start, end in moves:
                line.staff_id = staff_id
                line.start_time = start
                line.end_time = end
            appointment.start_time = min(start for _, _, start, _ in moves)
            appointment.end_time = max(end for _, _, _, end in moves)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"🔁 Rescheduled {appointment.booking_reference}: {previous_start.isoformat()} -> {new_start.isoformat()}"
        )
        (dispatcher or NotificationDispatcher()).booking_rescheduled(db, appointment, previous_start)
        return appointment

    @staticmethod
    def record_visits(db: Session, client_ids: Iterable[UUID], visit_at: datetime) -> None:
        """Bump visit counters; part of the caller's transaction"""
        client_ids = list(dict.fromkeys(client_ids))
        if not client_ids:
            return
        updated = db.query(Client).filter(Client.id.in_(client_ids)).update(
            {
                Client.total_visits: Client.total_visits + 1,
                Client.last_visit_at: visit_at,
            },
            synchronize_session="fetch",
        )
        if updated != len(client_ids):
            raise NotFoundError.for_resource("Client")

    @staticmethod
    def _lock_staff(db: Session, staff_ids: Iterable[UUID]) -> None:
        """
        Row-lock every staff member touched by the write, in id order.

        Concurrent bookings for the same staff member queue here, so the
        conflict query that follows sees every earlier commit. On SQLite the
        transaction already holds the database write lock (BEGIN IMMEDIATE).
        """
        unique_ids = sorted(set(staff_ids), key=str)
        rows = (
            db.query(Staff.id)
            .filter(Staff.id.in_(unique_ids))
            .order_by(Staff.id)
            .with_for_update()
            .all()
        )
        if len(rows) != len(unique_ids):
            raise NotFoundError.for_resource("Staff")

    @staticmethod
    def _assert_no_conflicts(db: Session, lines: List[PlannedLine]) -> None:
        claimed: List[tuple] = []
        for line in lines:
            window = line.window
            clash = find_conflict(db, line.staff_id, window)
            if clash is None:
                clash = first_overlap(window, [w for staff_id, w in claimed if staff_id == line.staff_id])
            if clash is not None:
                logger.warning(
                    f"⚠️ Conflict for staff {line.staff_id} at {line.start.isoformat()} ({line.service.name})"
                )
                raise ConflictError(
                    f"Time slot {line.start.isoformat()} is no longer available for {line.service.name}"
                )
            claimed.append((line.staff_id, window))
