"""
Tests for committing bookings: references, conflicts, pricing and rescheduling.
"""
import re
import threading
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import BEFORE_DAY, at
from salon_scheduler.core.exceptions import ConflictError, NotFoundError, ValidationError
from salon_scheduler.models import Appointment, AppointmentStatus
from salon_scheduler.services.appointment.booking_service import (
    BookingLine,
    BookingService,
    generate_booking_reference,
)
from salon_scheduler.services.appointment.status_service import StatusService
from salon_scheduler.services.notification.notification_dispatcher import NotificationDispatcher

REFERENCE = re.compile(r"^SAL-[0-9A-Z]+-[0-9A-Z]{4}$")


def test_booking_reference_format():
    references = {generate_booking_reference() for _ in range(200)}

    assert len(references) == 200
    assert all(REFERENCE.match(ref) for ref in references)


def test_booking_reference_custom_prefix():
    assert generate_booking_reference("spa").startswith("SPA-")


def test_create_booking(db, salon):
    recorded = []
    appointment = BookingService.create_booking(
        db,
        salon.service.id,
        salon.staff.id,
        at(10),
        client_id=salon.client.id,
        notes="First visit",
        dispatcher=NotificationDispatcher(enqueue=recorded.append),
    )

    assert REFERENCE.match(appointment.booking_reference)
    assert appointment.status == AppointmentStatus.PENDING
    assert appointment.business_id == salon.business.id
    assert appointment.location_id == salon.location.id
    assert appointment.start_time == at(10)
    assert appointment.end_time == at(10, 45)
    assert appointment.total_duration == 45
    assert appointment.subtotal == Decimal("50.00")
    assert appointment.total_amount == Decimal("50.00")

    [line] = appointment.services
    assert line.staff_id == salon.staff.id
    assert line.name == "Haircut"
    assert line.status == "scheduled"

    [payload] = recorded
    assert payload["kind"] == "confirmation"
    assert payload["booking_reference"] == appointment.booking_reference
    assert payload["client_email"] == "jane@example.com"
    assert payload["staff_name"] == "Alice Moreau"


def test_overlapping_booking_is_rejected(db, salon, dispatcher):
    BookingService.create_booking(db, salon.service.id, salon.staff.id, at(10), dispatcher=dispatcher)

    with pytest.raises(ConflictError) as exc_info:
        BookingService.create_booking(db, salon.service.id, salon.staff.id, at(10, 30), dispatcher=dispatcher)

    assert "no longer available" in exc_info.value.message
    assert db.query(Appointment).count() == 1


def test_back_to_back_bookings_are_allowed(db, salon, dispatcher):
    BookingService.create_booking(db, salon.service.id, salon.staff.id, at(10), dispatcher=dispatcher)
    BookingService.create_booking(db, salon.service.id, salon.staff.id, at(10, 45), dispatcher=dispatcher)
    BookingService.create_booking(db, salon.service.id, salon.staff.id, at(9, 15), dispatcher=dispatcher)

    assert db.query(Appointment).count() == 3


def test_cancelled_booking_frees_the_slot(db, salon, dispatcher):
    first = BookingService.create_booking(db, salon.service.id, salon.staff.id, at(10), dispatcher=dispatcher)
    StatusService.cancel_appointment(db, first.id, dispatcher=dispatcher)

    second = BookingService.create_booking(db, salon.service.id, salon.staff.id, at(10), dispatcher=dispatcher)

    assert second.id != first.id


def test_other_staff_is_not_blocked(db, factory, salon, dispatcher):
    bob = factory.staff(salon.location, first_name="Bob", last_name="Keller")
    BookingService.create_booking(db, salon.service.id, salon.staff.id, at(10), dispatcher=dispatcher)

    appointment = BookingService.create_booking(db, salon.service.id, bob.id, at(10), dispatcher=dispatcher)

    assert appointment.services[0].staff_id == bob.id


def test_concurrent_requests_book_the_slot_once(db, session_factory, salon):
    """Several sessions race for the same staff member and start time"""
    workers = 5
    service_id, staff_id = salon.service.id, salon.staff.id
    db.close()

    barrier = threading.Barrier(workers)
    outcomes = []
    lock = threading.Lock()

    def book():
        session = session_factory()
        try:
            barrier.wait()
            BookingService.create_booking(
                session, service_id, staff_id, at(11),
                dispatcher=NotificationDispatcher(enqueue=lambda payload: None),
            )
            outcome = "booked"
        except ConflictError:
            outcome = "conflict"
        finally:
            session.close()
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=book) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert sorted(outcomes) == ["booked"] + ["conflict"] * (workers - 1)

    check = session_factory()
    try:
        assert check.query(Appointment).count() == 1
    finally:
        check.close()


def test_notification_failure_does_not_fail_booking(db, salon):
    def broken_queue(payload):
        raise RuntimeError("broker unavailable")

    appointment = BookingService.create_booking(
        db, salon.service.id, salon.staff.id, at(10),
        client_id=salon.client.id,
        dispatcher=NotificationDispatcher(enqueue=broken_queue),
    )

    assert db.get(Appointment, appointment.id) is not None


def test_walk_in_booking_sends_nothing(db, salon, sent, dispatcher):
    BookingService.create_booking(db, salon.service.id, salon.staff.id, at(10), dispatcher=dispatcher)

    assert sent == []


def test_booking_records_client_visit(db, salon, dispatcher):
    BookingService.create_booking(
        db, salon.service.id, salon.staff.id, at(10),
        client_id=salon.client.id, dispatcher=dispatcher,
    )

    db.refresh(salon.client)
    assert salon.client.total_visits == 1
    assert salon.client.last_visit_at == at(10)


def test_record_visits_unknown_client(db, salon):
    with pytest.raises(NotFoundError):
        BookingService.record_visits(db, [uuid4()], at(10))
    db.rollback()


def test_multi_service_booking_prices_each_line(db, factory, salon, sent, dispatcher):
    color = factory.service(salon.business, name="Color", duration=60, price="80.00", tax_rate="10")
    factory.offering(salon.staff, color)
    blowdry = factory.service(salon.business, name="Blow-dry", duration=30, price="30.00")
    factory.offering(salon.staff, blowdry, custom_price="40.00")

    appointment = BookingService.create_multi_service_booking(
        db,
        business_id=salon.business.id,
        location_id=salon.location.id,
        lines=[
            BookingLine(color.id, salon.staff.id, at(10)),
            BookingLine(blowdry.id, salon.staff.id, at(11)),
        ],
        client_id=salon.client.id,
        dispatcher=dispatcher,
        now=BEFORE_DAY,
    )

    assert [line.name for line in appointment.services] == ["Color", "Blow-dry"]
    assert appointment.services[0].tax_amount == Decimal("8.00")
    assert appointment.services[0].final_price == Decimal("88.00")
    assert appointment.services[1].price == Decimal("40.00")
    assert appointment.subtotal == Decimal("120.00")
    assert appointment.tax_amount == Decimal("8.00")
    assert appointment.total_amount == Decimal("128.00")
    assert appointment.start_time == at(10)
    assert appointment.end_time == at(11, 30)
    assert appointment.total_duration == 90
    assert sent[0]["service_name"] == "Color, Blow-dry"


def test_multi_service_booking_rejects_unavailable_start(db, salon, dispatcher):
    with pytest.raises(ValidationError) as exc_info:
        BookingService.create_multi_service_booking(
            db,
            business_id=salon.business.id,
            location_id=salon.location.id,
            lines=[BookingLine(salon.service.id, salon.staff.id, at(10, 5))],
            dispatcher=dispatcher,
            now=BEFORE_DAY,
        )

    assert "is not available for Haircut" in exc_info.value.message


def test_multi_service_lines_cannot_overlap_each_other(db, factory, salon, dispatcher):
    color = factory.service(salon.business, name="Color", duration=60)
    factory.offering(salon.staff, color)

    with pytest.raises(ConflictError):
        BookingService.create_multi_service_booking(
            db,
            business_id=salon.business.id,
            location_id=salon.location.id,
            lines=[
                BookingLine(salon.service.id, salon.staff.id, at(10)),
                BookingLine(color.id, salon.staff.id, at(10, 15)),
            ],
            dispatcher=dispatcher,
            now=BEFORE_DAY,
        )

    assert db.query(Appointment).count() == 0


def test_multi_service_requires_staff_offering(db, factory, salon, dispatcher):
    massage = factory.service(salon.business, name="Massage", duration=60)

    with pytest.raises(ValidationError) as exc_info:
        BookingService.create_multi_service_booking(
            db,
            business_id=salon.business.id,
            location_id=salon.location.id,
            lines=[BookingLine(massage.id, salon.staff.id, at(10))],
            dispatcher=dispatcher,
            now=BEFORE_DAY,
        )

    assert "does not provide service Massage" in exc_info.value.message


def test_multi_service_requires_lines(db, salon, dispatcher):
    with pytest.raises(ValidationError):
        BookingService.create_multi_service_booking(
            db, salon.business.id, salon.location.id, [], dispatcher=dispatcher,
        )


def test_reschedule_moves_every_line(db, salon, sent, dispatcher):
    appointment = BookingService.create_booking(
        db, salon.service.id, salon.staff.id, at(10),
        client_id=salon.client.id, dispatcher=dispatcher,
    )

    moved = BookingService.reschedule(db, appointment.id, at(14), dispatcher=dispatcher)

    assert moved.start_time == at(14)
    assert moved.end_time == at(14, 45)
    assert moved.services[0].start_time == at(14)
    assert sent[-1]["kind"] == "rescheduled"
    assert sent[-1]["previous_start_time"] == at(10).isoformat()


def test_reschedule_may_overlap_its_own_old_window(db, salon, dispatcher):
    appointment = BookingService.create_booking(db, salon.service.id, salon.staff.id, at(10), dispatcher=dispatcher)

    moved = BookingService.reschedule(db, appointment.id, at(10, 15), dispatcher=dispatcher)

    assert moved.end_time == at(11)


def test_reschedule_into_another_booking_conflicts(db, salon, dispatcher):
    BookingService.create_booking(db, salon.service.id, salon.staff.id, at(14), dispatcher=dispatcher)
    appointment = BookingService.create_booking(db, salon.service.id, salon.staff.id, at(10), dispatcher=dispatcher)

    with pytest.raises(ConflictError):
        BookingService.reschedule(db, appointment.id, at(14, 30), dispatcher=dispatcher)

    db.refresh(appointment)
    assert appointment.start_time == at(10)


def test_reschedule_to_other_staff(db, factory, salon, dispatcher):
    bob = factory.staff(salon.location, first_name="Bob", last_name="Keller")
    appointment = BookingService.create_booking(db, salon.service.id, salon.staff.id, at(10), dispatcher=dispatcher)

    moved = BookingService.reschedule(db, appointment.id, at(10), new_staff_id=bob.id, dispatcher=dispatcher)

    assert moved.services[0].staff_id == bob.id


def test_reschedule_cancelled_appointment_is_rejected(db, salon, dispatcher):
    appointment = BookingService.create_booking(db, salon.service.id, salon.staff.id, at(10), dispatcher=dispatcher)
    StatusService.cancel_appointment(db, appointment.id, dispatcher=dispatcher)

    with pytest.raises(ValidationError) as exc_info:
        BookingService.reschedule(db, appointment.id, at(10) + timedelta(days=1), dispatcher=dispatcher)

    assert exc_info.value.message == "Cannot reschedule appointment with status cancelled"
