"""
Tests for group bookings: capacity, participants and totals.
"""
from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import at
from salon_scheduler.core.exceptions import ConflictError, GroupFullError, NotFoundError, ValidationError
from salon_scheduler.services.appointment.booking_service import BookingService
from salon_scheduler.services.appointment.group_service import GroupBookingService
from salon_scheduler.services.appointment.status_service import StatusService


@pytest.fixture
def clients(factory, salon):
    extra = [
        factory.client(salon.business, first_name=name, last_name="Guest", email=f"{name.lower()}@example.com")
        for name in ("Ana", "Ben", "Cleo", "Dev", "Eli")
    ]
    return [salon.client] + extra


def create_group(db, salon, dispatcher, client_ids, max_participants=5):
    return GroupBookingService.create_group_booking(
        db,
        business_id=salon.business.id,
        service_id=salon.service.id,
        staff_id=salon.staff.id,
        start_time=at(15),
        max_participants=max_participants,
        client_ids=client_ids,
        dispatcher=dispatcher,
    )


def participant_ids(appointment):
    return [p.client_id for p in appointment.group_participants]


def test_capacity_is_enforced(db, salon, clients, dispatcher):
    """3 booked, 2 more fit, the 6th is refused"""
    ids = [c.id for c in clients]
    appointment = create_group(db, salon, dispatcher, ids[:3])

    GroupBookingService.add_participant(db, appointment.id, ids[3])
    GroupBookingService.add_participant(db, appointment.id, ids[4])
    with pytest.raises(GroupFullError):
        GroupBookingService.add_participant(db, appointment.id, ids[5])

    db.refresh(appointment)
    assert sorted(participant_ids(appointment), key=str) == sorted(ids[:5], key=str)
    assert appointment.total_amount == Decimal("250.00")


def test_group_booking_totals_scale_with_participants(db, salon, clients, sent, dispatcher):
    ids = [c.id for c in clients[:3]]

    appointment = create_group(db, salon, dispatcher, ids)

    assert appointment.is_group_booking
    assert appointment.max_participants == 5
    assert appointment.client_id == ids[0]
    assert participant_ids(appointment) == ids
    assert appointment.subtotal == Decimal("150.00")
    assert appointment.total_amount == Decimal("150.00")
    assert len(appointment.services) == 1
    assert len(sent) == 1

    for client in clients[:3]:
        db.refresh(client)
        assert client.total_visits == 1


def test_group_booking_input_validation(db, salon, clients, dispatcher):
    ids = [c.id for c in clients]

    with pytest.raises(ValidationError) as exc_info:
        create_group(db, salon, dispatcher, [])
    assert exc_info.value.message == "At least one participant required"

    with pytest.raises(ValidationError) as exc_info:
        create_group(db, salon, dispatcher, [ids[0], ids[0]])
    assert exc_info.value.message == "Duplicate participant"

    with pytest.raises(GroupFullError) as exc_info:
        create_group(db, salon, dispatcher, ids, max_participants=5)
    assert exc_info.value.message == "Too many participants"


def test_group_slot_conflicts_like_any_booking(db, salon, clients, dispatcher):
    BookingService.create_booking(db, salon.service.id, salon.staff.id, at(15, 30), dispatcher=dispatcher)

    with pytest.raises(ConflictError):
        create_group(db, salon, dispatcher, [clients[0].id])


def test_duplicate_participant_is_rejected(db, salon, clients, dispatcher):
    appointment = create_group(db, salon, dispatcher, [clients[0].id, clients[1].id])

    with pytest.raises(ValidationError) as exc_info:
        GroupBookingService.add_participant(db, appointment.id, clients[1].id)

    assert exc_info.value.message == "Client is already a participant"


def test_unknown_participant_client(db, salon, clients, dispatcher):
    appointment = create_group(db, salon, dispatcher, [clients[0].id])

    with pytest.raises(NotFoundError):
        GroupBookingService.add_participant(db, appointment.id, uuid4())


def test_remove_primary_reassigns_client(db, salon, clients, dispatcher):
    ids = [c.id for c in clients[:3]]
    appointment = create_group(db, salon, dispatcher, ids)

    updated = GroupBookingService.remove_participant(db, appointment.id, ids[0])

    assert participant_ids(updated) == ids[1:]
    assert updated.client_id == ids[1]
    assert updated.total_amount == Decimal("100.00")


def test_remove_unknown_participant(db, salon, clients, dispatcher):
    appointment = create_group(db, salon, dispatcher, [clients[0].id])

    with pytest.raises(NotFoundError) as exc_info:
        GroupBookingService.remove_participant(db, appointment.id, clients[1].id)

    assert exc_info.value.message == "Participant not found"


def test_participants_only_on_group_bookings(db, salon, clients, dispatcher):
    appointment = BookingService.create_booking(
        db, salon.service.id, salon.staff.id, at(10), client_id=clients[0].id, dispatcher=dispatcher,
    )

    with pytest.raises(ValidationError) as exc_info:
        GroupBookingService.add_participant(db, appointment.id, clients[1].id)

    assert exc_info.value.message == "Appointment is not a group booking"


def test_remove_last_participant_clears_client(db, salon, clients, dispatcher):
    appointment = create_group(db, salon, dispatcher, [clients[0].id])

    updated = GroupBookingService.remove_participant(db, appointment.id, clients[0].id)

    db.refresh(updated)
    assert updated.group_participants == []
    assert updated.client_id is None
    assert updated.total_amount == Decimal("0.00")


def test_completed_group_credits_each_participant(db, salon, clients, dispatcher):
    group = clients[:3]
    appointment = create_group(db, salon, dispatcher, [c.id for c in group])

    for status in ("checked_in", "in_progress", "completed"):
        StatusService.update_appointment(db, appointment.id, status=status, dispatcher=dispatcher)

    db.refresh(appointment)
    assert appointment.total_amount == Decimal("150.00")
    for client in group:
        db.refresh(client)
        assert client.total_spent == Decimal("50.00")
    db.refresh(clients[3])
    assert clients[3].total_spent == Decimal("0.00")
