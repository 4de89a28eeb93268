"""
Tests for recurring series generation and cancellation.
"""
from datetime import date, datetime
from uuid import uuid4

import pytest

from salon_scheduler.core.exceptions import ConflictError, NotFoundError, ValidationError
from salon_scheduler.models import Appointment, AppointmentStatus
from salon_scheduler.services.appointment.booking_service import BookingService
from salon_scheduler.services.appointment.recurring_service import (
    RecurringService,
    generate_occurrence_starts,
)

BASE = datetime(2026, 1, 1, 10, 0)


def create_weekly_series(db, salon, dispatcher, end_date=date(2026, 1, 29)):
    return RecurringService.create_recurring_series(
        db,
        business_id=salon.business.id,
        client_id=salon.client.id,
        service_id=salon.service.id,
        staff_id=salon.staff.id,
        start_time=BASE,
        recurrence_rule="weekly",
        recurrence_end_date=end_date,
        dispatcher=dispatcher,
    )


def test_weekly_occurrences_include_end_date():
    starts = generate_occurrence_starts(BASE, "weekly", date(2026, 1, 29))

    assert starts == [datetime(2026, 1, day, 10, 0) for day in (1, 8, 15, 22, 29)]


def test_biweekly_occurrences():
    starts = generate_occurrence_starts(BASE, "biweekly", date(2026, 1, 29))

    assert [s.day for s in starts] == [1, 15, 29]


def test_occurrences_are_capped():
    assert len(generate_occurrence_starts(BASE, "weekly", date(2030, 1, 1))) == 52
    assert len(generate_occurrence_starts(BASE, "weekly", date(2030, 1, 1), limit=10)) == 10


def test_monthly_occurrences_clamp_to_month_end():
    starts = generate_occurrence_starts(datetime(2027, 1, 31, 9), "monthly", date(2027, 5, 31))

    assert [s.date() for s in starts] == [
        date(2027, 1, 31),
        date(2027, 2, 28),
        date(2027, 3, 31),
        date(2027, 4, 30),
        date(2027, 5, 31),
    ]


def test_unknown_rule_is_rejected():
    with pytest.raises(ValidationError):
        generate_occurrence_starts(BASE, "daily", date(2026, 2, 1))


def test_create_series_links_occurrences(db, salon, sent, dispatcher):
    result = create_weekly_series(db, salon, dispatcher)

    assert len(result.created) == 5
    assert result.skipped == []
    parent, *children = result.created
    assert parent.parent_appointment_id is None
    assert all(child.parent_appointment_id == parent.id for child in children)
    for appointment in result.created:
        assert appointment.series_id == result.series_id
        assert appointment.status == AppointmentStatus.CONFIRMED
        assert appointment.recurrence_rule == "weekly"
        assert appointment.recurrence_end_date == date(2026, 1, 29)
    # one confirmation for the whole series
    assert len(sent) == 1

    db.refresh(salon.client)
    assert salon.client.total_visits == 1
    assert salon.client.last_visit_at == BASE


def test_conflicting_occurrence_is_skipped(db, salon, dispatcher):
    BookingService.create_booking(db, salon.service.id, salon.staff.id, datetime(2026, 1, 15, 10, 30),
                                  dispatcher=dispatcher)

    result = create_weekly_series(db, salon, dispatcher)

    assert [a.start_time.day for a in result.created] == [1, 8, 22, 29]
    assert result.skipped == [datetime(2026, 1, 15, 10, 0)]


def test_series_counts_one_visit_when_first_occurrence_is_skipped(db, salon, dispatcher):
    BookingService.create_booking(db, salon.service.id, salon.staff.id, BASE, dispatcher=dispatcher)

    result = create_weekly_series(db, salon, dispatcher)

    assert result.skipped == [BASE]
    db.refresh(salon.client)
    assert salon.client.total_visits == 1
    assert salon.client.last_visit_at == datetime(2026, 1, 8, 10, 0)


def test_series_where_every_occurrence_conflicts(db, salon, dispatcher):
    BookingService.create_booking(db, salon.service.id, salon.staff.id, BASE, dispatcher=dispatcher)

    with pytest.raises(ConflictError):
        create_weekly_series(db, salon, dispatcher, end_date=BASE.date())


def test_end_date_before_start_is_rejected(db, salon, dispatcher):
    with pytest.raises(ValidationError):
        create_weekly_series(db, salon, dispatcher, end_date=date(2025, 12, 31))


def test_cancel_series_leaves_finished_occurrences(db, salon, dispatcher):
    result = create_weekly_series(db, salon, dispatcher)
    first = result.created[0]
    first.status = AppointmentStatus.COMPLETED
    db.commit()

    count = RecurringService.cancel_series(db, salon.business.id, result.series_id)

    assert count == 4
    statuses = {
        a.start_time.day: a.status
        for a in db.query(Appointment).filter(Appointment.series_id == result.series_id)
    }
    assert statuses == {
        1: AppointmentStatus.COMPLETED,
        8: AppointmentStatus.CANCELLED,
        15: AppointmentStatus.CANCELLED,
        22: AppointmentStatus.CANCELLED,
        29: AppointmentStatus.CANCELLED,
    }


def test_cancel_series_from_date(db, salon, dispatcher):
    result = create_weekly_series(db, salon, dispatcher)

    count = RecurringService.cancel_series(
        db, salon.business.id, result.series_id, cancel_from=date(2026, 1, 15)
    )

    assert count == 3
    cancelled = (
        db.query(Appointment)
        .filter(Appointment.series_id == result.series_id, Appointment.status == AppointmentStatus.CANCELLED)
        .order_by(Appointment.start_time)
        .all()
    )
    assert [a.start_time.day for a in cancelled] == [15, 22, 29]
    assert all(a.cancellation_reason == "Recurring series cancelled" for a in cancelled)
    assert all(line.status == "cancelled" for a in cancelled for line in a.services)


def test_cancel_unknown_series(db, salon):
    with pytest.raises(NotFoundError):
        RecurringService.cancel_series(db, salon.business.id, uuid4())
