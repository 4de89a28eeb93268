"""
Reads of committed bookings for one staff member.

The availability walk and the transactional conflict check both go through
``active_bookings`` and then apply ``intervals.overlaps``, so a slot that is
offered can only be rejected at commit time because somebody else booked it.
"""
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from salon_scheduler.models.appointment import Appointment, AppointmentService, INACTIVE_STATUSES
from salon_scheduler.services.scheduling.intervals import TimeRange, day_bounds, first_overlap


def active_bookings(
        db: Session,
        staff_id: UUID,
        window: TimeRange,
        exclude_appointment_id: Optional[UUID] = None,
) -> List[AppointmentService]:
    """Lines of non-cancelled, non-no-show appointments touching ``window``"""
    query = (
        db.query(AppointmentService)
        .join(Appointment, AppointmentService.appointment_id == Appointment.id)
        .filter(
            AppointmentService.staff_id == staff_id,
            Appointment.status.notin_(INACTIVE_STATUSES),
            AppointmentService.start_time < window.end,
            AppointmentService.end_time > window.start,
        )
    )
    if exclude_appointment_id is not None:
        query = query.filter(AppointmentService.appointment_id != exclude_appointment_id)

    return query.order_by(AppointmentService.start_time).all()


def booked_ranges_on(db: Session, staff_id: UUID, day: date) -> List[TimeRange]:
    return [
        TimeRange(line.start_time, line.end_time)
        for line in active_bookings(db, staff_id, day_bounds(day))
    ]


def find_conflict(
        db: Session,
        staff_id: UUID,
        requested: TimeRange,
        exclude_appointment_id: Optional[UUID] = None,
) -> Optional[AppointmentService]:
    """Return the first committed line that overlaps ``requested``, if any"""
    for line in active_bookings(db, staff_id, requested, exclude_appointment_id):
        if first_overlap(requested, [TimeRange(line.start_time, line.end_time)]):
            return line
    return None
