from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from salon_scheduler.config.settings import settings
from salon_scheduler.core.exceptions import NotFoundError
from salon_scheduler.models.availability import StaffSchedule, StaffTimeOff
from salon_scheduler.models.service import Service
from salon_scheduler.models.staff import Staff, StaffService
from salon_scheduler.services.scheduling.booking_queries import booked_ranges_on
from salon_scheduler.services.scheduling.intervals import (
    TimeRange,
    build_blocked_ranges,
    ceil_to_interval,
    combine,
    first_overlap,
)
from salon_scheduler.services.scheduling.pricing import effective_duration, get_staff_offering
import logging

logger = logging.getLogger(__name__)


@dataclass
class AvailabilityResult:
    staff_id: UUID
    service_id: UUID
    date: date
    service_duration: int
    slots: List[TimeRange] = field(default_factory=list)


@dataclass
class MergedSlot:
    """One visible start time and every staff member free at it"""
    start: datetime
    staff_ids: List[UUID] = field(default_factory=list)

    @property
    def staff_count(self) -> int:
        return len(self.staff_ids)


class AvailabilityService:
    """Bookable slots for staff members from schedules, breaks, time off and bookings"""

    @staticmethod
    def get_availability(
            db: Session,
            staff_id: UUID,
            service_id: UUID,
            target_date: date,
            location_id: UUID,
            now: Optional[datetime] = None,
    ) -> AvailabilityResult:
        """
        Walk the working day on a fixed grid and keep every start whose
        reserved window (service + buffers + staff buffer) is clear.

        Slots carry the client-visible window, which excludes the buffers.
        Read-only; the booking commit re-checks conflicts under a lock.
        """
        service = db.get(Service, service_id)
        if not service:
            raise NotFoundError.for_resource("Service")

        staff = db.get(Staff, staff_id)
        offering = get_staff_offering(db, staff_id, service_id) if staff else None
        duration = effective_duration(service, offering)
        result = AvailabilityResult(
            staff_id=staff_id,
            service_id=service_id,
            date=target_date,
            service_duration=duration,
        )

        if not staff or not staff.can_accept_bookings:
            return result

        time_off = AvailabilityService._approved_time_off(db, staff_id, target_date)
        if any(not entry.is_partial_day for entry in time_off):
            logger.debug(f"Staff {staff_id} is off on {target_date}")
            return result

        schedule = AvailabilityService._schedule_for(db, staff_id, location_id, target_date)
        if not schedule:
            return result

        buffer_before = service.buffer_before_minutes or 0
        total_minutes = (
            duration
            + buffer_before
            + (service.buffer_after_minutes or 0)
            + (staff.booking_buffer_minutes or 0)
        )
        reserved = timedelta(minutes=total_minutes)
        step = timedelta(minutes=settings.SLOT_INTERVAL_MINUTES)

        blocked = build_blocked_ranges(
            target_date,
            bookings=booked_ranges_on(db, staff_id, target_date),
            breaks=[(brk.start_time, brk.end_time) for brk in schedule.breaks],
            partial_time_off=[(entry.start_time, entry.end_time) for entry in time_off],
        )

        work_start = combine(target_date, schedule.start_time)
        work_end = combine(target_date, schedule.end_time)

        current = work_start
        now = now or datetime.now()
        if target_date == now.date():
            earliest = ceil_to_interval(now, settings.SLOT_INTERVAL_MINUTES) + timedelta(
                minutes=settings.MIN_BOOKING_LEAD_MINUTES
            )
            current = max(current, earliest)

        while current + reserved <= work_end:
            if not first_overlap(TimeRange(current, current + reserved), blocked):
                visible_start = current + timedelta(minutes=buffer_before)
                result.slots.append(TimeRange(visible_start, visible_start + timedelta(minutes=duration)))
            current += step

        return result

    @staticmethod
    def is_slot_available(
            db: Session,
            staff_id: UUID,
            service_id: UUID,
            start_time: datetime,
            location_id: UUID,
            now: Optional[datetime] = None,
    ) -> bool:
        availability = AvailabilityService.get_availability(
            db, staff_id, service_id, start_time.date(), location_id, now=now
        )
        return any(slot.start == start_time for slot in availability.slots)

    @staticmethod
    def get_multi_staff_availability(
            db: Session,
            staff_ids: Iterable[UUID],
            service_id: UUID,
            target_date: date,
            location_id: UUID,
            now: Optional[datetime] = None,
    ) -> Dict[UUID, AvailabilityResult]:
        """Per-staff results in request order; staff without slots keep an empty entry"""
        return {
            staff_id: AvailabilityService.get_availability(
                db, staff_id, service_id, target_date, location_id, now=now
            )
            for staff_id in staff_ids
        }

    @staticmethod
    def merge_slots(results: Dict[UUID, AvailabilityResult]) -> List[MergedSlot]:
        merged: Dict[datetime, MergedSlot] = {}
        for staff_id, result in results.items():
            for slot in result.slots:
                merged.setdefault(slot.start, MergedSlot(start=slot.start)).staff_ids.append(staff_id)

        return [merged[start] for start in sorted(merged)]

    @staticmethod
    def eligible_staff_ids(db: Session, service_id: UUID, location_id: UUID) -> List[UUID]:
        rows = (
            db.query(Staff.id)
            .join(StaffService, StaffService.staff_id == Staff.id)
            .filter(
                Staff.location_id == location_id,
                Staff.is_active.is_(True),
                Staff.can_accept_bookings.is_(True),
                StaffService.service_id == service_id,
                StaffService.is_active.is_(True),
            )
            .order_by(Staff.first_name, Staff.last_name)
            .all()
        )
        return [row.id for row in rows]

    @staticmethod
    def _approved_time_off(db: Session, staff_id: UUID, day: date) -> List[StaffTimeOff]:
        return db.query(StaffTimeOff).filter(
            StaffTimeOff.staff_id == staff_id,
            StaffTimeOff.status == "approved",
            StaffTimeOff.start_date <= day,
            StaffTimeOff.end_date >= day,
        ).all()

    @staticmethod
    def _schedule_for(
            db: Session,
            staff_id: UUID,
            location_id: UUID,
            day: date,
    ) -> Optional[StaffSchedule]:
        return (
            db.query(StaffSchedule)
            .options(selectinload(StaffSchedule.breaks))
            .filter(
                StaffSchedule.staff_id == staff_id,
                StaffSchedule.location_id == location_id,
                StaffSchedule.day_of_week == day.weekday(),
                StaffSchedule.is_working.is_(True),
                or_(StaffSchedule.effective_from.is_(None), StaffSchedule.effective_from <= day),
                or_(StaffSchedule.effective_until.is_(None), StaffSchedule.effective_until >= day),
            )
            .first()
        )
