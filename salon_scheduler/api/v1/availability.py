# ============================================================================
# salon_scheduler/api/v1/availability.py
# Slot lookup - thin HTTP layer over AvailabilityService
# ============================================================================
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from salon_scheduler.config.database import get_db
from salon_scheduler.core.exceptions import ValidationError
from salon_scheduler.models.staff import Staff
from salon_scheduler.schemas.availability import (
    MergedSlotResponse,
    MultiStaffAvailabilityResponse,
    NoStaffAvailabilityResponse,
    SlotResponse,
    StaffAvailabilityResponse,
    StaffSlotsResponse,
    StaffSummary,
)
from salon_scheduler.schemas.common import display_time
from salon_scheduler.services.availability.availability_service import AvailabilityService

router = APIRouter(prefix="/availability", tags=["availability"])


def _parse_uuid(value: str, name: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise ValidationError(f"Invalid {name}")


def _staff_summary(staff: Optional[Staff]) -> Optional[StaffSummary]:
    if staff is None:
        return None
    return StaffSummary(id=staff.id, name=staff.full_name)


# Three response shapes; the returned model is encoded as-is
@router.get("", response_model=None)
async def get_availability(
        service_id: Optional[str] = Query(None, alias="serviceId"),
        date_str: Optional[str] = Query(None, alias="date", description="YYYY-MM-DD"),
        location_id: Optional[str] = Query(None, alias="locationId"),
        staff_id: Optional[str] = Query(None, alias="staffId"),
        db: Session = Depends(get_db)
):
    """
    Bookable slots for one staff member (``staffId``), or for every staff
    member offering the service at the location plus a merged view.
    """
    if not service_id:
        raise ValidationError("serviceId is required")
    if not date_str:
        raise ValidationError("date is required (YYYY-MM-DD format)")
    if not location_id:
        raise ValidationError("locationId is required")

    try:
        target_date = datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError("Invalid date format. Use YYYY-MM-DD")

    if target_date < date.today():
        raise ValidationError("Cannot check availability for past dates")

    service_uuid = _parse_uuid(service_id, "serviceId")
    location_uuid = _parse_uuid(location_id, "locationId")

    if staff_id:
        staff_uuid = _parse_uuid(staff_id, "staffId")
        result = AvailabilityService.get_availability(
            db, staff_uuid, service_uuid, target_date, location_uuid
        )
        return StaffAvailabilityResponse(
            date=result.date,
            service_id=result.service_id,
            service_duration=result.service_duration,
            staff=_staff_summary(db.get(Staff, staff_uuid)),
            slots=[SlotResponse.from_range(slot) for slot in result.slots],
            total_slots=len(result.slots),
        )

    staff_ids = AvailabilityService.eligible_staff_ids(db, service_uuid, location_uuid)
    if not staff_ids:
        return NoStaffAvailabilityResponse(date=target_date, service_id=service_uuid)

    results = AvailabilityService.get_multi_staff_availability(
        db, staff_ids, service_uuid, target_date, location_uuid
    )
    by_staff = [
        StaffSlotsResponse(
            staff=_staff_summary(db.get(Staff, staff_uuid)),
            slots=[SlotResponse.from_range(slot) for slot in result.slots],
            total_slots=len(result.slots),
        )
        for staff_uuid, result in results.items()
    ]
    merged = [
        MergedSlotResponse(
            start_time=slot.start,
            display_time=display_time(slot.start),
            available_staff=slot.staff_ids,
            staff_count=slot.staff_count,
        )
        for slot in AvailabilityService.merge_slots(results)
    ]

    return MultiStaffAvailabilityResponse(
        date=target_date,
        service_id=service_uuid,
        service_duration=next(iter(results.values())).service_duration,
        by_staff=by_staff,
        all_slots=merged,
        total_available_slots=len(merged),
    )
