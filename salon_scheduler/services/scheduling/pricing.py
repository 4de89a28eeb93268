"""Effective duration, price and tax for a staff member performing a service"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from salon_scheduler.models.service import Service
from salon_scheduler.models.staff import StaffService

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENTS, rounding=ROUND_HALF_UP)


def get_staff_offering(db: Session, staff_id: UUID, service_id: UUID) -> Optional[StaffService]:
    """Active staff/service pairing, or None when the staff member doesn't perform it"""
    return db.query(StaffService).filter(
        StaffService.staff_id == staff_id,
        StaffService.service_id == service_id,
        StaffService.is_active.is_(True),
    ).first()


def effective_duration(service: Service, offering: Optional[StaffService] = None) -> int:
    if offering is not None and offering.custom_duration:
        return offering.custom_duration
    return service.duration_minutes


def effective_price(service: Service, offering: Optional[StaffService] = None) -> Decimal:
    if offering is not None and offering.custom_price is not None:
        return to_money(offering.custom_price)
    return to_money(service.price)


def tax_for(service: Service, price: Decimal) -> Decimal:
    """Tax on one unit of ``price``; ``tax_rate`` is a percentage"""
    if not service.is_taxable or not service.tax_rate:
        return Decimal("0.00")
    return to_money(price * Decimal(str(service.tax_rate)) / Decimal(100))
