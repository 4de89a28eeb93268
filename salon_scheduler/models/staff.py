# salon_scheduler/models/staff.py
from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Numeric, ForeignKey, UniqueConstraint, Uuid
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from salon_scheduler.models.base import Base


class Staff(Base):
    """A bookable team member, attached to a primary location"""
    __tablename__ = "staff"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    location_id = Column(Uuid(as_uuid=True), ForeignKey("locations.id"), nullable=False, index=True)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(255), nullable=True)

    # Extra minutes reserved after every booking for this staff member
    booking_buffer_minutes = Column(Integer, nullable=False, default=0)
    can_accept_bookings = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, server_default=func.now())

    location = relationship("Location")
    staff_services = relationship("StaffService", back_populates="staff")
    schedules = relationship("StaffSchedule", back_populates="staff")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<Staff(id={self.id}, name={self.full_name})>"


class StaffService(Base):
    """Which services a staff member performs, with optional per-staff overrides"""
    __tablename__ = "staff_services"
    __table_args__ = (
        UniqueConstraint("staff_id", "service_id", name="uq_staff_services_staff_service"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    staff_id = Column(Uuid(as_uuid=True), ForeignKey("staff.id", ondelete="CASCADE"), nullable=False)
    service_id = Column(Uuid(as_uuid=True), ForeignKey("services.id", ondelete="CASCADE"), nullable=False)

    custom_price = Column(Numeric(10, 2), nullable=True)
    custom_duration = Column(Integer, nullable=True)  # minutes
    is_active = Column(Boolean, nullable=False, default=True)

    staff = relationship("Staff", back_populates="staff_services")
    service = relationship("Service")
