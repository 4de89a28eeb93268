# ===== salon_scheduler/models/availability.py =====
from sqlalchemy import Column, String, Integer, Boolean, Time, Date, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from salon_scheduler.models.base import Base
import uuid


class StaffSchedule(Base):
    """Weekly working hours for a staff member at a location"""
    __tablename__ = "staff_schedules"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    staff_id = Column(Uuid(as_uuid=True), ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = Column(Uuid(as_uuid=True), ForeignKey("locations.id"), nullable=False)

    day_of_week = Column(Integer, nullable=False)  # 0=Monday, 6=Sunday
    is_working = Column(Boolean, nullable=False, default=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    # Optional validity window (seasonal hours etc.)
    effective_from = Column(Date, nullable=True)
    effective_until = Column(Date, nullable=True)

    staff = relationship("Staff", back_populates="schedules")
    breaks = relationship(
        "StaffBreak",
        back_populates="schedule",
        order_by="StaffBreak.start_time",
        cascade="all, delete-orphan",
    )


class StaffBreak(Base):
    """Recurring break inside a working-hours block"""
    __tablename__ = "staff_breaks"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    schedule_id = Column(Uuid(as_uuid=True), ForeignKey("staff_schedules.id", ondelete="CASCADE"), nullable=False)

    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    label = Column(String(100), nullable=True)  # "Lunch", ...

    schedule = relationship("StaffSchedule", back_populates="breaks")


class StaffTimeOff(Base):
    """Time off requests. Only approved entries block availability."""
    __tablename__ = "staff_time_off"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    staff_id = Column(Uuid(as_uuid=True), ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    # Both set = partial day off on the covered dates
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)

    status = Column(String(20), nullable=False, default="pending")  # approved, pending, denied
    reason = Column(String, nullable=True)  # "Vacation", "Doctor", etc.

    @property
    def is_partial_day(self) -> bool:
        return self.start_time is not None and self.end_time is not None
