# ===== salon_scheduler/models/appointment.py =====
from sqlalchemy import (
    Column, String, Integer, Numeric, Text, Date, DateTime, Boolean, ForeignKey,
    UniqueConstraint, Index, Uuid, Enum as SQLEnum
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from salon_scheduler.models.base import Base
import enum
import uuid


class AppointmentStatus(str, enum.Enum):
    """Lifecycle states of an appointment."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Appointments in these states no longer hold their staff member's time
INACTIVE_STATUSES = (AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW)


def _status_column_type():
    return SQLEnum(
        AppointmentStatus,
        name="appointment_status",
        values_callable=lambda members: [m.value for m in members],
    )


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # References
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id"), nullable=False, index=True)
    location_id = Column(Uuid(as_uuid=True), ForeignKey("locations.id"), nullable=False)
    client_id = Column(Uuid(as_uuid=True), ForeignKey("clients.id"), nullable=True)  # null for walk-ins

    booking_reference = Column(String(40), nullable=False, unique=True)

    # Status tracking
    status = Column(_status_column_type(), nullable=False, default=AppointmentStatus.PENDING, index=True)
    source = Column(String(20), default="online")  # online, pos, phone, walk_in

    # Overall window = [min(line starts), max(line ends)]
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    total_duration = Column(Integer, nullable=False)  # minutes

    # Money
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)

    notes = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)

    # Status timestamps
    confirmation_sent_at = Column(DateTime, nullable=True)
    checked_in_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    no_show_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    cancelled_by = Column(String(100), nullable=True)

    # Recurring series
    series_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    parent_appointment_id = Column(Uuid(as_uuid=True), ForeignKey("appointments.id"), nullable=True)
    recurrence_rule = Column(String(20), nullable=True)  # weekly, biweekly, monthly
    recurrence_end_date = Column(Date, nullable=True)

    # Group bookings
    is_group_booking = Column(Boolean, nullable=False, default=False)
    max_participants = Column(Integer, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client")
    services = relationship(
        "AppointmentService",
        back_populates="appointment",
        order_by="AppointmentService.sort_order",
        cascade="all, delete-orphan",
    )
    group_participants = relationship(
        "GroupParticipant",
        back_populates="appointment",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Appointment(id={self.id}, ref={self.booking_reference}, status={self.status})>"


class AppointmentService(Base):
    """One service performed by one staff member inside an appointment"""
    __tablename__ = "appointment_services"
    __table_args__ = (
        Index("ix_appointment_services_staff_window", "staff_id", "start_time", "end_time"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    appointment_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    service_id = Column(Uuid(as_uuid=True), ForeignKey("services.id"), nullable=False)
    staff_id = Column(Uuid(as_uuid=True), ForeignKey("staff.id"), nullable=False)

    name = Column(String(200), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)
    final_price = Column(Numeric(10, 2), nullable=False)

    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)

    status = Column(String(20), nullable=False, default="scheduled")  # scheduled, cancelled
    sort_order = Column(Integer, nullable=False, default=0)

    appointment = relationship("Appointment", back_populates="services")
    service = relationship("Service")
    staff = relationship("Staff")


class GroupParticipant(Base):
    __tablename__ = "group_participants"
    __table_args__ = (
        UniqueConstraint("appointment_id", "client_id", name="uq_group_participants_appointment_client"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    appointment_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False
    )
    client_id = Column(Uuid(as_uuid=True), ForeignKey("clients.id"), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    appointment = relationship("Appointment", back_populates="group_participants")
    client = relationship("Client")
