# salon_scheduler/models/service.py
"""
Service Model - bookable service definitions
Source of truth for duration, buffers, price and tax.
"""
from sqlalchemy import Column, String, Numeric, Integer, ForeignKey, Boolean, DateTime, Text, Uuid
from sqlalchemy.sql import func
import uuid
from salon_scheduler.models.base import Base


class Service(Base):
    __tablename__ = "services"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    # Timing (minutes). Buffers are reserved around the appointment but are
    # never shown to the client as part of the booked time.
    duration_minutes = Column(Integer, nullable=False)
    buffer_before_minutes = Column(Integer, nullable=False, default=0)
    buffer_after_minutes = Column(Integer, nullable=False, default=0)

    # Pricing
    price = Column(Numeric(10, 2), nullable=False, default=0)
    tax_rate = Column(Numeric(5, 3), nullable=True)  # percent, e.g. 8.875
    is_taxable = Column(Boolean, default=True)

    is_active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Service(id={self.id}, name={self.name}, business_id={self.business_id})>"
