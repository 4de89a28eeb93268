# salon_scheduler/models/business.py
"""
Business and Location models

A business owns one or more locations; staff, schedules and appointments are
always scoped to a location.
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from salon_scheduler.models.base import Base


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)

    # Informational only; all scheduling math runs on local wall-clock times
    timezone = Column(String(50), default="UTC")

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    locations = relationship("Location", back_populates="business")

    def __repr__(self):
        return f"<Business(id={self.id}, name={self.name})>"


class Location(Base):
    __tablename__ = "locations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name = Column(String(200), nullable=False)
    is_primary = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, server_default=func.now())

    business = relationship("Business", back_populates="locations")

    def __repr__(self):
        return f"<Location(id={self.id}, name={self.name}, business_id={self.business_id})>"
