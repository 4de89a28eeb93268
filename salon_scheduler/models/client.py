# salon_scheduler/models/client.py
from sqlalchemy import Column, String, Integer, Numeric, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
import uuid
from salon_scheduler.models.base import Base


class Client(Base):
    __tablename__ = "clients"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(30), nullable=True)
    source = Column(String(50), default="pos")  # pos, online_booking, import

    # Visit statistics, maintained by the booking engine
    total_visits = Column(Integer, nullable=False, default=0)
    last_visit_at = Column(DateTime, nullable=True)
    total_spent = Column(Numeric(12, 2), nullable=False, default=0)

    created_at = Column(DateTime, server_default=func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def has_contact_info(self) -> bool:
        return bool(self.email or self.phone)

    def __repr__(self):
        return f"<Client(id={self.id}, name={self.full_name})>"
