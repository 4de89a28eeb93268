"""
Shared fixtures: a file-backed SQLite database per test, a seeded salon and
a notification dispatcher that records payloads instead of queueing them.
"""
import os

# Settings are read once at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("EMAIL_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from salon_scheduler.api.dependencies import create_access_token, get_notification_dispatcher
from salon_scheduler.config.database import build_engine, create_tables, get_db
from salon_scheduler.main import create_app
from salon_scheduler.models import (
    Business,
    Client,
    Location,
    Service,
    Staff,
    StaffBreak,
    StaffSchedule,
    StaffService,
    StaffTimeOff,
)
from salon_scheduler.services.notification.notification_dispatcher import NotificationDispatcher
from salon_scheduler.services.rate_limit.rate_limiter import InMemoryRateLimiter

# A Monday well in the future, so "today" rules never apply unless a test asks
DAY = date(2030, 1, 7)
BEFORE_DAY = datetime(2030, 1, 1, 8, 0)


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    return datetime.combine(day, time(hour, minute))


class SalonFactory:
    """Creates rows and commits them; defaults describe a simple one-chair salon"""

    def __init__(self, db):
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        return obj

    def business(self, name="Glow Studio"):
        return self._save(Business(name=name))

    def location(self, business, name="Main Street", is_primary=True, is_active=True):
        return self._save(Location(
            business_id=business.id, name=name, is_primary=is_primary, is_active=is_active
        ))

    def service(self, business, name="Haircut", duration=45, price="50.00", tax_rate=None,
                buffer_before=0, buffer_after=0, is_taxable=True):
        return self._save(Service(
            business_id=business.id,
            name=name,
            duration_minutes=duration,
            price=Decimal(price),
            tax_rate=Decimal(tax_rate) if tax_rate is not None else None,
            is_taxable=is_taxable,
            buffer_before_minutes=buffer_before,
            buffer_after_minutes=buffer_after,
        ))

    def staff(self, location, first_name="Alice", last_name="Moreau", booking_buffer=0,
              can_accept_bookings=True, is_active=True):
        return self._save(Staff(
            location_id=location.id,
            first_name=first_name,
            last_name=last_name,
            booking_buffer_minutes=booking_buffer,
            can_accept_bookings=can_accept_bookings,
            is_active=is_active,
        ))

    def offering(self, staff, service, custom_price=None, custom_duration=None, is_active=True):
        return self._save(StaffService(
            staff_id=staff.id,
            service_id=service.id,
            custom_price=Decimal(custom_price) if custom_price is not None else None,
            custom_duration=custom_duration,
            is_active=is_active,
        ))

    def schedule(self, staff, location, days=range(7), start=time(9), end=time(18),
                 breaks=(), effective_from=None, effective_until=None):
        schedules = []
        for day_of_week in days:
            schedule = StaffSchedule(
                staff_id=staff.id,
                location_id=location.id,
                day_of_week=day_of_week,
                start_time=start,
                end_time=end,
                effective_from=effective_from,
                effective_until=effective_until,
            )
            for brk_start, brk_end in breaks:
                schedule.breaks.append(StaffBreak(start_time=brk_start, end_time=brk_end, label="Lunch"))
            self.db.add(schedule)
            schedules.append(schedule)
        self.db.commit()
        return schedules

    def time_off(self, staff, start_date, end_date=None, start_time=None, end_time=None, status="approved"):
        return self._save(StaffTimeOff(
            staff_id=staff.id,
            start_date=start_date,
            end_date=end_date or start_date,
            start_time=start_time,
            end_time=end_time,
            status=status,
            reason="Vacation",
        ))

    def client(self, business, first_name="Jane", last_name="Doe", email="jane@example.com", phone="555-0100"):
        return self._save(Client(
            business_id=business.id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone,
        ))


@dataclass
class Salon:
    business: Business
    location: Location
    service: Service
    staff: Staff
    client: Client


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'scheduler.db'}")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def factory(db):
    return SalonFactory(db)


@pytest.fixture
def salon(factory):
    """Alice works 09:00-18:00 every day and offers a 45 minute haircut"""
    business = factory.business()
    location = factory.location(business)
    service = factory.service(business)
    staff = factory.staff(location)
    factory.offering(staff, service)
    factory.schedule(staff, location)
    client = factory.client(business)
    return Salon(business=business, location=location, service=service, staff=staff, client=client)


@pytest.fixture
def sent():
    """Notification payloads handed to the queue"""
    return []


@pytest.fixture
def dispatcher(sent):
    return NotificationDispatcher(enqueue=sent.append)


@pytest.fixture
def api(db, dispatcher):
    app = create_app(rate_limiter=InMemoryRateLimiter())

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher

    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth_headers(salon):
    token = create_access_token({"business_id": salon.business.id, "sub": "owner@glow.example"})
    return {"Authorization": f"Bearer {token}"}
