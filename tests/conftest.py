import os
from datetime import datetime, time, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('SERVICE_TIMEZONE', 'Europe/London')
os.environ.setdefault('JWT_SECRET_KEY', 'test-only-signing-key-0123456789abcdef')

from volunteer_booking.core.clock import local_today, sunday_first_weekday  # noqa: E402
from volunteer_booking.database import Base  # noqa: E402
from volunteer_booking.models.availability import AvailabilityRule  # noqa: E402
from volunteer_booking.models.booking import Booking  # noqa: E402, F401
from volunteer_booking.models.volunteer import Volunteer  # noqa: E402
from volunteer_booking.scheduling.requests import BookingRequest  # noqa: E402


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f'sqlite:///{tmp_path / "bookings.db"}',
        connect_args={'check_same_thread': False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    try:
        yield factory
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def no_schema_checks(monkeypatch: pytest.MonkeyPatch) -> None:
    for module in ('booking_routes', 'volunteer_routes', 'admin_routes'):
        monkeypatch.setattr(f'volunteer_booking.routes.{module}.ensure_database_ready', lambda: None)


@pytest.fixture
def make_volunteer(db):
    def _make_volunteer(
        volunteer_id: str = 'vol-1',
        *,
        full_name: str = 'Asha Patel',
        categories: tuple[str, ...] = ('domestic_abuse', 'general_counselling'),
        languages: tuple[str, ...] = ('en', 'gu'),
        is_verified: bool = True,
        is_active: bool = True,
    ) -> Volunteer:
        volunteer = Volunteer(
            id=volunteer_id,
            full_name=full_name,
            email=f'{volunteer_id}@example.org',
            support_categories=list(categories),
            languages=list(languages),
            is_verified=is_verified,
            is_active=is_active,
        )
        db.add(volunteer)
        db.commit()
        db.refresh(volunteer)
        return volunteer

    return _make_volunteer


@pytest.fixture
def make_rule(db):
    def _make_rule(
        volunteer_id: str,
        day_of_week: int,
        start: time,
        end: time,
        *,
        is_recurring: bool = True,
        is_available: bool = True,
    ) -> AvailabilityRule:
        rule = AvailabilityRule(
            volunteer_id=volunteer_id,
            day_of_week=day_of_week,
            start_time=start,
            end_time=end,
            is_recurring=is_recurring,
            is_available=is_available,
        )
        db.add(rule)
        db.commit()
        db.refresh(rule)
        return rule

    return _make_rule


@pytest.fixture
def booking_request():
    def _booking_request(start_time: datetime, volunteer_id: str = 'vol-1', **overrides) -> BookingRequest:
        payload = {
            'volunteer_id': volunteer_id,
            'support_category': 'domestic_abuse',
            'consultation_type': 'phone',
            'start_time': start_time,
            'client_name': 'Jane Doe',
            'client_email': 'jane@example.com',
            'client_phone': '07123456789',
            'preferred_language': 'en',
        }
        payload.update(overrides)
        return BookingRequest(**payload)

    return _booking_request


@pytest.fixture
def upcoming_tuesday():
    """The Tuesday at least two days from the real current date."""
    day = local_today() + timedelta(days=2)
    while sunday_first_weekday(day) != 2:
        day += timedelta(days=1)
    return day
