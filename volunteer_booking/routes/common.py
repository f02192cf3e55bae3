from datetime import datetime, time

from fastapi import HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from volunteer_booking.core.clock import from_storage
from volunteer_booking.core.errors import BookingError
from volunteer_booking.database import SessionLocal, ensure_availability_schema, ensure_booking_schema
from volunteer_booking.models.availability import AvailabilityRule
from volunteer_booking.models.booking import Booking


class BookingResponse(BaseModel):
    id: str
    booking_reference: str
    volunteer_id: str
    client_name: str
    client_email: str
    client_phone: str
    support_category: str
    consultation_type: str
    preferred_language: str
    note: str | None = None
    start_time: datetime
    end_time: datetime
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AvailabilityRuleResponse(BaseModel):
    id: int
    day_of_week: int
    start_time: time
    end_time: time
    is_recurring: bool
    is_available: bool

    class Config:
        from_attributes = True


class VolunteerResponse(BaseModel):
    id: str
    full_name: str
    email: str
    phone: str | None = None
    bio: str | None = None
    support_categories: list[str]
    languages: list[str]
    is_verified: bool
    is_active: bool
    total_sessions: int

    class Config:
        from_attributes = True


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_booking_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and database credentials.',
        ) from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def to_http_exception(exc: BookingError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc))


def serialize_booking(booking: Booking) -> BookingResponse:
    return BookingResponse(
        id=booking.id,
        booking_reference=booking.booking_reference,
        volunteer_id=booking.volunteer_id,
        client_name=booking.client_name,
        client_email=booking.client_email,
        client_phone=booking.client_phone,
        support_category=booking.support_category,
        consultation_type=booking.consultation_type,
        preferred_language=booking.preferred_language or 'en',
        note=booking.note,
        start_time=from_storage(booking.start_time),
        end_time=from_storage(booking.end_time),
        status=booking.status,
        created_at=from_storage(booking.created_at) if booking.created_at else None,
        updated_at=from_storage(booking.updated_at) if booking.updated_at else None,
    )


def serialize_rule(rule: AvailabilityRule) -> AvailabilityRuleResponse:
    return AvailabilityRuleResponse.model_validate(rule)
