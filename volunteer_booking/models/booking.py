"""Booking model definitions."""

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, String

from volunteer_booking.core.clock import storage_now
from volunteer_booking.database import Base
from volunteer_booking.models.enums import BookingStatus


def _new_booking_id() -> str:
    return uuid4().hex


class Booking(Base):
    """A confirmed reservation. Start and end are stored as naive UTC."""
    __tablename__ = "bookings"

    id = Column(String(32), primary_key=True, default=_new_booking_id)
    booking_reference = Column(String(16), nullable=False, unique=True)
    volunteer_id = Column(String(128), ForeignKey("volunteers.id"), nullable=False, index=True)
    client_name = Column(String(50), nullable=False)
    client_email = Column(String, nullable=False)
    client_phone = Column(String(20), nullable=False)
    support_category = Column(String, nullable=False)
    consultation_type = Column(String, nullable=False)
    preferred_language = Column(String, nullable=False, default="en")
    note = Column(String(500))
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default=BookingStatus.UPCOMING.value)
    created_at = Column(DateTime, default=storage_now)
    updated_at = Column(DateTime, default=storage_now, onupdate=storage_now)
