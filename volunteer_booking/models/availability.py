"""Availability model definitions."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Time

from volunteer_booking.core.clock import storage_now
from volunteer_booking.database import Base


class AvailabilityRule(Base):
    """A recurring weekly window in which a volunteer accepts bookings."""
    __tablename__ = "volunteer_availability"

    id = Column(Integer, primary_key=True)
    volunteer_id = Column(String(128), ForeignKey("volunteers.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_recurring = Column(Boolean, nullable=False, default=True)
    is_available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=storage_now)
