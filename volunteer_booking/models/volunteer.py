"""Volunteer model definitions."""

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String

from volunteer_booking.core.clock import storage_now
from volunteer_booking.database import Base


class Volunteer(Base):
    """A support volunteer; ``id`` is the identity provider's subject."""
    __tablename__ = "volunteers"

    id = Column(String(128), primary_key=True)
    full_name = Column(String(100), nullable=False)
    email = Column(String, nullable=False, index=True)
    phone = Column(String(20))
    bio = Column(String(200))
    support_categories = Column(JSON, nullable=False, default=list)
    languages = Column(JSON, nullable=False, default=list)
    is_verified = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=False)
    total_sessions = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=storage_now)
    updated_at = Column(DateTime, default=storage_now, onupdate=storage_now)

    @property
    def is_selectable(self) -> bool:
        return bool(self.is_verified and self.is_active)
