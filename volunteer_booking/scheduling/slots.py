"""Bookable slot resolution and reservation."""

import logging
from datetime import date, datetime, timedelta

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from volunteer_booking.core import config
from volunteer_booking.core.clock import from_storage, local_today, now_utc, service_timezone, to_storage
from volunteer_booking.core.errors import InvalidRequest, SlotTaken, StorageUnavailable
from volunteer_booking.models.booking import Booking
from volunteer_booking.models.volunteer import Volunteer
from volunteer_booking.scheduling import ledger
from volunteer_booking.scheduling.availability import get_windows_for_date
from volunteer_booking.scheduling.references import generate_reference
from volunteer_booking.scheduling.requests import BookingRequest

logger = logging.getLogger(__name__)


class Slot(BaseModel):
    volunteer_id: str
    date: date
    start_time: datetime
    end_time: datetime
    is_free: bool


def is_within_booking_range(day: date, now: datetime | None = None) -> bool:
    today = local_today(now)
    return today <= day <= today + timedelta(days=config.BOOKING_HORIZON_DAYS)


def get_slot_calendar(volunteer_id: str, day: date, db: Session, now: datetime | None = None) -> list[Slot]:
    """Every window of ``day`` with its free/taken flag, for calendar views."""
    now = now or now_utc()
    if not is_within_booking_range(day, now):
        return []

    windows = get_windows_for_date(volunteer_id, day, db)
    if not windows:
        return []

    booked_intervals = [
        (from_storage(booking.start_time), from_storage(booking.end_time))
        for booking in ledger.get_bookings_overlapping(volunteer_id, day, db)
    ]

    slots: list[Slot] = []
    for window in windows:
        is_taken = any(
            booked_start < window.end_time and booked_end > window.start_time
            for booked_start, booked_end in booked_intervals
        )
        slots.append(
            Slot(
                volunteer_id=volunteer_id,
                date=day,
                start_time=window.start_time,
                end_time=window.end_time,
                is_free=not is_taken and window.start_time > now,
            )
        )

    return slots


def get_bookable_slots(volunteer_id: str, day: date, db: Session, now: datetime | None = None) -> list[Slot]:
    return [slot for slot in get_slot_calendar(volunteer_id, day, db, now) if slot.is_free]


def validate_slot_bounds(start_time: datetime, end_time: datetime, now: datetime) -> date:
    """Check the requested interval is a single future slot; return its civil date."""
    local_start = start_time.astimezone(service_timezone())

    if to_storage(end_time) - to_storage(start_time) != timedelta(minutes=config.SLOT_DURATION_MINUTES):
        raise InvalidRequest(f'Appointments last exactly {config.SLOT_DURATION_MINUTES} minutes.')

    if local_start.minute % config.SLOT_DURATION_MINUTES != 0 or local_start.second or local_start.microsecond:
        raise InvalidRequest(f'Appointments must start on {config.SLOT_DURATION_MINUTES}-minute boundaries.')

    if start_time <= now:
        raise InvalidRequest('Appointments must be scheduled in the future.')

    if not is_within_booking_range(local_start.date(), now):
        raise InvalidRequest(
            f'Appointments can only be booked within the next {config.BOOKING_HORIZON_DAYS} days.'
        )

    return local_start.date()


def _get_bookable_volunteer(request: BookingRequest, db: Session) -> Volunteer:
    try:
        volunteer = db.query(Volunteer).filter(Volunteer.id == request.volunteer_id).first()
    except SQLAlchemyError as exc:
        raise StorageUnavailable() from exc

    if volunteer is None:
        raise InvalidRequest('Unknown volunteer.')

    if not volunteer.is_selectable:
        raise InvalidRequest('This volunteer is not currently accepting bookings.')

    if request.support_category.value not in (volunteer.support_categories or []):
        raise InvalidRequest('This volunteer does not offer the selected support category.')

    return volunteer


def reserve_slot(request: BookingRequest, db: Session, now: datetime | None = None) -> Booking:
    """Validate ``request`` against current availability and commit it.

    Raises ``InvalidRequest`` for malformed or ineligible requests and
    ``SlotTaken`` when the slot is gone, either because the availability
    changed or because another booking now overlaps it.
    """
    now = now or now_utc()
    slot_date = validate_slot_bounds(request.start_time, request.end_time, now)
    _get_bookable_volunteer(request, db)

    windows = get_windows_for_date(request.volunteer_id, slot_date, db)
    requested_start = to_storage(request.start_time)
    if not any(to_storage(window.start_time) == requested_start for window in windows):
        logger.info(
            'Rejected booking for volunteer %s at %s: outside current availability',
            request.volunteer_id,
            request.start_time,
        )
        raise SlotTaken()

    booking = Booking(
        booking_reference=generate_reference(now),
        volunteer_id=request.volunteer_id,
        client_name=request.client_name,
        client_email=request.client_email,
        client_phone=request.client_phone,
        support_category=request.support_category.value,
        consultation_type=request.consultation_type.value,
        preferred_language=request.preferred_language.value,
        note=request.note,
        start_time=to_storage(request.start_time),
        end_time=to_storage(request.end_time),
    )

    return ledger.commit(booking, db)
