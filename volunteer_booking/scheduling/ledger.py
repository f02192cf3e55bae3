"""Authoritative store of bookings and the per-volunteer reservation gate."""

import logging
from contextlib import contextmanager
from datetime import date
from threading import Lock

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from volunteer_booking.core.clock import local_day_bounds, storage_now
from volunteer_booking.core.errors import InvalidRequest, InvalidTransition, NotFound, SlotTaken, StorageUnavailable
from volunteer_booking.models.booking import Booking
from volunteer_booking.models.enums import BookingStatus, TERMINAL_STATUSES
from volunteer_booking.models.volunteer import Volunteer
from volunteer_booking.scheduling.references import generate_reference

logger = logging.getLogger(__name__)

MAX_REFERENCE_ATTEMPTS = 5

_registry_lock = Lock()
_volunteer_locks: dict[str, Lock] = {}


def _lock_for(volunteer_id: str) -> Lock:
    with _registry_lock:
        lock = _volunteer_locks.get(volunteer_id)
        if lock is None:
            lock = Lock()
            _volunteer_locks[volunteer_id] = lock
        return lock


@contextmanager
def volunteer_transaction(volunteer_id: str, db: Session):
    """Serialise reservation writes for one volunteer.

    The in-process lock covers threads of this worker; the row lock on the
    volunteer record covers other workers on databases with FOR UPDATE.
    Anything not committed inside the block is rolled back.
    """
    with _lock_for(volunteer_id):
        try:
            volunteer = db.query(Volunteer).filter(
                Volunteer.id == volunteer_id,
            ).with_for_update().first()
            if volunteer is None:
                raise InvalidRequest('Unknown volunteer.')

            yield volunteer
        except BaseException:
            db.rollback()
            raise


def find_overlapping(volunteer_id: str, start_time, end_time, db: Session) -> list[Booking]:
    """Upcoming bookings intersecting storage-form ``[start_time, end_time)``."""
    return db.query(Booking).filter(
        Booking.volunteer_id == volunteer_id,
        Booking.status == BookingStatus.UPCOMING.value,
        Booking.start_time < end_time,
        Booking.end_time > start_time,
    ).order_by(Booking.start_time.asc()).all()


def get_bookings_overlapping(volunteer_id: str, day: date, db: Session) -> list[Booking]:
    day_start, day_end = local_day_bounds(day)
    try:
        return find_overlapping(volunteer_id, day_start, day_end, db)
    except SQLAlchemyError as exc:
        raise StorageUnavailable() from exc


def _reference_in_use(reference: str, db: Session) -> bool:
    return db.query(Booking.id).filter(Booking.booking_reference == reference).first() is not None


def _assign_unique_reference(booking: Booking, db: Session) -> None:
    if booking.booking_reference and not _reference_in_use(booking.booking_reference, db):
        return

    for _ in range(MAX_REFERENCE_ATTEMPTS):
        candidate = generate_reference()
        if not _reference_in_use(candidate, db):
            booking.booking_reference = candidate
            return

    raise StorageUnavailable('Could not allocate a booking reference; please try again.')


def commit(booking: Booking, db: Session) -> Booking:
    """Re-check for overlap and insert ``booking`` as one atomic unit."""
    if booking.end_time <= booking.start_time:
        raise InvalidRequest('A booking must end after it starts.')

    try:
        with volunteer_transaction(booking.volunteer_id, db):
            if find_overlapping(booking.volunteer_id, booking.start_time, booking.end_time, db):
                logger.info(
                    'Rejected booking for volunteer %s at %s: slot taken',
                    booking.volunteer_id,
                    booking.start_time,
                )
                raise SlotTaken()

            _assign_unique_reference(booking, db)
            booking.status = BookingStatus.UPCOMING.value
            db.add(booking)
            db.commit()
    except IntegrityError as exc:
        # The unique reference index fired between our check and the insert.
        raise StorageUnavailable('Could not allocate a booking reference; please try again.') from exc
    except SQLAlchemyError as exc:
        raise StorageUnavailable() from exc

    db.refresh(booking)
    logger.info(
        'Committed booking %s (%s) for volunteer %s at %s',
        booking.id,
        booking.booking_reference,
        booking.volunteer_id,
        booking.start_time,
    )
    return booking


def get_booking(booking_id: str, db: Session) -> Booking:
    try:
        booking = db.query(Booking).filter(Booking.id == booking_id).first()
    except SQLAlchemyError as exc:
        raise StorageUnavailable() from exc

    if booking is None:
        raise NotFound('Booking not found.')

    return booking


def update_status(booking_id: str, new_status: BookingStatus, db: Session) -> Booking:
    new_status = BookingStatus(new_status)
    volunteer_id = get_booking(booking_id, db).volunteer_id

    try:
        # Same gate as commit: SQLite ignores FOR UPDATE.
        with _lock_for(volunteer_id):
            booking = db.query(Booking).filter(
                Booking.id == booking_id,
            ).populate_existing().with_for_update().first()
            if booking is None:
                raise NotFound('Booking not found.')

            current_status = BookingStatus(booking.status)
            if current_status != BookingStatus.UPCOMING or new_status not in TERMINAL_STATUSES:
                raise InvalidTransition(
                    f'Cannot change a {current_status.value} booking to {new_status.value}.'
                )

            booking.status = new_status.value
            booking.updated_at = storage_now()
            db.commit()
        db.refresh(booking)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageUnavailable() from exc
    except (NotFound, InvalidTransition):
        db.rollback()
        raise

    logger.info('Booking %s moved from upcoming to %s', booking_id, new_status.value)
    return booking


def list_bookings(
    db: Session,
    volunteer_id: str | None = None,
    status: BookingStatus | None = None,
) -> list[Booking]:
    try:
        query = db.query(Booking)
        if volunteer_id is not None:
            query = query.filter(Booking.volunteer_id == volunteer_id)
        if status is not None:
            query = query.filter(Booking.status == BookingStatus(status).value)
        return query.order_by(Booking.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise StorageUnavailable() from exc


def booking_stats(db: Session) -> dict[str, int]:
    try:
        total_volunteers = db.query(func.count(Volunteer.id)).scalar() or 0
        active_volunteers = db.query(func.count(Volunteer.id)).filter(Volunteer.is_active.is_(True)).scalar() or 0
        total_bookings = db.query(func.count(Booking.id)).scalar() or 0
        upcoming_bookings = db.query(func.count(Booking.id)).filter(
            Booking.status == BookingStatus.UPCOMING.value,
        ).scalar() or 0
    except SQLAlchemyError as exc:
        raise StorageUnavailable() from exc

    return {
        'total_volunteers': total_volunteers,
        'active_volunteers': active_volunteers,
        'total_bookings': total_bookings,
        'upcoming_bookings': upcoming_bookings,
    }
