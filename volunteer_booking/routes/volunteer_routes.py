from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from volunteer_booking.auth.dependencies import Principal, require_volunteer
from volunteer_booking.core.errors import BookingError, NotFound
from volunteer_booking.models.enums import BookingStatus
from volunteer_booking.routes.common import (
    AvailabilityRuleResponse,
    BookingResponse,
    VolunteerResponse,
    ensure_database_ready,
    get_db,
    serialize_booking,
    serialize_rule,
    to_http_exception,
)
from volunteer_booking.scheduling import availability, ledger, volunteers
from volunteer_booking.scheduling.requests import AvailabilityRuleCreate, VolunteerProfile

router = APIRouter(tags=['volunteer'])

VOLUNTEER_SETTABLE_STATUSES = {BookingStatus.COMPLETED, BookingStatus.NO_SHOW}


class AvailabilityToggleRequest(BaseModel):
    is_available: bool

    class Config:
        extra = 'forbid'


class BookingStatusUpdateRequest(BaseModel):
    status: BookingStatus

    class Config:
        extra = 'forbid'


@router.post('/profile', response_model=VolunteerResponse, status_code=status.HTTP_201_CREATED)
def register_profile(
    data: VolunteerProfile,
    principal: Principal = Depends(require_volunteer),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return volunteers.register_volunteer(principal.subject, data, db)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/profile', response_model=VolunteerResponse)
def get_profile(
    principal: Principal = Depends(require_volunteer),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return volunteers.get_volunteer(principal.subject, db)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.put('/profile', response_model=VolunteerResponse)
def update_profile(
    data: VolunteerProfile,
    principal: Principal = Depends(require_volunteer),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return volunteers.update_profile(principal.subject, data, db)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/availability', response_model=list[AvailabilityRuleResponse])
def list_availability(
    principal: Principal = Depends(require_volunteer),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return [serialize_rule(rule) for rule in availability.list_rules(principal.subject, db)]
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/availability', response_model=AvailabilityRuleResponse, status_code=status.HTTP_201_CREATED)
def add_availability(
    data: AvailabilityRuleCreate,
    principal: Principal = Depends(require_volunteer),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        volunteers.get_volunteer(principal.subject, db)
        return serialize_rule(availability.add_rule(principal.subject, data, db))
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.patch('/availability/{rule_id}', response_model=AvailabilityRuleResponse)
def toggle_availability(
    rule_id: int,
    data: AvailabilityToggleRequest,
    principal: Principal = Depends(require_volunteer),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return serialize_rule(availability.set_rule_available(principal.subject, rule_id, data.is_available, db))
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.delete('/availability/{rule_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_availability(
    rule_id: int,
    principal: Principal = Depends(require_volunteer),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        availability.delete_rule(principal.subject, rule_id, db)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/bookings', response_model=list[BookingResponse])
def list_my_bookings(
    booking_status: BookingStatus | None = Query(default=None, alias='status'),
    principal: Principal = Depends(require_volunteer),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        bookings = ledger.list_bookings(db, volunteer_id=principal.subject, status=booking_status)
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    return [serialize_booking(booking) for booking in bookings]


@router.patch('/bookings/{booking_id}', response_model=BookingResponse)
def update_my_booking_status(
    booking_id: str,
    data: BookingStatusUpdateRequest,
    principal: Principal = Depends(require_volunteer),
    db: Session = Depends(get_db),
):
    if data.status not in VOLUNTEER_SETTABLE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Volunteers can only mark bookings as completed or no-show.',
        )

    ensure_database_ready()

    try:
        booking = ledger.get_booking(booking_id, db)
        if booking.volunteer_id != principal.subject:
            # Do not reveal other volunteers' bookings.
            raise NotFound('Booking not found.')
        booking = ledger.update_status(booking_id, data.status, db)
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    return serialize_booking(booking)
