from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from volunteer_booking.auth.dependencies import Principal, require_admin
from volunteer_booking.core.errors import BookingError
from volunteer_booking.models.enums import BookingStatus
from volunteer_booking.routes.common import (
    BookingResponse,
    VolunteerResponse,
    ensure_database_ready,
    get_db,
    serialize_booking,
    to_http_exception,
)
from volunteer_booking.scheduling import ledger, volunteers

router = APIRouter(tags=['admin'])


class VolunteerFlagsRequest(BaseModel):
    is_verified: bool | None = None
    is_active: bool | None = None

    class Config:
        extra = 'forbid'


class StatsResponse(BaseModel):
    total_volunteers: int
    active_volunteers: int
    total_bookings: int
    upcoming_bookings: int


@router.get('/volunteers', response_model=list[VolunteerResponse])
def list_all_volunteers(
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del principal
    ensure_database_ready()

    try:
        return volunteers.list_volunteers(db)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.patch('/volunteers/{volunteer_id}', response_model=VolunteerResponse)
def update_volunteer_flags(
    volunteer_id: str,
    data: VolunteerFlagsRequest,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del principal
    if data.is_verified is None and data.is_active is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Provide is_verified and/or is_active.',
        )

    ensure_database_ready()

    try:
        volunteer = volunteers.get_volunteer(volunteer_id, db)
        if data.is_verified is not None:
            volunteer = volunteers.set_verified(volunteer_id, data.is_verified, db)
        if data.is_active is not None:
            volunteer = volunteers.set_active(volunteer_id, data.is_active, db)
        return volunteer
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/bookings', response_model=list[BookingResponse])
def list_all_bookings(
    booking_status: BookingStatus | None = Query(default=None, alias='status'),
    volunteer_id: str | None = Query(default=None),
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del principal
    ensure_database_ready()

    try:
        bookings = ledger.list_bookings(db, volunteer_id=volunteer_id, status=booking_status)
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    return [serialize_booking(booking) for booking in bookings]


@router.post('/bookings/{booking_id}/cancel', response_model=BookingResponse)
def cancel_booking(
    booking_id: str,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del principal
    ensure_database_ready()

    try:
        booking = ledger.update_status(booking_id, BookingStatus.CANCELLED, db)
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    return serialize_booking(booking)


@router.get('/stats', response_model=StatsResponse)
def get_stats(
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del principal
    ensure_database_ready()

    try:
        return StatsResponse(**ledger.booking_stats(db))
    except BookingError as exc:
        raise to_http_exception(exc) from exc
