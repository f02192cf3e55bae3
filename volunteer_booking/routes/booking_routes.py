from datetime import date, time

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from volunteer_booking.core.clock import to_storage
from volunteer_booking.core.errors import BookingError, InvalidRequest, NotFound, SlotTaken
from volunteer_booking.models.enums import Language, SUPPORT_CATEGORY_LABELS, SupportCategory
from volunteer_booking.models.volunteer import Volunteer
from volunteer_booking.notifications.email_sender import notify_booking_created
from volunteer_booking.routes.common import (
    BookingResponse,
    ensure_database_ready,
    get_db,
    serialize_booking,
    to_http_exception,
)
from volunteer_booking.scheduling import slots, volunteers
from volunteer_booking.scheduling.availability import TimeWindow, get_windows_for_date
from volunteer_booking.scheduling.requests import BookingDraft, BookingRequest

router = APIRouter(tags=['booking'])


class SupportCategoryResponse(BaseModel):
    category: str
    label: str


class PublicVolunteerResponse(BaseModel):
    id: str
    full_name: str
    bio: str | None = None
    support_categories: list[str]
    languages: list[str]

    class Config:
        from_attributes = True


class BookingDraftRequest(BaseModel):
    support_category: str | None = None
    volunteer_id: str | None = None
    slot_date: date | None = None
    slot_time: time | None = None
    consultation_type: str | None = None
    client_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    preferred_language: str = 'en'
    note: str | None = None

    class Config:
        extra = 'forbid'


class BookingDraftResponse(BaseModel):
    complete: bool
    missing: list[str]


def get_selectable_volunteer(volunteer_id: str, db: Session) -> Volunteer:
    try:
        volunteer = volunteers.get_volunteer(volunteer_id, db)
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    if not volunteer.is_selectable:
        raise to_http_exception(NotFound('Volunteer not found.'))

    return volunteer


@router.get('/categories', response_model=list[SupportCategoryResponse])
def list_support_categories():
    return [
        SupportCategoryResponse(category=category.value, label=label)
        for category, label in SUPPORT_CATEGORY_LABELS.items()
    ]


@router.get('/volunteers', response_model=list[PublicVolunteerResponse])
def list_available_volunteers(
    category: SupportCategory = Query(...),
    language: Language | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return volunteers.list_selectable_volunteers(category, db, language=language)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/volunteers/{volunteer_id}/windows', response_model=list[TimeWindow])
def list_windows(
    volunteer_id: str,
    slot_date: date = Query(..., alias='date'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()
    get_selectable_volunteer(volunteer_id, db)

    try:
        return get_windows_for_date(volunteer_id, slot_date, db)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/volunteers/{volunteer_id}/slots', response_model=list[slots.Slot])
def list_slots(
    volunteer_id: str,
    slot_date: date = Query(..., alias='date'),
    include_taken: bool = Query(default=False),
    db: Session = Depends(get_db),
):
    ensure_database_ready()
    get_selectable_volunteer(volunteer_id, db)

    try:
        if include_taken:
            return slots.get_slot_calendar(volunteer_id, slot_date, db)
        return slots.get_bookable_slots(volunteer_id, slot_date, db)
    except BookingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/bookings', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        booking = slots.reserve_slot(data, db)
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    background_tasks.add_task(notify_booking_created, booking.id)
    return serialize_booking(booking)


def _apply_draft_steps(data: BookingDraftRequest, db: Session) -> BookingDraft:
    draft = BookingDraft()

    if data.support_category is not None:
        draft.choose_category(data.support_category)

    if data.volunteer_id is not None:
        draft.choose_volunteer(data.volunteer_id)
        volunteer = volunteers.get_volunteer(draft.data['volunteer_id'], db)
        if not volunteer.is_selectable:
            raise NotFound('Volunteer not found.')
        if draft.data['support_category'].value not in (volunteer.support_categories or []):
            raise InvalidRequest('This volunteer does not offer the selected support category.')

    if data.slot_date is not None and data.slot_time is not None and data.consultation_type is not None:
        draft.choose_slot(data.slot_date, data.slot_time, data.consultation_type)
        requested_start = to_storage(draft.data['start_time'])
        free_slots = slots.get_bookable_slots(draft.data['volunteer_id'], data.slot_date, db)
        if not any(to_storage(slot.start_time) == requested_start for slot in free_slots):
            raise SlotTaken()

    if data.client_name is not None and data.client_email is not None and data.client_phone is not None:
        draft.with_contact(
            data.client_name,
            data.client_email,
            data.client_phone,
            preferred_language=data.preferred_language,
            note=data.note,
        )

    return draft


@router.post('/drafts', response_model=BookingDraftResponse)
def check_booking_draft(data: BookingDraftRequest, db: Session = Depends(get_db)):
    """Validate the booking steps completed so far without reserving anything."""
    ensure_database_ready()

    try:
        draft = _apply_draft_steps(data, db)
        if not draft.missing:
            draft.build()
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    return BookingDraftResponse(complete=not draft.missing, missing=draft.missing)
