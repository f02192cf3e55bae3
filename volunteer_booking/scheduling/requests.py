"""Validated inbound payloads for volunteers, availability and bookings."""

import re
from datetime import date, datetime, time, timedelta

from pydantic import BaseModel, ValidationError, field_validator, model_validator

from volunteer_booking.core import config
from volunteer_booking.core.clock import add_elapsed, exists_locally, service_timezone
from volunteer_booking.core.errors import InvalidRequest
from volunteer_booking.models.enums import ConsultationType, Language, SupportCategory

UK_PHONE_PATTERN = re.compile(r'^(\+44|0)[0-9]{10}$')
EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
MAX_NOTE_LENGTH = 500
MAX_BIO_LENGTH = 200
NONEXISTENT_TIME_MESSAGE = 'That time does not exist because the clocks go forward; please choose another.'


def normalize_phone(value: str) -> str:
    normalized = re.sub(r'[\s\-()]', '', value)
    if not UK_PHONE_PATTERN.match(normalized):
        raise ValueError('Please enter a valid UK phone number.')
    return normalized


def normalize_email(value: str) -> str:
    normalized = value.strip().lower()
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError('Please enter a valid email address.')
    return normalized


def normalize_client_name(value: str) -> str:
    normalized = ' '.join(value.split())
    if not 2 <= len(normalized) <= 50:
        raise ValueError('Name must be between 2 and 50 characters.')
    return normalized


def normalize_note(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > MAX_NOTE_LENGTH:
        raise ValueError(f'Note must be {MAX_NOTE_LENGTH} characters or fewer.')

    return normalized


class AvailabilityRuleCreate(BaseModel):
    day_of_week: int
    start_time: time
    end_time: time
    is_recurring: bool = True
    is_available: bool = True

    class Config:
        extra = 'forbid'

    @field_validator('day_of_week')
    @classmethod
    def validate_day_of_week(cls, value: int) -> int:
        if not 0 <= value <= 6:
            raise ValueError('day_of_week must be between 0 (Sunday) and 6 (Saturday).')
        return value

    @field_validator('start_time', 'end_time')
    @classmethod
    def drop_seconds(cls, value: time) -> time:
        return value.replace(second=0, microsecond=0, tzinfo=None)

    @model_validator(mode='after')
    def validate_time_order(self) -> 'AvailabilityRuleCreate':
        if self.start_time >= self.end_time:
            raise ValueError('End time must be after start time.')
        return self


class VolunteerProfile(BaseModel):
    full_name: str
    email: str
    phone: str | None = None
    bio: str | None = None
    support_categories: list[SupportCategory]
    languages: list[Language]

    class Config:
        extra = 'forbid'

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        normalized = ' '.join(value.split())
        if not 2 <= len(normalized) <= 100:
            raise ValueError('Name must be between 2 and 100 characters.')
        return normalized

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return normalize_phone(value)

    @field_validator('bio')
    @classmethod
    def validate_bio(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        normalized = value.strip()
        if len(normalized) > MAX_BIO_LENGTH:
            raise ValueError(f'Bio must be {MAX_BIO_LENGTH} characters or fewer.')
        return normalized

    @field_validator('support_categories', 'languages')
    @classmethod
    def require_at_least_one(cls, value: list) -> list:
        if not value:
            raise ValueError('Select at least one option.')
        return list(dict.fromkeys(value))


class BookingRequest(BaseModel):
    volunteer_id: str
    support_category: SupportCategory
    consultation_type: ConsultationType
    start_time: datetime
    end_time: datetime | None = None
    client_name: str
    client_email: str
    client_phone: str
    preferred_language: Language = Language.ENGLISH
    note: str | None = None

    class Config:
        extra = 'forbid'

    @field_validator('volunteer_id')
    @classmethod
    def validate_volunteer_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Please select a volunteer.')
        return normalized

    @field_validator('start_time', 'end_time')
    @classmethod
    def attach_service_timezone(cls, value: datetime | None) -> datetime | None:
        # Naive times come from the booking form and are service-local.
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=service_timezone())
            if not exists_locally(value):
                raise ValueError(NONEXISTENT_TIME_MESSAGE)
        return value

    @field_validator('client_name')
    @classmethod
    def validate_client_name(cls, value: str) -> str:
        return normalize_client_name(value)

    @field_validator('client_email')
    @classmethod
    def validate_client_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator('client_phone')
    @classmethod
    def validate_client_phone(cls, value: str) -> str:
        return normalize_phone(value)

    @field_validator('note')
    @classmethod
    def validate_note(cls, value: str | None) -> str | None:
        return normalize_note(value)

    @model_validator(mode='after')
    def default_end_time(self) -> 'BookingRequest':
        if self.end_time is None:
            self.end_time = add_elapsed(self.start_time, timedelta(minutes=config.SLOT_DURATION_MINUTES))
        return self


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = '.'.join(str(item) for item in error['loc'])
        message = error['msg'].removeprefix('Value error, ')
        parts.append(f'{location}: {message}' if location else message)
    return '; '.join(parts)


class BookingDraft:
    """One client's booking attempt, built step by step.

    Each step validates its own input immediately, so a bad category or
    phone number is reported on the step that introduced it. The draft is
    discarded once ``build`` hands back a ``BookingRequest``.
    """

    REQUIRED_FIELDS = ('support_category', 'volunteer_id', 'start_time', 'client_name')

    def __init__(self) -> None:
        self._data: dict = {}

    @property
    def data(self) -> dict:
        return dict(self._data)

    @property
    def missing(self) -> list[str]:
        return [field_name for field_name in self.REQUIRED_FIELDS if field_name not in self._data]

    def choose_category(self, category: str) -> 'BookingDraft':
        try:
            self._data['support_category'] = SupportCategory(category.strip().lower())
        except ValueError as exc:
            raise InvalidRequest(f'Unknown support category: {category!r}.') from exc
        self._data.pop('volunteer_id', None)
        return self

    def choose_volunteer(self, volunteer_id: str) -> 'BookingDraft':
        if 'support_category' not in self._data:
            raise InvalidRequest('Choose a support category before choosing a volunteer.')
        if not volunteer_id or not volunteer_id.strip():
            raise InvalidRequest('Please select a volunteer.')
        self._data['volunteer_id'] = volunteer_id.strip()
        self._data.pop('start_time', None)
        self._data.pop('end_time', None)
        return self

    def choose_slot(self, slot_date: date, slot_time: time, consultation_type: str) -> 'BookingDraft':
        if 'volunteer_id' not in self._data:
            raise InvalidRequest('Choose a volunteer before choosing a time.')
        try:
            self._data['consultation_type'] = ConsultationType(consultation_type)
        except ValueError as exc:
            raise InvalidRequest(f'Unknown consultation type: {consultation_type!r}.') from exc
        start_time = datetime.combine(slot_date, slot_time, tzinfo=service_timezone())
        if not exists_locally(start_time):
            raise InvalidRequest(NONEXISTENT_TIME_MESSAGE)
        self._data['start_time'] = start_time
        self._data['end_time'] = add_elapsed(start_time, timedelta(minutes=config.SLOT_DURATION_MINUTES))
        return self

    def with_contact(
        self,
        client_name: str,
        client_email: str,
        client_phone: str,
        preferred_language: str = Language.ENGLISH.value,
        note: str | None = None,
    ) -> 'BookingDraft':
        try:
            contact = {
                'client_name': normalize_client_name(client_name),
                'client_email': normalize_email(client_email),
                'client_phone': normalize_phone(client_phone),
                'preferred_language': Language(preferred_language),
                'note': normalize_note(note),
            }
        except ValueError as exc:
            raise InvalidRequest(str(exc)) from exc
        self._data.update(contact)
        return self

    def build(self) -> BookingRequest:
        missing = self.missing
        if missing:
            raise InvalidRequest(f'Booking is incomplete; missing: {", ".join(missing)}.')
        try:
            return BookingRequest(**self._data)
        except ValidationError as exc:
            raise InvalidRequest(_validation_message(exc)) from exc
