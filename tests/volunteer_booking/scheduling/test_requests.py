import re
from datetime import date, datetime, time, timezone

import pytest
from pydantic import ValidationError

from volunteer_booking.core.clock import service_timezone
from volunteer_booking.core.errors import InvalidRequest
from volunteer_booking.models.enums import ConsultationType, Language, SupportCategory
from volunteer_booking.scheduling.references import generate_reference
from volunteer_booking.scheduling.requests import AvailabilityRuleCreate, BookingDraft, BookingRequest, VolunteerProfile


def _payload(**overrides) -> dict:
    payload = {
        'volunteer_id': ' vol-1 ',
        'support_category': 'debt_advice',
        'consultation_type': 'in_person',
        'start_time': datetime(2026, 1, 13, 13, 0),
        'client_name': '  Jane   Doe ',
        'client_email': ' JANE@Example.COM ',
        'client_phone': '07123 456 789',
    }
    payload.update(overrides)
    return payload


def test_booking_request_normalizes_fields() -> None:
    request = BookingRequest(**_payload())

    assert request.volunteer_id == 'vol-1'
    assert request.client_name == 'Jane Doe'
    assert request.client_email == 'jane@example.com'
    assert request.client_phone == '07123456789'
    assert request.preferred_language == Language.ENGLISH
    assert request.note is None


def test_booking_request_treats_naive_times_as_service_local_and_defaults_end() -> None:
    request = BookingRequest(**_payload())

    assert request.start_time == datetime(2026, 1, 13, 13, 0, tzinfo=service_timezone())
    assert request.end_time == datetime(2026, 1, 13, 13, 30, tzinfo=service_timezone())


@pytest.mark.parametrize(
    'overrides',
    [
        {'client_phone': '12345'},
        {'client_phone': '+1 555 123 4567'},
        {'client_email': 'not-an-email'},
        {'client_name': 'J'},
        {'support_category': 'legal_aid'},
        {'consultation_type': 'video'},
        {'preferred_language': 'fr'},
        {'note': 'x' * 501},
        {'volunteer_id': '   '},
        {'unexpected': 'field'},
    ],
)
def test_booking_request_rejects_malformed_payloads(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        BookingRequest(**_payload(**overrides))


def test_booking_request_accepts_international_uk_number_and_long_note() -> None:
    request = BookingRequest(**_payload(client_phone='+447123456789', note='x' * 500))

    assert request.client_phone == '+447123456789'
    assert len(request.note) == 500


def test_availability_rule_requires_start_before_end() -> None:
    with pytest.raises(ValidationError):
        AvailabilityRuleCreate(day_of_week=1, start_time=time(11, 0), end_time=time(9, 0))
    with pytest.raises(ValidationError):
        AvailabilityRuleCreate(day_of_week=1, start_time=time(9, 0), end_time=time(9, 0))


def test_availability_rule_rejects_unknown_weekday() -> None:
    with pytest.raises(ValidationError):
        AvailabilityRuleCreate(day_of_week=7, start_time=time(9, 0), end_time=time(10, 0))


def test_availability_rule_parses_hh_mm_strings() -> None:
    rule = AvailabilityRuleCreate(day_of_week=0, start_time='09:00', end_time='17:30')

    assert rule.start_time == time(9, 0)
    assert rule.end_time == time(17, 30)


def test_volunteer_profile_deduplicates_selections() -> None:
    profile = VolunteerProfile(
        full_name='Asha Patel',
        email='asha@example.org',
        support_categories=['debt_advice', 'debt_advice', 'domestic_abuse'],
        languages=['en'],
        phone='',
    )

    assert profile.support_categories == [SupportCategory.DEBT_ADVICE, SupportCategory.DOMESTIC_ABUSE]
    assert profile.phone is None


def test_volunteer_profile_requires_a_category() -> None:
    with pytest.raises(ValidationError):
        VolunteerProfile(full_name='Asha Patel', email='asha@example.org', support_categories=[], languages=['en'])


def test_booking_draft_builds_request_step_by_step() -> None:
    request = (
        BookingDraft()
        .choose_category('Domestic_Abuse')
        .choose_volunteer('vol-1')
        .choose_slot(date(2026, 1, 13), time(13, 0), 'phone')
        .with_contact('Jane Doe', 'jane@example.com', '07123456789', preferred_language='pl', note='Evenings')
        .build()
    )

    assert request.support_category == SupportCategory.DOMESTIC_ABUSE
    assert request.consultation_type == ConsultationType.PHONE
    assert request.preferred_language == Language.POLISH
    assert request.start_time == datetime(2026, 1, 13, 13, 0, tzinfo=service_timezone())
    assert request.end_time.astimezone(timezone.utc) == datetime(2026, 1, 13, 13, 30, tzinfo=timezone.utc)
    assert request.note == 'Evenings'


def test_booking_draft_enforces_step_order() -> None:
    with pytest.raises(InvalidRequest):
        BookingDraft().choose_volunteer('vol-1')
    with pytest.raises(InvalidRequest):
        BookingDraft().choose_category('debt_advice').choose_slot(date(2026, 1, 13), time(13, 0), 'phone')


def test_booking_draft_reports_bad_input_on_the_step() -> None:
    draft = BookingDraft().choose_category('debt_advice').choose_volunteer('vol-1')

    with pytest.raises(InvalidRequest) as exception_info:
        draft.with_contact('Jane Doe', 'jane@example.com', '555-0100')

    assert str(exception_info.value) == 'Please enter a valid UK phone number.'
    with pytest.raises(InvalidRequest):
        draft.choose_slot(date(2026, 1, 13), time(13, 0), 'video')


def test_booking_draft_changing_category_clears_volunteer() -> None:
    draft = BookingDraft().choose_category('debt_advice').choose_volunteer('vol-1')

    draft.choose_category('poverty_welfare')

    assert 'volunteer_id' not in draft.data


def test_booking_draft_build_lists_missing_steps() -> None:
    with pytest.raises(InvalidRequest) as exception_info:
        BookingDraft().choose_category('debt_advice').build()

    assert str(exception_info.value) == 'Booking is incomplete; missing: volunteer_id, start_time, client_name.'


def test_generated_references_match_format() -> None:
    references = {generate_reference() for _ in range(200)}

    assert all(re.fullmatch(r'ZT-\d{4}-\d{6}', reference) for reference in references)


def test_generated_reference_uses_service_year() -> None:
    new_year = datetime(2026, 1, 1, 0, 30, tzinfo=timezone.utc)

    assert generate_reference(new_year).startswith('ZT-2026-')
    assert 100000 <= int(generate_reference(new_year).rsplit('-', 1)[1]) <= 999999


def test_booking_draft_rejects_time_skipped_by_clock_change() -> None:
    draft = BookingDraft().choose_category('debt_advice').choose_volunteer('vol-1')

    with pytest.raises(InvalidRequest) as exception_info:
        draft.choose_slot(date(2027, 3, 28), time(1, 30), 'phone')

    assert 'clocks go forward' in str(exception_info.value)
    assert draft.missing == ['start_time', 'client_name']


def test_default_end_time_is_half_an_hour_of_real_time() -> None:
    request = BookingRequest(**_payload(start_time=datetime(2026, 10, 25, 1, 30)))

    assert request.start_time.astimezone(timezone.utc) == datetime(2026, 10, 25, 0, 30, tzinfo=timezone.utc)
    assert request.end_time.astimezone(timezone.utc) == datetime(2026, 10, 25, 1, 0, tzinfo=timezone.utc)
