from datetime import datetime, time

import pytest
from fastapi import HTTPException

from volunteer_booking.auth.dependencies import Principal
from volunteer_booking.core.clock import service_timezone
from volunteer_booking.models.availability import AvailabilityRule
from volunteer_booking.models.enums import BookingStatus
from volunteer_booking.routes.volunteer_routes import (
    AvailabilityToggleRequest,
    BookingStatusUpdateRequest,
    add_availability,
    get_profile,
    list_availability,
    list_my_bookings,
    register_profile,
    remove_availability,
    toggle_availability,
    update_my_booking_status,
    update_profile,
)
from volunteer_booking.scheduling.requests import AvailabilityRuleCreate, VolunteerProfile
from volunteer_booking.scheduling.slots import reserve_slot

VOLUNTEER = Principal(subject='vol-1', role='volunteer')


def _profile(**overrides) -> VolunteerProfile:
    payload = {
        'full_name': 'Asha Patel',
        'email': 'asha@example.org',
        'support_categories': ['domestic_abuse'],
        'languages': ['en', 'gu'],
    }
    payload.update(overrides)
    return VolunteerProfile(**payload)


def _reserve(db, booking_request, day, hour: int, volunteer_id: str = 'vol-1'):
    start = datetime.combine(day, time(hour, 0), tzinfo=service_timezone())
    return reserve_slot(booking_request(start, volunteer_id=volunteer_id), db)


def test_register_and_fetch_profile(db, no_schema_checks) -> None:
    created = register_profile(_profile(), principal=VOLUNTEER, db=db)
    fetched = get_profile(principal=VOLUNTEER, db=db)

    assert created.id == 'vol-1'
    assert fetched.is_verified is False
    assert fetched.is_active is False


def test_register_profile_twice_returns_400(db, no_schema_checks) -> None:
    register_profile(_profile(), principal=VOLUNTEER, db=db)

    with pytest.raises(HTTPException) as exception_info:
        register_profile(_profile(), principal=VOLUNTEER, db=db)

    assert exception_info.value.status_code == 400


def test_get_profile_before_registration_returns_404(db, no_schema_checks) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_profile(principal=VOLUNTEER, db=db)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Volunteer not found.'


def test_update_profile_changes_languages(db, make_volunteer, no_schema_checks) -> None:
    make_volunteer()

    updated = update_profile(_profile(languages=['pl']), principal=VOLUNTEER, db=db)

    assert updated.languages == ['pl']


def test_availability_add_list_toggle_and_remove(db, make_volunteer, no_schema_checks) -> None:
    make_volunteer()

    created = add_availability(
        AvailabilityRuleCreate(day_of_week=1, start_time=time(9, 0), end_time=time(12, 0)),
        principal=VOLUNTEER,
        db=db,
    )
    toggled = toggle_availability(created.id, AvailabilityToggleRequest(is_available=False), principal=VOLUNTEER, db=db)
    listed = list_availability(principal=VOLUNTEER, db=db)

    assert created.is_recurring is True
    assert toggled.is_available is False
    assert [(rule.id, rule.start_time, rule.end_time) for rule in listed] == [(created.id, time(9, 0), time(12, 0))]

    remove_availability(created.id, principal=VOLUNTEER, db=db)

    assert db.query(AvailabilityRule).count() == 0


def test_add_availability_requires_profile(db, no_schema_checks) -> None:
    with pytest.raises(HTTPException) as exception_info:
        add_availability(
            AvailabilityRuleCreate(day_of_week=1, start_time=time(9, 0), end_time=time(12, 0)),
            principal=VOLUNTEER,
            db=db,
        )

    assert exception_info.value.status_code == 404


def test_cannot_toggle_another_volunteers_rule(db, make_volunteer, make_rule, no_schema_checks) -> None:
    make_volunteer()
    make_volunteer('vol-2', full_name='Tomasz Nowak')
    rule = make_rule('vol-2', 1, time(9, 0), time(10, 0))

    with pytest.raises(HTTPException) as exception_info:
        toggle_availability(rule.id, AvailabilityToggleRequest(is_available=False), principal=VOLUNTEER, db=db)

    assert exception_info.value.status_code == 404


def test_list_my_bookings_only_returns_own(
    db, make_volunteer, make_rule, booking_request, upcoming_tuesday, no_schema_checks
) -> None:
    make_volunteer()
    make_volunteer('vol-2', full_name='Tomasz Nowak')
    make_rule('vol-1', 2, time(13, 0), time(15, 0))
    make_rule('vol-2', 2, time(13, 0), time(15, 0))
    own = _reserve(db, booking_request, upcoming_tuesday, 13)
    _reserve(db, booking_request, upcoming_tuesday, 13, volunteer_id='vol-2')

    bookings = list_my_bookings(booking_status=None, principal=VOLUNTEER, db=db)
    completed = list_my_bookings(booking_status=BookingStatus.COMPLETED, principal=VOLUNTEER, db=db)

    assert [booking.id for booking in bookings] == [own.id]
    assert completed == []


def test_volunteer_marks_booking_completed(
    db, make_volunteer, make_rule, booking_request, upcoming_tuesday, no_schema_checks
) -> None:
    make_volunteer()
    make_rule('vol-1', 2, time(13, 0), time(14, 0))
    booking = _reserve(db, booking_request, upcoming_tuesday, 13)

    response = update_my_booking_status(
        booking.id,
        BookingStatusUpdateRequest(status='completed'),
        principal=VOLUNTEER,
        db=db,
    )

    assert response.status == 'completed'


def test_volunteer_cannot_cancel_bookings(db, no_schema_checks) -> None:
    with pytest.raises(HTTPException) as exception_info:
        update_my_booking_status(
            'any-id',
            BookingStatusUpdateRequest(status='cancelled'),
            principal=VOLUNTEER,
            db=db,
        )

    assert exception_info.value.status_code == 403


def test_volunteer_cannot_touch_another_volunteers_booking(
    db, make_volunteer, make_rule, booking_request, upcoming_tuesday, no_schema_checks
) -> None:
    make_volunteer()
    make_volunteer('vol-2', full_name='Tomasz Nowak')
    make_rule('vol-2', 2, time(13, 0), time(14, 0))
    booking = _reserve(db, booking_request, upcoming_tuesday, 13, volunteer_id='vol-2')

    with pytest.raises(HTTPException) as exception_info:
        update_my_booking_status(
            booking.id,
            BookingStatusUpdateRequest(status='no_show'),
            principal=VOLUNTEER,
            db=db,
        )

    assert exception_info.value.status_code == 404


def test_second_status_change_is_rejected(
    db, make_volunteer, make_rule, booking_request, upcoming_tuesday, no_schema_checks
) -> None:
    make_volunteer()
    make_rule('vol-1', 2, time(13, 0), time(14, 0))
    booking = _reserve(db, booking_request, upcoming_tuesday, 13)
    update_my_booking_status(booking.id, BookingStatusUpdateRequest(status='no_show'), principal=VOLUNTEER, db=db)

    with pytest.raises(HTTPException) as exception_info:
        update_my_booking_status(booking.id, BookingStatusUpdateRequest(status='completed'), principal=VOLUNTEER, db=db)

    assert exception_info.value.status_code == 409
