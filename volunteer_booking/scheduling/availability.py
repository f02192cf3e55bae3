"""Recurring weekly availability and its expansion into 30-minute windows."""

import logging
from datetime import date, datetime, timedelta

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from volunteer_booking.core import config
from volunteer_booking.core.clock import (
    add_elapsed,
    exists_locally,
    local_datetime,
    service_timezone,
    sunday_first_weekday,
    to_storage,
)
from volunteer_booking.core.errors import NotFound, StorageUnavailable
from volunteer_booking.models.availability import AvailabilityRule
from volunteer_booking.scheduling.requests import AvailabilityRuleCreate

logger = logging.getLogger(__name__)


class TimeWindow(BaseModel):
    date: date
    start_time: datetime
    end_time: datetime

    class Config:
        frozen = True


def align_to_slot_boundary(moment: datetime) -> datetime:
    increment = config.SLOT_DURATION_MINUTES
    current = moment.replace(second=0, microsecond=0)

    if current.minute % increment != 0:
        current += timedelta(minutes=increment - (current.minute % increment))

    return current


def expand_rule(rule: AvailabilityRule, day: date) -> list[TimeWindow]:
    """Split one rule into consecutive slot-sized windows on ``day``.

    The start is rounded up to the next slot boundary and a trailing partial
    window is dropped, so 09:10-10:45 yields 09:30-10:00 and 10:00-10:30.

    Starts step through the wall clock; each window lasts a real slot
    duration. Starts skipped by a spring-forward change are dropped, and a
    repeated autumn hour is offered once.
    """
    duration = timedelta(minutes=config.SLOT_DURATION_MINUTES)
    rule_end = to_storage(local_datetime(day, rule.end_time))
    wall_end = datetime.combine(day, rule.end_time)
    wall_start = align_to_slot_boundary(datetime.combine(day, rule.start_time))

    windows: list[TimeWindow] = []
    while wall_start + duration <= wall_end:
        start = wall_start.replace(tzinfo=service_timezone())
        wall_start += duration
        if not exists_locally(start):
            continue

        end = add_elapsed(start, duration)
        if to_storage(end) > rule_end:
            continue

        windows.append(TimeWindow(date=day, start_time=start, end_time=end))

    return windows


def get_windows_for_date(volunteer_id: str, day: date, db: Session) -> list[TimeWindow]:
    try:
        rules = db.query(AvailabilityRule).filter(
            AvailabilityRule.volunteer_id == volunteer_id,
            AvailabilityRule.is_recurring.is_(True),
            AvailabilityRule.is_available.is_(True),
            AvailabilityRule.day_of_week == sunday_first_weekday(day),
        ).all()
    except SQLAlchemyError as exc:
        raise StorageUnavailable() from exc

    # Overlapping rules on the same day must not produce duplicate windows.
    windows_by_start: dict[datetime, TimeWindow] = {}
    for rule in rules:
        for window in expand_rule(rule, day):
            windows_by_start.setdefault(to_storage(window.start_time), window)

    return [windows_by_start[start] for start in sorted(windows_by_start)]


def list_rules(volunteer_id: str, db: Session) -> list[AvailabilityRule]:
    try:
        return db.query(AvailabilityRule).filter(
            AvailabilityRule.volunteer_id == volunteer_id,
        ).order_by(
            AvailabilityRule.day_of_week.asc(),
            AvailabilityRule.start_time.asc(),
        ).all()
    except SQLAlchemyError as exc:
        raise StorageUnavailable() from exc


def add_rule(volunteer_id: str, data: AvailabilityRuleCreate, db: Session) -> AvailabilityRule:
    rule = AvailabilityRule(
        volunteer_id=volunteer_id,
        day_of_week=data.day_of_week,
        start_time=data.start_time,
        end_time=data.end_time,
        is_recurring=data.is_recurring,
        is_available=data.is_available,
    )

    try:
        db.add(rule)
        db.commit()
        db.refresh(rule)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageUnavailable() from exc

    logger.info('Added availability rule %s for volunteer %s', rule.id, volunteer_id)
    return rule


def _get_owned_rule(volunteer_id: str, rule_id: int, db: Session) -> AvailabilityRule:
    rule = db.query(AvailabilityRule).filter(
        AvailabilityRule.id == rule_id,
        AvailabilityRule.volunteer_id == volunteer_id,
    ).first()

    if rule is None:
        raise NotFound('Availability slot not found.')

    return rule


def delete_rule(volunteer_id: str, rule_id: int, db: Session) -> None:
    try:
        rule = _get_owned_rule(volunteer_id, rule_id, db)
        db.delete(rule)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageUnavailable() from exc

    logger.info('Deleted availability rule %s for volunteer %s', rule_id, volunteer_id)


def set_rule_available(volunteer_id: str, rule_id: int, is_available: bool, db: Session) -> AvailabilityRule:
    try:
        rule = _get_owned_rule(volunteer_id, rule_id, db)
        rule.is_available = is_available
        db.commit()
        db.refresh(rule)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageUnavailable() from exc

    return rule
