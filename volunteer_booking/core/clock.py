"""Civil-date and instant helpers for the service timezone.

Instants are stored as naive UTC datetimes; everything handed to callers is
timezone-aware.
"""

from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from volunteer_booking.core import config


@lru_cache(maxsize=None)
def service_timezone() -> ZoneInfo:
    return ZoneInfo(config.SERVICE_TIMEZONE)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def local_today(now: datetime | None = None) -> date:
    return (now or now_utc()).astimezone(service_timezone()).date()


def sunday_first_weekday(day: date) -> int:
    # date.weekday() is Monday=0; availability rules count from Sunday=0.
    return (day.weekday() + 1) % 7


def local_datetime(day: date, moment: time) -> datetime:
    return datetime.combine(day, moment, tzinfo=service_timezone())


def to_storage(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise ValueError('Naive datetimes are ambiguous; pass a timezone-aware value.')
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_storage(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc)
    return value.replace(tzinfo=timezone.utc)


def local_day_bounds(day: date) -> tuple[datetime, datetime]:
    """Storage-form UTC bounds ``[start, end)`` of a civil date."""
    start = local_datetime(day, time(0, 0))
    end = local_datetime(day + timedelta(days=1), time(0, 0))
    return to_storage(start), to_storage(end)


def storage_now() -> datetime:
    return to_storage(now_utc())


def exists_locally(moment: datetime) -> bool:
    """False for wall-clock times skipped when the clocks go forward."""
    round_trip = moment.astimezone(timezone.utc).astimezone(moment.tzinfo)
    return round_trip.replace(tzinfo=None) == moment.replace(tzinfo=None)


def add_elapsed(moment: datetime, delta: timedelta) -> datetime:
    """``moment + delta`` in real elapsed time, expressed in the service timezone.

    Plain ``+`` on a zoned datetime moves the wall clock, which is wrong
    across a daylight-saving change.
    """
    return (moment.astimezone(timezone.utc) + delta).astimezone(service_timezone())
