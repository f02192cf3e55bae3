import random
from datetime import datetime

from volunteer_booking.core.clock import now_utc, service_timezone

REFERENCE_PREFIX = 'ZT'


def generate_reference(now: datetime | None = None) -> str:
    """Human-facing booking label, e.g. ``ZT-2026-482913``.

    Not an identity key: bookings are keyed by their opaque id, and the
    ledger regenerates a reference that collides with an existing one.
    """
    year = (now or now_utc()).astimezone(service_timezone()).year
    return f'{REFERENCE_PREFIX}-{year:04d}-{random.randint(100000, 999999)}'