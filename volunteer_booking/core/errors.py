"""Domain errors raised by the scheduling modules.

Each error carries the HTTP status the routes translate it to, so the
routers only need ``raise HTTPException(exc.status_code, str(exc))``.
"""


class BookingError(Exception):
    status_code = 400
    default_detail = 'Booking request failed.'

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)


class InvalidRequest(BookingError):
    status_code = 400
    default_detail = 'Invalid booking request.'


class SlotTaken(BookingError):
    status_code = 409
    default_detail = 'This time is no longer available, please choose another.'


class NotFound(BookingError):
    status_code = 404
    default_detail = 'Not found.'


class InvalidTransition(BookingError):
    status_code = 409
    default_detail = 'This status change is not allowed.'


class StorageUnavailable(BookingError):
    status_code = 503
    default_detail = 'Database unavailable. Verify DATABASE_URL and database credentials.'
