"""Best-effort booking emails.

Nothing here may fail a booking: every send is wrapped and failures are
only logged.
"""

import logging
import smtplib
from email.message import EmailMessage

from volunteer_booking.core import config
from volunteer_booking.core.clock import from_storage, service_timezone
from volunteer_booking.database import SessionLocal
from volunteer_booking.models.booking import Booking
from volunteer_booking.models.enums import ConsultationType
from volunteer_booking.models.volunteer import Volunteer

logger = logging.getLogger(__name__)


def _consultation_label(consultation_type: str) -> str:
    return 'Phone Call' if consultation_type == ConsultationType.PHONE.value else 'In-Person'


def _local_date_and_time(booking: Booking) -> tuple[str, str]:
    local_start = from_storage(booking.start_time).astimezone(service_timezone())
    return local_start.strftime('%d/%m/%Y'), local_start.strftime('%H:%M')


def build_client_confirmation(booking: Booking) -> EmailMessage:
    booking_date, booking_time = _local_date_and_time(booking)
    message = EmailMessage()
    message['From'] = config.EMAIL_SENDER
    message['To'] = booking.client_email
    message['Subject'] = f'Appointment Confirmed - {booking.booking_reference}'
    message.set_content(
        f'Dear {booking.client_name},\n\n'
        'Your appointment with Zinthiya Ganeshpanchan Trust has been confirmed.\n\n'
        f'Reference: {booking.booking_reference}\n'
        f'Date: {booking_date}\n'
        f'Time: {booking_time}\n'
        f'Type: {_consultation_label(booking.consultation_type)}\n\n'
        'We look forward to supporting you.\n'
        f'If you need to reschedule or cancel, please contact us at {config.BOOKINGS_CONTACT_EMAIL}\n'
    )
    return message


def build_volunteer_notification(booking: Booking, volunteer: Volunteer) -> EmailMessage:
    booking_date, booking_time = _local_date_and_time(booking)
    message = EmailMessage()
    message['From'] = config.EMAIL_SENDER
    message['To'] = volunteer.email
    message['Subject'] = f'New Booking - {booking.booking_reference}'
    message.set_content(
        f'Hello {volunteer.full_name},\n\n'
        'You have a new booking:\n\n'
        f'Reference: {booking.booking_reference}\n'
        f'Client: {booking.client_name}\n'
        f'Date: {booking_date}\n'
        f'Time: {booking_time}\n'
        f'Type: {_consultation_label(booking.consultation_type)}\n\n'
        'Please log in to your volunteer portal for full details.\n'
    )
    return message


def deliver(message: EmailMessage) -> None:
    if not config.SMTP_HOST:
        logger.info('SMTP_HOST not set; skipping email to %s (%s)', message['To'], message['Subject'])
        return

    with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=10) as smtp:
        if config.SMTP_USE_TLS:
            smtp.starttls()
        if config.SMTP_USERNAME:
            smtp.login(config.SMTP_USERNAME, config.SMTP_PASSWORD)
        smtp.send_message(message)


def _send_safely(message: EmailMessage) -> bool:
    try:
        deliver(message)
    except Exception:
        logger.exception('Failed to send email to %s (%s)', message['To'], message['Subject'])
        return False
    return True


def notify_booking_created(booking_id: str, session_factory=SessionLocal) -> None:
    """Email the client and the assigned volunteer about a new booking."""
    db = session_factory()
    try:
        booking = db.query(Booking).filter(Booking.id == booking_id).first()
        if booking is None:
            logger.warning('Booking %s vanished before notification', booking_id)
            return

        _send_safely(build_client_confirmation(booking))

        volunteer = db.query(Volunteer).filter(Volunteer.id == booking.volunteer_id).first()
        if volunteer is not None:
            _send_safely(build_volunteer_notification(booking, volunteer))
    except Exception:
        logger.exception('Booking notification failed for %s', booking_id)
    finally:
        db.close()
