import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from volunteer_booking.core.errors import InvalidRequest, NotFound, StorageUnavailable
from volunteer_booking.models.enums import Language, SupportCategory
from volunteer_booking.models.volunteer import Volunteer
from volunteer_booking.scheduling.requests import VolunteerProfile

logger = logging.getLogger(__name__)


def _apply_profile(volunteer: Volunteer, profile: VolunteerProfile) -> None:
    volunteer.full_name = profile.full_name
    volunteer.email = profile.email
    volunteer.phone = profile.phone
    volunteer.bio = profile.bio
    volunteer.support_categories = [category.value for category in profile.support_categories]
    volunteer.languages = [language.value for language in profile.languages]


def get_volunteer(volunteer_id: str, db: Session) -> Volunteer:
    try:
        volunteer = db.query(Volunteer).filter(Volunteer.id == volunteer_id).first()
    except SQLAlchemyError as exc:
        raise StorageUnavailable() from exc

    if volunteer is None:
        raise NotFound('Volunteer not found.')

    return volunteer


def register_volunteer(volunteer_id: str, profile: VolunteerProfile, db: Session) -> Volunteer:
    """New volunteers wait for an admin to verify and activate them."""
    try:
        if db.query(Volunteer.id).filter(Volunteer.id == volunteer_id).first() is not None:
            raise InvalidRequest('A volunteer profile already exists for this account.')

        volunteer = Volunteer(id=volunteer_id, is_verified=False, is_active=False, total_sessions=0)
        _apply_profile(volunteer, profile)
        db.add(volunteer)
        db.commit()
        db.refresh(volunteer)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageUnavailable() from exc

    logger.info('Registered volunteer %s', volunteer_id)
    return volunteer


def update_profile(volunteer_id: str, profile: VolunteerProfile, db: Session) -> Volunteer:
    volunteer = get_volunteer(volunteer_id, db)

    try:
        _apply_profile(volunteer, profile)
        db.commit()
        db.refresh(volunteer)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageUnavailable() from exc

    return volunteer


def list_volunteers(db: Session) -> list[Volunteer]:
    try:
        return db.query(Volunteer).order_by(Volunteer.full_name.asc()).all()
    except SQLAlchemyError as exc:
        raise StorageUnavailable() from exc


def list_selectable_volunteers(
    category: SupportCategory,
    db: Session,
    language: Language | None = None,
) -> list[Volunteer]:
    try:
        candidates = db.query(Volunteer).filter(
            Volunteer.is_verified.is_(True),
            Volunteer.is_active.is_(True),
        ).order_by(Volunteer.full_name.asc()).all()
    except SQLAlchemyError as exc:
        raise StorageUnavailable() from exc

    # JSON array containment is not portable across backends; filter here.
    category = SupportCategory(category)
    return [
        volunteer
        for volunteer in candidates
        if category.value in (volunteer.support_categories or [])
        and (language is None or Language(language).value in (volunteer.languages or []))
    ]


def _set_flag(volunteer_id: str, flag: str, value: bool, db: Session) -> Volunteer:
    volunteer = get_volunteer(volunteer_id, db)

    try:
        setattr(volunteer, flag, value)
        db.commit()
        db.refresh(volunteer)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageUnavailable() from exc

    logger.info('Volunteer %s %s set to %s', volunteer_id, flag, value)
    return volunteer


def set_verified(volunteer_id: str, value: bool, db: Session) -> Volunteer:
    return _set_flag(volunteer_id, 'is_verified', value, db)


def set_active(volunteer_id: str, value: bool, db: Session) -> Volunteer:
    return _set_flag(volunteer_id, 'is_active', value, db)
