from sqlalchemy.orm import Session
from loguru import logger
from datetime import datetime
from typing import List, Optional
import uuid

from pydantic.alias_generators import to_camel

from trainer.config import settings
from trainer.models import Profile, AnalyticsDocument
from trainer.schemas import Analytics, ProfileCreate, UserSettings
from trainer.exceptions import AuthorizationError, NotFoundError

def _default_settings() -> dict:
    return UserSettings(
        timer_duration=settings.default_timer_duration,
        exercise_mode=settings.default_exercise_mode,
        exercises_per_session=settings.default_exercises_per_session,
    ).model_dump(by_alias=True, exclude_none=True)

def create_profile(db: Session, profile: ProfileCreate) -> Profile:
    """Create a profile with an empty analytics document; the first one is admin"""
    is_first_profile = db.query(Profile).count() == 0
    db_profile = Profile(
        id=uuid.uuid4().hex,
        name=profile.name,
        avatar=profile.avatar,
        is_admin=is_first_profile,
        settings=_default_settings(),
    )
    db_profile.analytics = AnalyticsDocument(data=Analytics().to_document())
    db.add(db_profile)
    db.commit()
    db.refresh(db_profile)
    logger.info(f"Created profile {db_profile.name} ({db_profile.id}), admin={db_profile.is_admin}")
    return db_profile

def get_profile(db: Session, profile_id: str) -> Optional[Profile]:
    """Get profile by ID"""
    return db.query(Profile).filter(Profile.id == profile_id).first()

def list_profiles(db: Session) -> List[Profile]:
    """All profiles, oldest first"""
    return db.query(Profile).order_by(Profile.created_at).all()

def update_profile(db: Session, profile_id: str, profile_data: dict) -> Optional[Profile]:
    """Update profile fields"""
    db_profile = get_profile(db, profile_id)
    if db_profile:
        for key, value in profile_data.items():
            setattr(db_profile, key, value)
        db_profile.last_active_at = datetime.utcnow()
        db.commit()
        db.refresh(db_profile)
    return db_profile

def update_profile_settings(db: Session, profile_id: str, new_settings: dict) -> Profile:
    """Merge settings into the profile's current settings"""
    db_profile = get_profile(db, profile_id)
    if not db_profile:
        raise NotFoundError(f"Profile {profile_id} not found")

    # Stored settings use camelCase keys
    updates = {to_camel(key) if "_" in key else key: value for key, value in new_settings.items()}
    merged = UserSettings.model_validate({**(db_profile.settings or {}), **updates})
    db_profile.settings = merged.model_dump(by_alias=True, exclude_none=True)
    db.commit()
    db.refresh(db_profile)
    return db_profile

def is_admin(db: Session, profile_id: Optional[str]) -> bool:
    """Check if a profile has admin rights"""
    if not profile_id:
        return False
    db_profile = get_profile(db, profile_id)
    return bool(db_profile and db_profile.is_admin)

def delete_profile(db: Session, profile_id: str, requesting_profile_id: str):
    """Delete a profile and its analytics; admin only, never self or another admin"""
    if not is_admin(db, requesting_profile_id):
        raise AuthorizationError("Only an admin can delete profiles")
    if profile_id == requesting_profile_id:
        raise AuthorizationError("You cannot delete your own profile")

    db_profile = get_profile(db, profile_id)
    if not db_profile:
        raise NotFoundError(f"Profile {profile_id} not found")
    if db_profile.is_admin:
        raise AuthorizationError("You cannot delete an admin profile")

    db.delete(db_profile)
    db.commit()
    logger.info(f"Deleted profile {profile_id}")

def set_active_profile(db: Session, profile_id: str) -> Profile:
    """Make a profile the active one"""
    db_profile = get_profile(db, profile_id)
    if not db_profile:
        raise NotFoundError(f"Profile {profile_id} not found")

    db.query(Profile).filter(Profile.id != profile_id).update({Profile.is_active: False})
    db_profile.is_active = True
    db_profile.last_active_at = datetime.utcnow()
    db.commit()
    db.refresh(db_profile)
    return db_profile

def get_active_profile(db: Session) -> Optional[Profile]:
    """Get the active profile, if any"""
    return db.query(Profile).filter(Profile.is_active.is_(True)).first()
