from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Profile


class ProfileRepository:
    @staticmethod
    def get_by_referral_code(db: Session, code: str) -> Optional[Profile]:
        return db.query(Profile).filter(func.upper(Profile.referral_code) == code.upper()).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[Profile]:
        return db.query(Profile).filter(func.lower(Profile.email) == email.lower()).first()

    @staticmethod
    def update_profile(db: Session, profile: Profile, **values) -> Profile:
        for key, value in values.items():
            setattr(profile, key, value)
        db.commit()
        db.refresh(profile)
        return profile
