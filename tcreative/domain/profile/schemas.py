"""Profile domain schemas - onboarding answers and notification preferences"""

from typing import Any, Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_birthday, validate_email, validate_us_phone
from ..clients.schemas import CLIENT_SOURCES


class NotificationChoices(BaseModel):
    sms: bool = True
    email: bool = True
    marketing: bool = False


class OnboardingRequest(BaseModel):
    """
    Answers from the onboarding wizard.

    Free-form answers (interests, allergies, availability, waiver and photo
    consent) travel in `answers` and are kept as-is on the profile. A referral
    is matched by the referrer's code first, then by their email.
    """

    firstName: str
    lastName: str = ""
    phone: Optional[str] = None
    source: Optional[str] = None
    notifications: NotificationChoices = NotificationChoices()
    birthday: Optional[str] = None
    referralCode: Optional[str] = None
    referrerEmail: Optional[str] = None
    answers: dict[str, Any] = {}

    @field_validator("firstName")
    @classmethod
    def validate_first_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Please enter your name")
        return v.strip()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return None

    @field_validator("source")
    @classmethod
    def validate_source(cls, v):
        if v and v not in CLIENT_SOURCES:
            raise ValueError(f"Source must be one of: {', '.join(CLIENT_SOURCES)}")
        return v or None

    @field_validator("birthday")
    @classmethod
    def validate_birthday_format(cls, v):
        return validate_birthday(v) or None

    @field_validator("referralCode")
    @classmethod
    def normalize_referral_code(cls, v):
        return v.strip().upper() if v and v.strip() else None

    @field_validator("referrerEmail")
    @classmethod
    def validate_referrer_email(cls, v):
        return validate_email(v) or None


class OnboardingResult(BaseModel):
    success: bool
    redirect: str
    referralCode: Optional[str] = None
    referredBy: Optional[str] = None


class NotificationPreferences(BaseModel):
    notifySms: bool
    notifyEmail: bool
    notifyMarketing: bool


class NotificationPreferencesUpdate(BaseModel):
    notifySms: Optional[bool] = None
    notifyEmail: Optional[bool] = None
    notifyMarketing: Optional[bool] = None
