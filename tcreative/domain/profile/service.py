"""Profile service - onboarding and notification preferences for the signed-in user"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Profile
from ...services import zoho_service
from ..loyalty.service import LoyaltyService
from .repository import ProfileRepository
from .schemas import NotificationPreferencesUpdate, OnboardingRequest

logger = logging.getLogger(__name__)

POINTS_REFERRAL_REFERRER = 100
POINTS_REFERRAL_REFEREE = 50

ROLE_HOME = {"admin": "/admin", "assistant": "/assistant"}

PREFERENCE_FIELDS = {
    "notifySms": "notify_sms",
    "notifyEmail": "notify_email",
    "notifyMarketing": "notify_marketing",
}


class ProfileService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ProfileRepository()

    # ========================================================================
    # ONBOARDING
    # ========================================================================

    async def save_onboarding(self, profile: Profile, data: OnboardingRequest) -> dict:
        """
        Store the wizard answers. Setting the first name is what marks
        onboarding complete for the auth callback.

        Earlier answers are merged, not replaced, so re-running the wizard
        keeps fields it did not ask about again.
        """
        onboarding = dict(profile.onboarding_data or {})
        onboarding.update(data.answers)
        if data.birthday:
            onboarding["birthday"] = data.birthday
        if data.referralCode or data.referrerEmail:
            onboarding["referral"] = {"code": data.referralCode, "email": data.referrerEmail}

        values = {
            "first_name": data.firstName,
            "last_name": data.lastName.strip(),
            "phone": data.phone,
            "source": data.source,
            "notify_sms": data.notifications.sms,
            "notify_email": data.notifications.email,
            "notify_marketing": data.notifications.marketing,
            "onboarding_data": onboarding,
        }
        loyalty = LoyaltyService(self.db)
        if profile.role == "client" and not profile.referral_code:
            values["referral_code"] = loyalty.new_referral_code(data.firstName)

        profile = self.repo.update_profile(self.db, profile, **values)
        logger.info(f"✅ Onboarding saved for {profile.role} {profile.id}")

        referrer = None
        if profile.role == "client":
            referrer = self._link_referrer(profile, data.referralCode, data.referrerEmail, loyalty)

        await zoho_service.upsert_zoho_contact(self.db, profile, description="Completed onboarding")
        await zoho_service.log_zoho_note(
            self.db, profile.id, "Onboarding completed", self._onboarding_note(profile, referrer)
        )

        return {
            "success": True,
            "redirect": ROLE_HOME.get(profile.role, "/"),
            "referralCode": profile.referral_code,
            "referredBy": referrer.full_name if referrer else None,
        }

    def _link_referrer(
        self, profile: Profile, code: Optional[str], email: Optional[str], loyalty: LoyaltyService
    ) -> Optional[Profile]:
        """A profile is referred at most once; both sides earn points when the link is made"""
        if profile.referred_by:
            return profile.referrer

        referrer = None
        if code:
            referrer = self.repo.get_by_referral_code(self.db, code)
        if referrer is None and email:
            referrer = self.repo.get_by_email(self.db, email)
        if referrer is None or referrer.id == profile.id:
            if code or email:
                logger.info(f"Referral for {profile.id} did not match a client ({code or email})")
            return None

        self.repo.update_profile(self.db, profile, referred_by=referrer.id)
        loyalty.award_once(
            referrer.id,
            POINTS_REFERRAL_REFERRER,
            "referral_referrer",
            f"Referred {profile.first_name}",
            reference_id=profile.id,
        )
        loyalty.award_once(
            profile.id,
            POINTS_REFERRAL_REFEREE,
            "referral_referee",
            f"Referred by {referrer.first_name}",
            reference_id=referrer.id,
        )
        logger.info(f"🤝 {profile.id} referred by {referrer.id}")
        return referrer

    @staticmethod
    def _onboarding_note(profile: Profile, referrer: Optional[Profile]) -> str:
        lines = [f"Source: {profile.source or 'not given'}"]
        if referrer:
            lines.append(f"Referred by: {referrer.full_name} ({referrer.email})")
        lines.append(
            "Email: " + ("yes" if profile.notify_email else "no")
            + ", SMS: " + ("yes" if profile.notify_sms else "no")
            + ", Marketing: " + ("yes" if profile.notify_marketing else "no")
        )
        return "\n".join(lines)

    # ========================================================================
    # NOTIFICATION PREFERENCES
    # ========================================================================

    @staticmethod
    def get_preferences(profile: Profile) -> dict:
        return {
            "notifySms": profile.notify_sms,
            "notifyEmail": profile.notify_email,
            "notifyMarketing": profile.notify_marketing,
        }

    def update_preferences(self, profile: Profile, data: NotificationPreferencesUpdate) -> dict:
        values = {
            PREFERENCE_FIELDS[field]: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None
        }
        if values:
            profile = self.repo.update_profile(self.db, profile, **values)
            logger.info(f"🔔 Notification preferences updated for {profile.id}: {values}")
        return self.get_preferences(profile)
