"""Loyalty service - Business logic for points, tiers and referrals"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import LoyaltyTransaction, Profile
from ...security_utils import generate_referral_code
from .repository import LoyaltyRepository
from .tiers import get_loyalty_tier

logger = logging.getLogger(__name__)

# Points earned automatically by client activity
POINTS_FIRST_BOOKING = 100
POINTS_REVIEW = 50
POINTS_PER_PRODUCT_UNIT = 10

REFERRAL_CODE_ATTEMPTS = 5


class LoyaltyService:
    """Service layer for the loyalty ledger"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = LoyaltyRepository()

    def get_balance(self, profile_id: str) -> int:
        return self.repo.get_balance(self.db, profile_id)

    def get_client_loyalty(self, profile: Profile) -> dict:
        """Balance, tier, last 20 transactions and referral stats for the client dashboard"""
        total_points = self.get_balance(profile.id)
        referral_count = self.repo.count_referrals(self.db, profile.id) if profile.referral_code else 0

        return {
            "firstName": profile.first_name or "",
            "totalPoints": total_points,
            "tier": get_loyalty_tier(total_points),
            "referralCode": profile.referral_code or "",
            "referralCount": referral_count,
            "transactions": self.repo.get_recent_transactions(self.db, profile.id),
        }

    def award_points(
        self,
        profile_id: str,
        points: int,
        type: str,
        description: Optional[str] = None,
        reference_id: Optional[str] = None,
    ) -> Optional[LoyaltyTransaction]:
        """Append a ledger row; zero-point awards are skipped, never written"""
        if not points:
            return None

        transaction = self.repo.create_transaction(
            self.db,
            profile_id=profile_id,
            points=points,
            type=type,
            description=description,
            reference_id=reference_id,
        )
        logger.info(f"✅ Loyalty {type}: {points:+d} points for profile {profile_id}")
        return transaction

    def award_once(
        self, profile_id: str, points: int, type: str, description: str, reference_id: Optional[str] = None
    ) -> Optional[LoyaltyTransaction]:
        """Award points unless the same (type, reference) was already awarded"""
        if self.repo.has_transaction(self.db, profile_id, type, reference_id):
            return None
        return self.award_points(profile_id, points, type, description, reference_id)

    def issue_loyalty_reward(
        self, profile_id: str, points: int, description: str, type: Optional[str] = None
    ) -> LoyaltyTransaction:
        """Admin credit (positive) or debit (negative)"""
        if points == 0:
            raise HTTPException(status_code=400, detail="Points must be non-zero")

        profile = self.db.query(Profile).filter(Profile.id == profile_id).first()
        if not profile:
            raise HTTPException(status_code=404, detail="Client not found")

        transaction_type = type or ("manual_credit" if points > 0 else "manual_debit")
        return self.award_points(profile_id, points, transaction_type, description)

    def get_leaderboard(self, limit: int = 50) -> list[dict]:
        return [
            {
                "id": row.id,
                "firstName": row.first_name,
                "lastName": row.last_name,
                "points": int(row.points or 0),
                "lastActivity": row.last_activity,
                "tier": get_loyalty_tier(int(row.points or 0))["name"],
            }
            for row in self.repo.get_leaderboard(self.db, limit)
        ]

    def new_referral_code(self, first_name: Optional[str]) -> Optional[str]:
        """Unused referral code; None after a handful of collisions"""
        for _ in range(REFERRAL_CODE_ATTEMPTS):
            code = generate_referral_code(first_name)
            if not self.repo.referral_code_exists(self.db, code):
                return code
        logger.warning(f"⚠️ Could not generate a unique referral code for {first_name}")
        return None
