"""Loyalty domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

LOYALTY_TRANSACTION_TYPES = {
    "profile_complete",
    "birthday_added",
    "referral_referrer",
    "referral_referee",
    "first_booking",
    "rebook",
    "review",
    "social_share",
    "product_purchase",
    "class_attendance",
    "milestone_5th",
    "milestone_10th",
    "anniversary",
    "new_service",
    "redeemed",
    "manual_credit",
    "manual_debit",
    "expired",
}


class LoyaltyTier(BaseModel):
    name: str
    min_points: int
    next_tier: Optional[str] = None
    next_at: Optional[int] = None
    perk: str
    points_to_next: Optional[int] = None


class LoyaltyTransactionResponse(BaseModel):
    id: str
    points: int
    type: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ClientLoyaltyResponse(BaseModel):
    firstName: str
    totalPoints: int
    tier: LoyaltyTier
    referralCode: str
    referralCount: int
    transactions: list[LoyaltyTransactionResponse]


class LeaderboardEntry(BaseModel):
    id: str
    firstName: str
    lastName: str
    points: int
    lastActivity: Optional[datetime] = None
    tier: str


class LoyaltyRewardRequest(BaseModel):
    """Schema for an admin-issued credit or debit"""

    profileId: str
    points: int
    description: str
    type: Optional[str] = None

    @field_validator("points")
    @classmethod
    def validate_points(cls, v):
        if v == 0:
            raise ValueError("Points must be non-zero")
        return v

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v is not None and v not in LOYALTY_TRANSACTION_TYPES:
            raise ValueError(f"Unknown loyalty transaction type: {v}")
        return v
