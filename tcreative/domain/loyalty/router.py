"""Loyalty router - FastAPI endpoints for points and tiers"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin, require_staff
from ...database import get_db
from ...models import Profile
from .schemas import (
    ClientLoyaltyResponse,
    LeaderboardEntry,
    LoyaltyRewardRequest,
    LoyaltyTier,
    LoyaltyTransactionResponse,
)
from .service import LoyaltyService
from .tiers import get_loyalty_tier

router = APIRouter(prefix="/loyalty", tags=["Loyalty"])


def get_loyalty_service(db: Session = Depends(get_db)) -> LoyaltyService:
    """Dependency injection for LoyaltyService"""
    return LoyaltyService(db)


@router.get("/me", response_model=ClientLoyaltyResponse)
async def get_my_loyalty(
    current_user: Profile = Depends(get_current_user),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    """Points balance, tier and recent activity for the signed-in client"""
    return service.get_client_loyalty(current_user)


@router.get("/tier", response_model=LoyaltyTier)
async def get_tier(points: int = Query(...)):
    return get_loyalty_tier(points)


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
async def get_leaderboard(
    limit: int = Query(50, ge=1, le=500),
    _: Profile = Depends(require_staff),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    return service.get_leaderboard(limit)


@router.post("/rewards", response_model=LoyaltyTransactionResponse)
async def issue_reward(
    data: LoyaltyRewardRequest,
    _: Profile = Depends(require_admin),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    """Manually credit or debit a client's points"""
    return service.issue_loyalty_reward(data.profileId, data.points, data.description, data.type)
