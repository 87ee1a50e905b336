"""Profile router - onboarding and settings for the signed-in user"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Profile
from .schemas import NotificationPreferences, NotificationPreferencesUpdate, OnboardingRequest, OnboardingResult
from .service import ProfileService

router = APIRouter(prefix="/profile", tags=["Profile"])


def get_profile_service(db: Session = Depends(get_db)) -> ProfileService:
    return ProfileService(db)


@router.post("/onboarding", response_model=OnboardingResult)
async def save_onboarding(
    data: OnboardingRequest,
    current_user: Profile = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return await service.save_onboarding(current_user, data)


@router.get("/preferences", response_model=NotificationPreferences)
async def get_preferences(current_user: Profile = Depends(get_current_user)):
    return ProfileService.get_preferences(current_user)


@router.patch("/preferences", response_model=NotificationPreferences)
async def update_preferences(
    data: NotificationPreferencesUpdate,
    current_user: Profile = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return service.update_preferences(current_user, data)
