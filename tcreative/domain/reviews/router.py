"""Review router - Moderation endpoints and the public testimonials feed"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_staff
from ...database import get_db
from ...models import Profile
from .schemas import FeaturedReview, ReviewReply, ReviewRow, ReviewStats
from .service import ReviewService, review_to_row

router = APIRouter(prefix="/reviews", tags=["Reviews"])


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    """Dependency injection for ReviewService"""
    return ReviewService(db)


@router.get("/featured", response_model=list[FeaturedReview])
async def get_featured_reviews(
    limit: int = Query(12, ge=1, le=50),
    service: ReviewService = Depends(get_review_service),
):
    """Approved, featured reviews for the public site"""
    return service.get_featured_reviews(limit)


@router.get("", response_model=list[ReviewRow])
async def list_reviews(
    _: Profile = Depends(require_staff),
    service: ReviewService = Depends(get_review_service),
):
    return service.list_reviews()


@router.get("/stats", response_model=ReviewStats)
async def get_review_stats(
    _: Profile = Depends(require_staff),
    service: ReviewService = Depends(get_review_service),
):
    return service.get_review_stats()


@router.post("/{review_id}/approve", response_model=ReviewRow)
async def approve_review(
    review_id: int,
    _: Profile = Depends(require_staff),
    service: ReviewService = Depends(get_review_service),
):
    return review_to_row(service.approve(review_id))


@router.post("/{review_id}/reject", response_model=ReviewRow)
async def reject_review(
    review_id: int,
    _: Profile = Depends(require_staff),
    service: ReviewService = Depends(get_review_service),
):
    return review_to_row(service.reject(review_id))


@router.post("/{review_id}/feature", response_model=ReviewRow)
async def feature_review(
    review_id: int,
    _: Profile = Depends(require_staff),
    service: ReviewService = Depends(get_review_service),
):
    return review_to_row(service.feature(review_id))


@router.post("/{review_id}/unfeature", response_model=ReviewRow)
async def unfeature_review(
    review_id: int,
    _: Profile = Depends(require_staff),
    service: ReviewService = Depends(get_review_service),
):
    return review_to_row(service.unfeature(review_id))


@router.put("/{review_id}/reply", response_model=ReviewRow)
async def save_reply(
    review_id: int,
    data: ReviewReply,
    _: Profile = Depends(require_staff),
    service: ReviewService = Depends(get_review_service),
):
    return review_to_row(service.save_reply(review_id, data.reply))
