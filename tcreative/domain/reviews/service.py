"""Review service - Moderation workflow and dashboard stats"""

import logging
import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Review
from .repository import ReviewRepository

logger = logging.getLogger(__name__)


def ui_status(review: Review) -> str:
    """Dashboard status: featured and hidden are derived from the stored fields"""
    if review.is_featured and review.status == "approved":
        return "featured"
    if review.status == "rejected":
        return "hidden"
    return review.status


def round_half_up(value: float, places: int = 0) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def review_author(review: Review) -> tuple[str, str]:
    first = (review.client.first_name if review.client else "") or ""
    last = (review.client.last_name if review.client else "") or ""
    name = " ".join(part for part in (first, last) if part) or "Unknown"
    initials = (first[:1] or "?").upper() + last[:1].upper()
    return name, initials


def review_to_row(review: Review) -> dict:
    name, initials = review_author(review)
    return {
        "id": review.id,
        "client": name,
        "initials": initials,
        "rating": review.rating,
        "serviceName": review.service_name or "General",
        "source": review.source,
        "date": review.created_at.strftime("%b %-d, %Y") if review.created_at else "",
        "text": review.body or "",
        "status": ui_status(review),
        "reply": review.staff_response,
    }


class ReviewService:
    """Service layer for review moderation"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ReviewRepository()

    def get_review(self, review_id: int) -> Review:
        review = self.repo.get_review_by_id(self.db, review_id)
        if not review:
            raise HTTPException(status_code=404, detail="Review not found")
        return review

    def list_reviews(self) -> list[dict]:
        return [review_to_row(r) for r in self.repo.get_reviews(self.db)]

    def get_review_stats(self) -> dict:
        summary = self.repo.get_summary(self.db)
        counts = self.repo.get_rating_counts(self.db)
        total = int(summary.total or 0)

        rating_dist = []
        for stars in (5, 4, 3, 2, 1):
            count = counts.get(stars, 0)
            pct = math.floor(count / total * 100 + 0.5) if total else 0
            rating_dist.append({"stars": stars, "count": count, "pct": pct})

        return {
            "totalReviews": total,
            "avgRating": round_half_up(float(summary.avg_rating), 1) if summary.avg_rating is not None else 0,
            "pendingCount": int(summary.pending),
            "featuredCount": int(summary.featured),
            "withReplyCount": int(summary.with_reply),
            "fiveStarCount": int(summary.five_star),
            "ratingDist": rating_dist,
        }

    # ========================================================================
    # MODERATION
    # ========================================================================

    def approve(self, review_id: int) -> Review:
        return self.repo.update_review(self.db, self.get_review(review_id), status="approved")

    def reject(self, review_id: int) -> Review:
        """Rejected reviews are hidden and can no longer be featured"""
        return self.repo.update_review(self.db, self.get_review(review_id), status="rejected", is_featured=False)

    def feature(self, review_id: int) -> Review:
        return self.repo.update_review(self.db, self.get_review(review_id), is_featured=True, status="approved")

    def unfeature(self, review_id: int) -> Review:
        return self.repo.update_review(self.db, self.get_review(review_id), is_featured=False)

    def save_reply(self, review_id: int, reply: str) -> Review:
        """Trimmed reply; an empty reply clears the response"""
        text = (reply or "").strip()
        review = self.repo.update_review(
            self.db,
            self.get_review(review_id),
            staff_response=text or None,
            staff_responded_at=datetime.utcnow() if text else None,
        )
        logger.info(f"💬 Reply {'saved' if text else 'cleared'} on review {review_id}")
        return review

    def get_featured_reviews(self, limit: int = 12) -> list[dict]:
        featured = []
        for r in self.repo.get_featured_reviews(self.db, limit):
            name, _ = review_author(r)
            featured.append(
                {
                    "id": r.id,
                    "client": name,
                    "rating": r.rating,
                    "serviceName": r.service_name or "General",
                    "text": r.body or "",
                    "reply": r.staff_response,
                }
            )
        return featured
