"""Review repository - Database operations for review moderation"""

from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session, joinedload

from ...models import Review


class ReviewRepository:
    """Repository for review database operations"""

    @staticmethod
    def get_reviews(db: Session) -> list[Review]:
        return db.query(Review).options(joinedload(Review.client)).order_by(Review.created_at.desc()).all()

    @staticmethod
    def get_review_by_id(db: Session, review_id: int) -> Optional[Review]:
        return db.query(Review).filter(Review.id == review_id).first()

    @staticmethod
    def get_featured_reviews(db: Session, limit: int) -> list[Review]:
        return (
            db.query(Review)
            .options(joinedload(Review.client))
            .filter(Review.status == "approved", Review.is_featured == True)  # noqa: E712
            .order_by(Review.created_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_summary(db: Session):
        def count_where(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        return db.query(
            func.count(Review.id).label("total"),
            func.avg(Review.rating).label("avg_rating"),
            count_where(Review.status == "pending").label("pending"),
            count_where(Review.is_featured == True).label("featured"),  # noqa: E712
            count_where(Review.staff_response.isnot(None)).label("with_reply"),
            count_where(Review.rating == 5).label("five_star"),
        ).one()

    @staticmethod
    def get_rating_counts(db: Session) -> dict[int, int]:
        rows = db.query(Review.rating, func.count(Review.id)).group_by(Review.rating).all()
        return {rating: count for rating, count in rows}

    @staticmethod
    def update_review(db: Session, review: Review, **updates) -> Review:
        for key, value in updates.items():
            setattr(review, key, value)
        db.commit()
        db.refresh(review)
        return review
