"""Loyalty repository - Database operations for the points ledger"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import LoyaltyTransaction, Profile


class LoyaltyRepository:
    """Repository for loyalty ledger operations"""

    @staticmethod
    def get_balance(db: Session, profile_id: str) -> int:
        total = (
            db.query(func.coalesce(func.sum(LoyaltyTransaction.points), 0))
            .filter(LoyaltyTransaction.profile_id == profile_id)
            .scalar()
        )
        return int(total or 0)

    @staticmethod
    def get_recent_transactions(db: Session, profile_id: str, limit: int = 20) -> list[LoyaltyTransaction]:
        return (
            db.query(LoyaltyTransaction)
            .filter(LoyaltyTransaction.profile_id == profile_id)
            .order_by(LoyaltyTransaction.created_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def count_referrals(db: Session, profile_id: str) -> int:
        return db.query(func.count(Profile.id)).filter(Profile.referred_by == profile_id).scalar() or 0

    @staticmethod
    def has_transaction(db: Session, profile_id: str, type: str, reference_id: Optional[str] = None) -> bool:
        query = db.query(LoyaltyTransaction.id).filter(
            LoyaltyTransaction.profile_id == profile_id, LoyaltyTransaction.type == type
        )
        if reference_id is not None:
            query = query.filter(LoyaltyTransaction.reference_id == reference_id)
        return query.first() is not None

    @staticmethod
    def create_transaction(db: Session, **data) -> LoyaltyTransaction:
        transaction = LoyaltyTransaction(**data)
        db.add(transaction)
        db.commit()
        db.refresh(transaction)
        return transaction

    @staticmethod
    def get_leaderboard(db: Session, limit: int = 50) -> list:
        """Clients ranked by summed points; clients without transactions rank with 0"""
        points = func.coalesce(func.sum(LoyaltyTransaction.points), 0)
        return (
            db.query(
                Profile.id,
                Profile.first_name,
                Profile.last_name,
                points.label("points"),
                func.max(LoyaltyTransaction.created_at).label("last_activity"),
            )
            .outerjoin(LoyaltyTransaction, LoyaltyTransaction.profile_id == Profile.id)
            .filter(Profile.role == "client")
            .group_by(Profile.id, Profile.first_name, Profile.last_name)
            .order_by(points.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def referral_code_exists(db: Session, code: str) -> bool:
        return db.query(Profile.id).filter(Profile.referral_code == code).first() is not None
