"""Client repository - Database operations for client profiles"""

from datetime import datetime
from typing import Optional

from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session, aliased

from ...models import Booking, LoyaltyTransaction, Profile


class ClientRepository:
    """Repository for client database operations"""

    @staticmethod
    def get_client_rows(
        db: Session,
        search: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> list:
        """
        Clients with their aggregates, newest first.

        Each row is (Profile, referred_by_name, total_bookings, total_spent,
        last_visit, loyalty_points). Spend and last visit only count
        completed bookings.
        """
        completed = Booking.status == "completed"
        booking_stats = (
            db.query(
                Booking.client_id.label("client_id"),
                func.count(Booking.id).label("total_bookings"),
                func.sum(case((completed, Booking.total_in_cents), else_=0)).label("total_spent"),
                func.max(case((completed, Booking.starts_at), else_=None)).label("last_visit"),
            )
            .group_by(Booking.client_id)
            .subquery()
        )
        loyalty_stats = (
            db.query(
                LoyaltyTransaction.profile_id.label("profile_id"),
                func.sum(LoyaltyTransaction.points).label("points"),
            )
            .group_by(LoyaltyTransaction.profile_id)
            .subquery()
        )
        referrer = aliased(Profile)

        query = (
            db.query(
                Profile,
                referrer.first_name,
                func.coalesce(booking_stats.c.total_bookings, 0),
                func.coalesce(booking_stats.c.total_spent, 0),
                booking_stats.c.last_visit,
                func.coalesce(loyalty_stats.c.points, 0),
            )
            .outerjoin(referrer, Profile.referred_by == referrer.id)
            .outerjoin(booking_stats, booking_stats.c.client_id == Profile.id)
            .outerjoin(loyalty_stats, loyalty_stats.c.profile_id == Profile.id)
            .filter(Profile.role == "client")
        )

        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Profile.first_name.ilike(pattern),
                    Profile.last_name.ilike(pattern),
                    Profile.email.ilike(pattern),
                    Profile.phone.ilike(pattern),
                )
            )
        if start_date:
            query = query.filter(Profile.created_at >= start_date)
        if end_date:
            query = query.filter(Profile.created_at <= end_date)

        return query.order_by(Profile.created_at.desc(), Profile.id).all()

    @staticmethod
    def get_client_by_id(db: Session, client_id: str) -> Optional[Profile]:
        return db.query(Profile).filter(Profile.id == client_id, Profile.role == "client").first()

    @staticmethod
    def get_profile_by_email(db: Session, email: str) -> Optional[Profile]:
        return db.query(Profile).filter(func.lower(Profile.email) == email.lower()).first()

    @staticmethod
    def count_bookings(db: Session, client_id: str) -> int:
        return db.query(func.count(Booking.id)).filter(Booking.client_id == client_id).scalar() or 0

    @staticmethod
    def create_client(db: Session, **data) -> Profile:
        client = Profile(role="client", **data)
        db.add(client)
        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def update_client(db: Session, client: Profile, **updates) -> Profile:
        for key, value in updates.items():
            setattr(client, key, value)
        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def delete_client(db: Session, client: Profile) -> None:
        db.query(LoyaltyTransaction).filter(LoyaltyTransaction.profile_id == client.id).delete(
            synchronize_session=False
        )
        db.delete(client)
        db.commit()
