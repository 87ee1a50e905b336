"""Booking repository - Database operations for bookings"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Booking, BookingAddOn, Profile, Review, Service, ServiceAddOn


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_bookings(db: Session) -> list[Booking]:
        return (
            db.query(Booking)
            .options(
                joinedload(Booking.client),
                joinedload(Booking.staff),
                joinedload(Booking.service),
                joinedload(Booking.add_ons),
            )
            .order_by(Booking.starts_at.desc())
            .all()
        )

    @staticmethod
    def get_booking_by_id(db: Session, booking_id: int) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_service_by_id(db: Session, service_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def get_bookings_for_staff(db: Session, staff_id: str) -> list[Booking]:
        return (
            db.query(Booking)
            .options(joinedload(Booking.client), joinedload(Booking.service))
            .filter(Booking.staff_id == staff_id)
            .order_by(Booking.starts_at.desc())
            .all()
        )

    @staticmethod
    def get_bookings_for_client(db: Session, client_id: str) -> list[Booking]:
        return (
            db.query(Booking)
            .options(joinedload(Booking.staff), joinedload(Booking.service), joinedload(Booking.add_ons))
            .filter(Booking.client_id == client_id)
            .order_by(Booking.starts_at.desc())
            .all()
        )

    @staticmethod
    def create_booking(db: Session, add_ons: list[ServiceAddOn], **data) -> Booking:
        booking = Booking(**data)
        for add_on in add_ons:
            booking.add_ons.append(BookingAddOn(add_on_name=add_on.name, price_in_cents=add_on.price_in_cents))
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def update_booking(db: Session, booking: Booking, **updates) -> Booking:
        for key, value in updates.items():
            setattr(booking, key, value)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def delete_booking(db: Session, booking: Booking) -> None:
        db.delete(booking)
        db.commit()

    @staticmethod
    def count_completed_for_client(db: Session, client_id: str) -> int:
        return (
            db.query(func.count(Booking.id))
            .filter(Booking.client_id == client_id, Booking.status == "completed")
            .scalar()
            or 0
        )

    @staticmethod
    def get_service_add_ons(db: Session, service_id: int, add_on_ids: list[int]) -> list[ServiceAddOn]:
        if not add_on_ids:
            return []
        return (
            db.query(ServiceAddOn)
            .filter(ServiceAddOn.service_id == service_id, ServiceAddOn.id.in_(add_on_ids))
            .all()
        )

    @staticmethod
    def get_reviewed_booking_ids(db: Session, client_id: str, booking_ids: list[int]) -> set[int]:
        if not booking_ids:
            return set()
        rows = (
            db.query(Review.booking_id)
            .filter(Review.client_id == client_id, Review.booking_id.in_(booking_ids))
            .all()
        )
        return {row.booking_id for row in rows if row.booking_id}

    @staticmethod
    def get_review_for_booking(db: Session, client_id: str, booking_id: int) -> Optional[Review]:
        return db.query(Review).filter(Review.client_id == client_id, Review.booking_id == booking_id).first()

    @staticmethod
    def create_review(db: Session, **data) -> Review:
        review = Review(**data)
        db.add(review)
        db.commit()
        db.refresh(review)
        return review

    # ------------------------------------------------------------------
    # Select lists for the booking form
    # ------------------------------------------------------------------

    @staticmethod
    def get_client_options(db: Session) -> list[Profile]:
        return db.query(Profile).filter(Profile.role == "client").order_by(Profile.first_name).all()

    @staticmethod
    def get_service_options(db: Session) -> list[Service]:
        return (
            db.query(Service)
            .filter(Service.is_active == True)  # noqa: E712
            .order_by(Service.category, Service.name)
            .all()
        )

    @staticmethod
    def get_staff_options(db: Session) -> list[Profile]:
        return db.query(Profile).filter(Profile.role != "client").order_by(Profile.first_name).all()
