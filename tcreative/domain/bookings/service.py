"""Booking service - Business logic for admin, assistant and client booking views"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Booking, Profile
from ...services import square_service, zoho_service
from ...services.sync_log import log_sync
from ..loyalty.service import POINTS_FIRST_BOOKING, POINTS_REVIEW, LoyaltyService
from .repository import BookingRepository
from .schemas import BookingCreate, BookingUpdate

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "lash"
DEFAULT_DURATION_MINUTES = 60
UPCOMING_STATUSES = ("pending", "confirmed", "in_progress")

BOOKING_FIELD_MAP = {
    "clientId": "client_id",
    "serviceId": "service_id",
    "staffId": "staff_id",
    "startsAt": "starts_at",
    "durationMinutes": "duration_minutes",
    "totalInCents": "total_in_cents",
    "discountInCents": "discount_in_cents",
    "location": "location",
    "clientNotes": "client_notes",
    "staffNotes": "staff_notes",
    "status": "status",
}


def status_timestamps(status: str, now: datetime) -> dict:
    """Timestamp columns written when a booking enters a status"""
    if status == "confirmed":
        return {"confirmed_at": now}
    if status == "completed":
        return {"completed_at": now}
    if status == "cancelled":
        return {"cancelled_at": now}
    return {}


def client_display_status(status: str) -> str:
    """Clients only see four states; no-shows read as cancelled"""
    if status in ("confirmed", "completed"):
        return status
    if status in ("cancelled", "no_show"):
        return "cancelled"
    return "pending"


def format_time(value: datetime) -> str:
    return value.strftime("%-I:%M %p")


def format_day_label(value: datetime, today) -> str:
    if value.date() == today:
        return "Today"
    if value.date() == today + timedelta(days=1):
        return "Tomorrow"
    return value.strftime("%b %-d")


def get_initials(first_name: str, last_name: str) -> str:
    return "".join(part[0] for part in (first_name, last_name) if part).upper() or "?"


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()

    def get_booking(self, booking_id: int) -> Booking:
        booking = self.repo.get_booking_by_id(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    # ========================================================================
    # ADMIN
    # ========================================================================

    def list_bookings(self) -> list[dict]:
        rows = []
        for b in self.repo.get_bookings(self.db):
            rows.append(
                {
                    "id": b.id,
                    "status": b.status,
                    "startsAt": b.starts_at,
                    "durationMinutes": b.duration_minutes,
                    "totalInCents": b.total_in_cents,
                    "location": b.location,
                    "clientNotes": b.client_notes,
                    "clientId": b.client_id,
                    "clientFirstName": b.client.first_name if b.client else None,
                    "clientLastName": b.client.last_name if b.client else None,
                    "clientPhone": b.client.phone if b.client else None,
                    "serviceId": b.service_id,
                    "serviceName": b.service.name if b.service else None,
                    "serviceCategory": (b.service.category if b.service else None) or DEFAULT_CATEGORY,
                    "staffId": b.staff_id,
                    "staffFirstName": b.staff.first_name if b.staff else None,
                    "addOns": [{"name": a.add_on_name, "priceInCents": a.price_in_cents} for a in b.add_ons],
                }
            )
        return rows

    def create_booking(self, data: BookingCreate) -> Booking:
        """Admin-created bookings skip the request step and start confirmed"""
        service = self.repo.get_service_by_id(self.db, data.serviceId)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")

        add_ons = self.repo.get_service_add_ons(self.db, data.serviceId, data.addOnIds)
        if len(add_ons) != len(set(data.addOnIds)):
            raise HTTPException(status_code=400, detail="One or more add-ons do not belong to this service")

        base_total = data.totalInCents if data.totalInCents is not None else (service.price_in_cents or 0)
        base_duration = data.durationMinutes or service.duration_minutes or DEFAULT_DURATION_MINUTES

        now = datetime.utcnow()
        booking = self.repo.create_booking(
            self.db,
            add_ons,
            client_id=data.clientId,
            service_id=data.serviceId,
            staff_id=data.staffId,
            starts_at=data.startsAt,
            duration_minutes=base_duration + sum(a.additional_minutes for a in add_ons),
            total_in_cents=base_total + sum(a.price_in_cents for a in add_ons),
            location=data.location,
            client_notes=data.clientNotes,
            staff_notes=data.staffNotes,
            status="confirmed",
            confirmed_at=now,
        )
        logger.info(f"✅ Created booking {booking.id} for client {booking.client_id}")
        return booking

    def update_booking(self, booking_id: int, data: BookingUpdate) -> Booking:
        booking = self.get_booking(booking_id)
        provided = data.model_dump(exclude_unset=True)
        updates = {BOOKING_FIELD_MAP[field]: value for field, value in provided.items()}
        if "status" in updates:
            updates.update(status_timestamps(updates["status"], datetime.utcnow()))
        return self.repo.update_booking(self.db, booking, **updates)

    def delete_booking(self, booking_id: int) -> dict:
        booking = self.get_booking(booking_id)
        self.repo.delete_booking(self.db, booking)
        logger.info(f"🗑️ Deleted booking {booking_id}")
        return {"message": "Booking deleted"}

    async def update_booking_status(
        self, booking_id: int, status: str, cancellation_reason: Optional[str] = None
    ) -> Booking:
        """
        Move a booking to any status.

        Completing a booking closes the CRM deal and, for the client's first
        completed visit, awards the first-booking points.
        """
        booking = self.get_booking(booking_id)

        updates = {"status": status, **status_timestamps(status, datetime.utcnow())}
        if status == "cancelled" and cancellation_reason:
            updates["cancellation_reason"] = cancellation_reason
        booking = self.repo.update_booking(self.db, booking, **updates)
        logger.info(f"📋 Booking {booking_id} status -> {status}")

        if status == "completed":
            await zoho_service.update_zoho_deal_stage(self.db, booking.id, "Closed Won")

            loyalty = LoyaltyService(self.db)
            if self.repo.count_completed_for_client(
                self.db, booking.client_id
            ) == 1 and not loyalty.repo.has_transaction(self.db, booking.client_id, "first_booking"):
                loyalty.award_points(
                    booking.client_id,
                    POINTS_FIRST_BOOKING,
                    "first_booking",
                    "First appointment completed",
                    reference_id=str(booking.id),
                )

        return booking

    def get_select_options(self) -> dict:
        """Choices for the admin booking form"""
        return {
            "clients": [
                {"id": c.id, "name": c.full_name or c.email} for c in self.repo.get_client_options(self.db)
            ],
            "services": [
                {
                    "id": s.id,
                    "name": s.name,
                    "category": s.category,
                    "durationMinutes": s.duration_minutes or DEFAULT_DURATION_MINUTES,
                    "priceInCents": s.price_in_cents or 0,
                }
                for s in self.repo.get_service_options(self.db)
            ],
            "staff": [{"id": p.id, "name": p.full_name or p.email} for p in self.repo.get_staff_options(self.db)],
        }

    async def create_payment_link(self, booking_id: int, link_type: str) -> dict:
        """Square quick-pay link for a booking deposit or remaining balance"""
        if not square_service.is_square_configured():
            raise HTTPException(status_code=503, detail="Square is not configured")

        booking = self.get_booking(booking_id)
        service_name = booking.service.name if booking.service else "Appointment"

        if link_type == "deposit":
            amount = booking.service.deposit_in_cents if booking.service else None
            if not amount:
                raise HTTPException(status_code=400, detail="This service has no deposit")
        else:
            amount = self._balance_due(booking)

        try:
            link = await square_service.create_square_payment_link(booking.id, service_name, amount, link_type)
        except Exception as e:
            logger.error(f"❌ Square payment link failed for booking {booking_id}: {e}")
            log_sync(
                self.db,
                provider="square",
                status="failed",
                entity_type="payment_link",
                local_id=str(booking_id),
                error_message=str(e),
            )
            raise HTTPException(status_code=502, detail="Failed to create payment link") from e

        self.repo.update_booking(self.db, booking, square_order_id=link["order_id"])
        log_sync(
            self.db,
            provider="square",
            status="success",
            entity_type="payment_link",
            local_id=str(booking_id),
            remote_id=link["order_id"],
            message=f"Created {link_type} payment link for ${amount / 100:.2f}",
            payload={"url": link["url"], "type": link_type},
        )
        return {"url": link["url"], "orderId": link["order_id"], "amountInCents": amount}

    async def create_terminal_order(self, booking_id: int) -> dict:
        """
        Square order for collecting the balance in person on the Terminal.

        The order's reference_id carries the booking id, which is how the
        webhook finds the booking when the Terminal payment completes.
        """
        if not square_service.is_square_configured():
            raise HTTPException(status_code=503, detail="Square is not configured")

        booking = self.get_booking(booking_id)
        amount = self._balance_due(booking)
        service_name = booking.service.name if booking.service else "Appointment"
        client_name = (booking.client.full_name if booking.client else "") or None

        try:
            order_id = await square_service.create_square_order(booking.id, service_name, amount, client_name)
        except Exception as e:
            logger.error(f"❌ Square Terminal order failed for booking {booking_id}: {e}")
            log_sync(
                self.db,
                provider="square",
                status="failed",
                entity_type="order",
                local_id=str(booking_id),
                error_message=str(e),
            )
            raise HTTPException(status_code=502, detail="Failed to create Square order") from e

        self.repo.update_booking(self.db, booking, square_order_id=order_id)
        log_sync(
            self.db,
            provider="square",
            status="success",
            entity_type="order",
            local_id=str(booking_id),
            remote_id=order_id,
            message=f"Created Terminal order for ${amount / 100:.2f}",
        )
        return {"orderId": order_id, "amountInCents": amount}

    @staticmethod
    def _balance_due(booking: Booking) -> int:
        amount = booking.total_in_cents - (booking.discount_in_cents or 0) - (booking.deposit_paid_in_cents or 0)
        if amount <= 0:
            raise HTTPException(status_code=400, detail="Nothing left to pay on this booking")
        return amount

    # ========================================================================
    # ASSISTANT
    # ========================================================================

    def get_assistant_bookings(self, staff_id: str, now: Optional[datetime] = None) -> dict:
        now = now or datetime.utcnow()
        today = now.date()

        rows = []
        for b in self.repo.get_bookings_for_staff(self.db, staff_id):
            first_name = (b.client.first_name if b.client else "") or ""
            last_name = (b.client.last_name if b.client else "") or ""
            rows.append(
                {
                    "id": b.id,
                    "date": b.starts_at.strftime("%Y-%m-%d"),
                    "dayLabel": format_day_label(b.starts_at, today),
                    "time": format_time(b.starts_at),
                    "service": b.service.name if b.service else "Service",
                    "category": (b.service.category if b.service else None) or DEFAULT_CATEGORY,
                    "client": f"{first_name} {last_name[:1]}.".strip(),
                    "clientInitials": get_initials(first_name, last_name),
                    "clientPhone": b.client.phone if b.client else None,
                    "status": b.status,
                    "durationMin": b.duration_minutes,
                    "price": b.total_in_cents / 100,
                    "notes": b.staff_notes or b.client_notes,
                    "_starts_at": b.starts_at,
                }
            )

        upcoming = [r for r in rows if r["status"] in UPCOMING_STATUSES and r["_starts_at"] > now]
        completed = [r for r in rows if r["status"] == "completed"]
        for r in rows:
            del r["_starts_at"]

        return {
            "bookings": rows,
            "stats": {
                "upcomingCount": len(upcoming),
                "completedCount": len(completed),
                "completedRevenue": sum(r["price"] for r in completed),
            },
        }

    # ========================================================================
    # CLIENT
    # ========================================================================

    def get_client_bookings(self, client_id: str) -> dict:
        bookings = self.repo.get_bookings_for_client(self.db, client_id)
        reviewed = self.repo.get_reviewed_booking_ids(self.db, client_id, [b.id for b in bookings])

        return {
            "bookings": [
                {
                    "id": b.id,
                    "dateISO": b.starts_at.strftime("%Y-%m-%d"),
                    "date": b.starts_at.strftime("%a, %b %-d, %Y"),
                    "time": format_time(b.starts_at),
                    "service": b.service.name if b.service else "Service",
                    "category": (b.service.category if b.service else None) or DEFAULT_CATEGORY,
                    "assistant": (b.staff.first_name if b.staff else None) or "Staff",
                    "durationMin": b.duration_minutes,
                    "price": b.total_in_cents / 100,
                    "status": client_display_status(b.status),
                    "notes": b.client_notes,
                    "location": b.location,
                    "addOns": [{"name": a.add_on_name, "priceInCents": a.price_in_cents} for a in b.add_ons],
                    "reviewLeft": b.id in reviewed,
                }
                for b in bookings
            ]
        }

    def _get_own_booking(self, client_id: str, booking_id: int) -> Booking:
        booking = self.repo.get_booking_by_id(self.db, booking_id)
        if not booking or booking.client_id != client_id:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    def cancel_client_booking(self, client_id: str, booking_id: int) -> dict:
        booking = self._get_own_booking(client_id, booking_id)
        if booking.status not in ("pending", "confirmed"):
            raise HTTPException(status_code=400, detail="This booking cannot be cancelled")

        self.repo.update_booking(
            self.db,
            booking,
            status="cancelled",
            cancelled_at=datetime.utcnow(),
            cancellation_reason="Cancelled by client",
        )
        logger.info(f"🚫 Client {client_id} cancelled booking {booking_id}")
        return {"success": True}

    def submit_client_review(self, client: Profile, booking_id: int, rating: int, comment: Optional[str]) -> dict:
        booking = self._get_own_booking(client.id, booking_id)

        if self.repo.get_review_for_booking(self.db, client.id, booking_id):
            raise HTTPException(status_code=400, detail="Review already submitted")

        review = self.repo.create_review(
            self.db,
            booking_id=booking_id,
            client_id=client.id,
            source="website",
            rating=rating,
            body=comment or None,
            service_name=booking.service.name if booking.service else "Service",
            status="pending",
        )
        LoyaltyService(self.db).award_once(
            client.id, POINTS_REVIEW, "review", "Left a review", reference_id=str(booking.id)
        )
        logger.info(f"⭐ Review {review.id} submitted for booking {booking_id}")
        return {"success": True, "reviewId": review.id}
