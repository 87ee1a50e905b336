"""
Scheduled client emails: booking reminders, review requests and birthday greetings.

Each job is idempotent. A successful sync_log row for the same entity and
local id means the email already went out, so the jobs can run hourly
without double-sending.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from .. import email_service
from ..models import Booking, Profile
from .sync_log import has_successful_sync

logger = logging.getLogger(__name__)

# (label, hours until the appointment, window start, window end)
REMINDER_WINDOWS = [
    ("24h", 24, 23, 25),
    ("48h", 48, 47, 49),
]

REVIEW_REQUEST_WINDOW_HOURS = (23, 25)


def _wants_email(profile: Optional[Profile]) -> bool:
    return bool(profile and profile.email and profile.notify_email)


async def send_booking_reminders(db: Session, now: Optional[datetime] = None) -> dict:
    """Remind clients of confirmed bookings starting in roughly 24 or 48 hours"""
    now = now or datetime.utcnow()
    sent = failed = skipped = 0

    for label, hours_until, min_hours, max_hours in REMINDER_WINDOWS:
        bookings = (
            db.query(Booking)
            .options(joinedload(Booking.client), joinedload(Booking.service))
            .filter(
                Booking.status == "confirmed",
                Booking.starts_at >= now + timedelta(hours=min_hours),
                Booking.starts_at <= now + timedelta(hours=max_hours),
            )
            .all()
        )

        for booking in bookings:
            entity_type = f"booking_reminder_{label}"
            if not _wants_email(booking.client) or has_successful_sync(db, entity_type, str(booking.id)):
                skipped += 1
                continue

            ok = await email_service.send_booking_reminder(
                db,
                booking.client_id,
                booking.id,
                booking.service.name if booking.service else "Appointment",
                booking.starts_at,
                booking.duration_minutes,
                booking.location,
                label,
                hours_until,
            )
            if ok:
                sent += 1
            else:
                failed += 1

    logger.info(f"⏰ Booking reminders: sent={sent} failed={failed} skipped={skipped}")
    return {"sent": sent, "failed": failed, "skipped": skipped}


async def send_review_requests(db: Session, now: Optional[datetime] = None) -> dict:
    """Ask for a review a day after a booking was completed"""
    now = now or datetime.utcnow()
    min_hours, max_hours = REVIEW_REQUEST_WINDOW_HOURS
    sent = failed = skipped = 0

    bookings = (
        db.query(Booking)
        .options(joinedload(Booking.client), joinedload(Booking.service))
        .filter(
            Booking.status == "completed",
            Booking.completed_at.isnot(None),
            Booking.completed_at >= now - timedelta(hours=max_hours),
            Booking.completed_at <= now - timedelta(hours=min_hours),
        )
        .all()
    )

    for booking in bookings:
        if not _wants_email(booking.client) or has_successful_sync(db, "review_request", str(booking.id)):
            skipped += 1
            continue

        ok = await email_service.send_review_request(
            db, booking.client_id, booking.id, booking.service.name if booking.service else "appointment"
        )
        if ok:
            sent += 1
        else:
            failed += 1

    logger.info(f"⭐ Review requests: sent={sent} failed={failed} skipped={skipped}")
    return {"sent": sent, "failed": failed, "skipped": skipped}


async def send_birthday_greetings(db: Session, today: Optional[datetime] = None) -> dict:
    """Greet active clients whose MM/DD birthday is today, once per year"""
    today = today or datetime.utcnow()
    today_mmdd = today.strftime("%m/%d")
    year = today.year

    # onboarding_data is JSON, so the birthday match happens in Python
    candidates = (
        db.query(Profile)
        .filter(Profile.is_active == True, Profile.notify_email == True)  # noqa: E712
        .filter(Profile.onboarding_data.isnot(None))
        .all()
    )
    matched = [p for p in candidates if (p.onboarding_data or {}).get("birthday") == today_mmdd]

    sent = failed = skipped = 0
    for profile in matched:
        if not profile.email or has_successful_sync(db, "birthday_greeting", f"{profile.id}-{year}"):
            skipped += 1
            continue

        if await email_service.send_birthday_greeting(db, profile, year):
            sent += 1
        else:
            failed += 1

    logger.info(f"🎂 Birthday greetings: matched={len(matched)} sent={sent} failed={failed}")
    return {"matched": len(matched), "sent": sent, "failed": failed, "skipped": skipped}
