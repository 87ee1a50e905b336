"""
Email Service using Resend
Compiles MJML templates to HTML and records every send in the sync log
"""

import logging
from datetime import datetime
from typing import Optional

import resend
from mjml import mjml_to_html
from sqlalchemy.orm import Session

from .config import RESEND_API_KEY, RESEND_FROM
from .email_templates import (
    birthday_greeting_template,
    booking_reminder_template,
    invite_template,
    order_confirmation_template,
    order_status_update_template,
    payment_receipt_template,
    review_request_template,
)
from .models import Profile
from .services.sync_log import log_sync

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def is_resend_configured() -> bool:
    return bool(RESEND_API_KEY)


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml-python returns an object exposing .html and .errors
        errors = getattr(result, "errors", None)
        if errors:
            logger.warning(f"MJML compilation warnings: {errors}")
        return getattr(result, "html", None) or str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


def get_email_recipient(db: Session, profile_id: Optional[str]) -> Optional[tuple[str, str]]:
    """
    Return (email, first_name) for a profile that accepts transactional email.

    None when the profile is missing, has no address, or turned off
    email notifications.
    """
    if not profile_id:
        return None
    profile = db.query(Profile).filter(Profile.id == profile_id).first()
    if not profile or not profile.email or not profile.notify_email:
        return None
    return profile.email, profile.first_name or "there"


async def send_email(
    db: Session,
    to: str,
    subject: str,
    mjml_content: str,
    entity_type: str,
    local_id: str,
) -> bool:
    """
    Send an email via Resend.

    Never raises: returns True on success, False when Resend is not configured
    or the send failed. Every attempt is written to sync_log (provider resend).
    """
    if not is_resend_configured():
        logger.warning(f"⚠️ Resend not configured - skipping email: {subject}")
        return False

    try:
        html_content = compile_mjml_to_html(mjml_content)
        logger.info(f"📧 Sending {entity_type} email via Resend to: {to}")
        response = resend.Emails.send(
            {
                "from": RESEND_FROM,
                "to": [to],
                "subject": subject,
                "html": html_content,
            }
        )
        resend_id = response.get("id") if isinstance(response, dict) else None
        log_sync(
            db,
            provider="resend",
            status="success",
            entity_type=entity_type,
            local_id=local_id,
            remote_id=resend_id,
            message=f"Sent {entity_type} to {to}",
            payload={"to": to, "subject": subject, "resendId": resend_id},
        )
        logger.info(f"✅ Email sent successfully via Resend: {resend_id}")
        return True
    except Exception as e:
        logger.error(f"❌ Email send error to {to}: {e}")
        log_sync(
            db,
            provider="resend",
            status="failed",
            entity_type=entity_type,
            local_id=local_id,
            message=f"Failed to send {entity_type} to {to}",
            error_message=str(e),
        )
        return False


# ============================================
# Pre-built emails for common events
# ============================================


async def send_order_confirmation(
    db: Session,
    client_id: str,
    order_number: str,
    items: list[dict],
    total_in_cents: int,
    fulfillment_method: str,
    payment_url: Optional[str] = None,
) -> bool:
    recipient = get_email_recipient(db, client_id)
    if not recipient:
        return False
    email, first_name = recipient
    return await send_email(
        db,
        to=email,
        subject=f"Order {order_number} confirmed - T Creative",
        mjml_content=order_confirmation_template(
            first_name, order_number, items, total_in_cents, fulfillment_method, payment_url
        ),
        entity_type="order_confirmation",
        local_id=order_number,
    )


ORDER_STATUS_SUBJECTS = {
    "in_progress": "Payment received for order {order_number} - T Creative",
    "ready_for_pickup": "Order {order_number} ready for pickup - T Creative",
    "completed": "Order {order_number} completed - T Creative",
}


async def send_order_status_update(
    db: Session, client_id: Optional[str], order_id: int, order_number: str, title: str, status: str
) -> bool:
    recipient = get_email_recipient(db, client_id)
    if not recipient:
        return False
    email, first_name = recipient
    return await send_email(
        db,
        to=email,
        subject=ORDER_STATUS_SUBJECTS.get(status, "Order {order_number} update - T Creative").format(
            order_number=order_number
        ),
        mjml_content=order_status_update_template(first_name, order_number, title, status),
        entity_type="order_status_update",
        local_id=str(order_id),
    )


async def send_booking_reminder(
    db: Session,
    client_id: str,
    booking_id: int,
    service_name: str,
    starts_at: datetime,
    duration_minutes: int,
    location: Optional[str],
    label: str,
    hours_until: int,
) -> bool:
    recipient = get_email_recipient(db, client_id)
    if not recipient:
        return False
    email, first_name = recipient
    starts_at_label = starts_at.strftime("%A, %B %-d at %-I:%M %p")
    return await send_email(
        db,
        to=email,
        subject=f"Reminder: {service_name} {'tomorrow' if hours_until <= 24 else 'in 2 days'}",
        mjml_content=booking_reminder_template(
            first_name, service_name, starts_at_label, duration_minutes, location, hours_until
        ),
        entity_type=f"booking_reminder_{label}",
        local_id=str(booking_id),
    )


async def send_review_request(db: Session, client_id: str, booking_id: int, service_name: str) -> bool:
    recipient = get_email_recipient(db, client_id)
    if not recipient:
        return False
    email, first_name = recipient
    return await send_email(
        db,
        to=email,
        subject=f"How was your {service_name}?",
        mjml_content=review_request_template(first_name, service_name, booking_id),
        entity_type="review_request",
        local_id=str(booking_id),
    )


async def send_payment_receipt(
    db: Session,
    client_id: str,
    booking_id: int,
    service_name: str,
    amount_in_cents: int,
    tip_in_cents: int,
    receipt_url: Optional[str],
    is_deposit: bool = False,
) -> bool:
    recipient = get_email_recipient(db, client_id)
    if not recipient:
        return False
    email, first_name = recipient
    return await send_email(
        db,
        to=email,
        subject=f"Payment received - {service_name}",
        mjml_content=payment_receipt_template(
            first_name, service_name, amount_in_cents, tip_in_cents, receipt_url, is_deposit
        ),
        entity_type="payment_receipt",
        local_id=str(booking_id),
    )


async def send_birthday_greeting(db: Session, profile: Profile, year: int) -> bool:
    return await send_email(
        db,
        to=profile.email,
        subject=f"Happy Birthday, {profile.first_name}!",
        mjml_content=birthday_greeting_template(profile.first_name or "there"),
        entity_type="birthday_greeting",
        local_id=f"{profile.id}-{year}",
    )


async def send_invite_email(db: Session, email: str, invite_url: str) -> bool:
    return await send_email(
        db,
        to=email,
        subject="You're invited to join T Creative Studio",
        mjml_content=invite_template(invite_url, email),
        entity_type="invite",
        local_id=email,
    )
