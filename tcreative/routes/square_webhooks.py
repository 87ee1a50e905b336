"""
Square Webhook Handler
Links Terminal and payment-link payments to bookings and shop orders, and applies refunds.

Every event is stored in webhook_events before processing so that Square
retries are idempotent. Once the row exists the endpoint always answers 200;
processing failures are kept on the row for replay.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .. import email_service
from ..config import SQUARE_WEBHOOK_SIGNATURE_KEY, SQUARE_WEBHOOK_URL
from ..database import get_db
from ..models import Booking, Order, Payment, WebhookEvent
from ..services import square_service, zoho_books_service
from ..services.sync_log import log_sync
from ..webhook_security import verify_square_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])

TENDER_METHODS = {
    "CARD": "square_card",
    "CASH": "square_cash",
    "WALLET": "square_wallet",
    "SQUARE_GIFT_CARD": "square_gift_card",
}


def map_tender_type(tender_type: Optional[str]) -> str:
    return TENDER_METHODS.get(tender_type or "", "square_other")


def payment_method(square_payment: dict) -> Optional[str]:
    """Method from the first tender, falling back to the payment's source type"""
    tenders = square_payment.get("tenders") or []
    if tenders and tenders[0].get("type"):
        return map_tender_type(tenders[0]["type"])
    if square_payment.get("source_type"):
        return map_tender_type(square_payment["source_type"])
    return None


def money_amount(money: Optional[dict]) -> int:
    return int((money or {}).get("amount") or 0)


def parse_square_timestamp(value: Optional[str]) -> datetime:
    if not value:
        return datetime.utcnow()
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.utcnow()
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


# ============================================================================
# LOOKUPS
# ============================================================================


def find_booking_by_square_order(db: Session, square_order_id: Optional[str]) -> Optional[Booking]:
    if not square_order_id:
        return None
    return db.query(Booking).filter(Booking.square_order_id == square_order_id).first()


async def find_booking_by_order_reference(db: Session, square_order_id: Optional[str]) -> Optional[Booking]:
    """Terminal checkouts carry the booking id in the Square order's reference_id"""
    if not square_order_id or not square_service.is_square_configured():
        return None

    try:
        order = await square_service.get_square_order(square_order_id)
    except Exception as e:
        logger.warning(f"⚠️ Could not fetch Square order {square_order_id}: {e}")
        return None

    reference_id = order.get("reference_id")
    if reference_id and str(reference_id).isdigit():
        return db.query(Booking).filter(Booking.id == int(reference_id)).first()
    return None


def find_orders_by_square_order(db: Session, square_order_id: Optional[str]) -> list[Order]:
    if not square_order_id:
        return []
    return db.query(Order).filter(Order.square_order_id == square_order_id).order_by(Order.id).all()


# ============================================================================
# EVENT PROCESSORS
# ============================================================================


async def handle_payment_completed(db: Session, data: dict) -> str:
    square_payment = (data.get("object") or {}).get("payment") or {}
    square_payment_id = square_payment.get("id")
    if not square_payment_id:
        return "No payment ID in event"

    square_order_id = square_payment.get("order_id")
    receipt_url = square_payment.get("receipt_url")

    existing = db.query(Payment).filter(Payment.square_payment_id == square_payment_id).first()
    if existing:
        existing.status = "paid"
        existing.paid_at = parse_square_timestamp(square_payment.get("updated_at"))
        existing.square_receipt_url = receipt_url
        existing.square_order_id = square_order_id
        db.commit()
        return f"Updated existing payment #{existing.id}"

    # Order ids stored locally win over the Terminal reference lookup
    booking = find_booking_by_square_order(db, square_order_id)
    if booking:
        return await link_booking_payment(db, booking, square_payment)

    orders = find_orders_by_square_order(db, square_order_id)
    if orders:
        return await link_shop_order_payment(db, orders, square_payment)

    booking = await find_booking_by_order_reference(db, square_order_id)
    if booking:
        return await link_booking_payment(db, booking, square_payment)

    log_sync(
        db,
        provider="square",
        direction="inbound",
        status="skipped",
        entity_type="payment",
        remote_id=square_payment_id,
        message="Payment received but no matching booking or order found — needs manual linking",
        payload={
            "squarePaymentId": square_payment_id,
            "squareOrderId": square_order_id,
            "amount": square_payment.get("amount_money"),
        },
    )
    return "No matching booking or order — logged for manual linking"


async def link_booking_payment(db: Session, booking: Booking, square_payment: dict) -> str:
    square_payment_id = square_payment["id"]
    receipt_url = square_payment.get("receipt_url")
    amount = money_amount(square_payment.get("amount_money"))
    tip = money_amount(square_payment.get("tip_money"))
    is_deposit = "(deposit)" in (square_payment.get("note") or "")

    db.add(
        Payment(
            booking_id=booking.id,
            client_id=booking.client_id,
            amount_in_cents=amount,
            tip_in_cents=tip,
            method=payment_method(square_payment) or "square_other",
            status="paid",
            paid_at=datetime.utcnow(),
            square_payment_id=square_payment_id,
            square_order_id=square_payment.get("order_id"),
            square_receipt_url=receipt_url,
            notes="Deposit collected via Square" if is_deposit else "Auto-linked via Square order",
        )
    )
    if is_deposit:
        booking.deposit_paid_in_cents = amount
        booking.deposit_paid_at = datetime.utcnow()
    db.commit()
    logger.info(f"💰 Linked Square payment {square_payment_id} to booking {booking.id}")

    service_name = booking.service.name if booking.service else "Appointment"
    try:
        await email_service.send_payment_receipt(
            db, booking.client_id, booking.id, service_name, amount, tip, receipt_url, is_deposit
        )
    except Exception as e:
        logger.warning(f"⚠️ Payment receipt email failed for booking {booking.id}: {e}")

    if booking.zoho_invoice_id:
        await zoho_books_service.record_zoho_books_payment(
            db,
            booking.zoho_invoice_id,
            amount,
            square_payment_id,
            "Deposit via Square" if is_deposit else "Payment via Square",
        )

    return f"Auto-linked payment to booking #{booking.id}{' (deposit)' if is_deposit else ''}"


async def link_shop_order_payment(db: Session, orders: list[Order], square_payment: dict) -> str:
    """Every row of a multi-item checkout shares the Square order and moves together"""
    square_payment_id = square_payment["id"]
    for order in orders:
        order.status = "in_progress"
    db.commit()
    first_order = orders[0]
    order_number = first_order.order_number.rsplit("-", 1)[0]
    logger.info(f"💰 Linked Square payment {square_payment_id} to shop order {order_number}")

    try:
        await email_service.send_order_status_update(
            db,
            first_order.client_id,
            first_order.id,
            order_number,
            ", ".join(o.title for o in orders),
            "in_progress",
        )
    except Exception as e:
        logger.warning(f"⚠️ Order payment email failed for order {first_order.id}: {e}")

    if first_order.zoho_invoice_id:
        await zoho_books_service.record_zoho_books_payment(
            db,
            first_order.zoho_invoice_id,
            money_amount(square_payment.get("amount_money")),
            square_payment_id,
            "Order payment via Square",
        )

    return f"Auto-linked payment to product order #{first_order.id}"


def handle_payment_updated(db: Session, data: dict) -> str:
    square_payment = (data.get("object") or {}).get("payment") or {}
    if not square_payment.get("id"):
        return "No payment ID in event"

    existing = db.query(Payment).filter(Payment.square_payment_id == square_payment["id"]).first()
    if not existing:
        return "No matching local payment found"

    if square_payment.get("receipt_url"):
        existing.square_receipt_url = square_payment["receipt_url"]
    if square_payment.get("order_id"):
        existing.square_order_id = square_payment["order_id"]
    method = payment_method(square_payment)
    if method:
        existing.method = method
    db.commit()
    return f"Updated payment #{existing.id}"


def handle_refund_event(db: Session, data: dict) -> str:
    refund = (data.get("object") or {}).get("refund") or {}
    if not refund.get("payment_id"):
        return "No payment ID in refund event"

    existing = db.query(Payment).filter(Payment.square_payment_id == refund["payment_id"]).first()
    if not existing:
        return "No matching local payment for refund"

    refund_amount = money_amount(refund.get("amount_money"))
    refunded_total = (existing.refunded_in_cents or 0) + refund_amount
    existing.refunded_in_cents = refunded_total
    existing.refunded_at = datetime.utcnow()
    existing.status = "refunded" if refunded_total >= existing.amount_in_cents else "partially_refunded"
    db.commit()
    logger.info(f"↩️ Refund of {refund_amount} cents applied to payment {existing.id}")
    return f"Refund of ${refund_amount / 100:.2f} applied to payment #{existing.id}"


async def process_event(db: Session, event_type: str, data: dict) -> tuple[str, str]:
    """Returns (sync status, result message)"""
    if event_type == "payment.completed":
        return "success", await handle_payment_completed(db, data)
    if event_type == "payment.updated":
        status = ((data.get("object") or {}).get("payment") or {}).get("status")
        if status == "COMPLETED":
            return "success", await handle_payment_completed(db, data)
        return "success", handle_payment_updated(db, data)
    if event_type in ("refund.created", "refund.updated"):
        return "success", handle_refund_event(db, data)
    return "skipped", f"Event type {event_type} not handled"


def store_event(db: Session, event_id: Optional[str], event_type: str, event: dict) -> WebhookEvent:
    """Insert the raw event, or bump attempts when Square retries one that failed"""
    if event_id:
        existing = (
            db.query(WebhookEvent)
            .filter(WebhookEvent.provider == "square", WebhookEvent.external_event_id == event_id)
            .first()
        )
        if existing:
            existing.attempts = (existing.attempts or 0) + 1
            existing.payload = event
            db.commit()
            return existing

    row = WebhookEvent(
        provider="square",
        external_event_id=event_id or f"unknown-{datetime.utcnow().timestamp()}",
        event_type=event_type,
        payload=event,
        is_processed=False,
        attempts=1,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


# ============================================================================
# ROUTE
# ============================================================================


@router.post("/square")
async def handle_square_webhook(request: Request, db: Session = Depends(get_db)):
    body = await request.body()
    signature = request.headers.get("x-square-hmacsha256-signature", "")
    notification_url = SQUARE_WEBHOOK_URL or str(request.url)

    if SQUARE_WEBHOOK_SIGNATURE_KEY:
        if not verify_square_signature(SQUARE_WEBHOOK_SIGNATURE_KEY, body, signature, notification_url):
            logger.error("❌ Invalid Square webhook signature")
            raise HTTPException(status_code=403, detail="Invalid signature")
    else:
        logger.warning("⚠️ SQUARE_WEBHOOK_SIGNATURE_KEY not configured, skipping verification")

    try:
        event: dict[str, Any] = json.loads(body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.error("❌ Invalid JSON payload")
        raise HTTPException(status_code=400, detail="Invalid JSON") from None
    if not isinstance(event, dict):
        logger.error(f"❌ Square webhook body is a JSON {type(event).__name__}, expected an object")
        raise HTTPException(status_code=400, detail="Invalid JSON")

    event_id = event.get("event_id")
    event_type = event.get("type") or "unknown"
    logger.info(f"📥 Received Square webhook: {event_type} ({event_id})")

    if event_id:
        processed = (
            db.query(WebhookEvent.id)
            .filter(
                WebhookEvent.provider == "square",
                WebhookEvent.external_event_id == event_id,
                WebhookEvent.is_processed == True,  # noqa: E712
            )
            .first()
        )
        if processed:
            return {"status": "ok", "message": "Already processed"}

    webhook_row = store_event(db, event_id, event_type, event)

    try:
        sync_status, result = await process_event(db, event_type, event.get("data") or {})
        webhook_row.is_processed = True
        webhook_row.processed_at = datetime.utcnow()
        webhook_row.error_message = None
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Square webhook {event_id} processing failed: {e}")
        sync_status, result = "failed", str(e)
        webhook_row.error_message = result
        db.commit()

    log_sync(
        db,
        provider="square",
        direction="inbound",
        status=sync_status,
        entity_type="refund" if event_type.startswith("refund") else "payment",
        remote_id=event_id,
        message=result,
    )
    return {"status": "ok", "message": result}
