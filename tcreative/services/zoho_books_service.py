"""
Zoho Books Service
Customers, invoices and payments. Uses the CRM OAuth token (same Zoho client).
Fire-and-forget like the CRM helpers: nothing here raises to the caller.
"""

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..config import ZOHO_BOOKS_ORGANIZATION_ID
from ..models import Booking, Enrollment, Order, Profile
from .sync_log import log_sync
from .zoho_service import is_zoho_configured, zoho_request

logger = logging.getLogger(__name__)

INVOICE_ENTITY_MODELS = {"booking": Booking, "order": Order, "enrollment": Enrollment}


def is_zoho_books_configured() -> bool:
    return is_zoho_configured() and bool(ZOHO_BOOKS_ORGANIZATION_ID)


async def books_request(path: str, method: str = "GET", body: Optional[dict] = None, params: Optional[dict] = None):
    query = {"organization_id": ZOHO_BOOKS_ORGANIZATION_ID}
    if params:
        query.update(params)
    return await zoho_request("/books/v3", path, method=method, body=body, params=query)


async def ensure_zoho_books_customer(db: Session, profile: Profile) -> Optional[str]:
    """Return the Books customer id for a profile, searching by email then creating it"""
    if not is_zoho_books_configured():
        return None

    if profile.zoho_customer_id:
        return profile.zoho_customer_id

    try:
        search = await books_request("/contacts", params={"email": profile.email})
        contacts = search.get("contacts") or []
        if contacts:
            customer_id = contacts[0]["contact_id"]
            message = f"Found existing customer {profile.email}"
        else:
            body: dict[str, Any] = {
                "contact_name": f"{profile.first_name} {profile.last_name or profile.first_name}",
                "email": profile.email,
                "contact_type": "customer",
            }
            if profile.phone:
                body["phone"] = profile.phone
            created = await books_request("/contacts", method="POST", body=body)
            customer_id = (created.get("contact") or {}).get("contact_id")
            message = f"Created customer {profile.email}"

        if customer_id:
            profile.zoho_customer_id = customer_id
            db.commit()

        log_sync(
            db,
            provider="zoho",
            status="success",
            entity_type="books_customer",
            local_id=profile.id,
            remote_id=customer_id,
            message=message,
        )
        return customer_id
    except Exception as e:
        logger.error(f"❌ Failed to ensure Zoho Books customer: {e}")
        log_sync(
            db,
            provider="zoho",
            status="failed",
            entity_type="books_customer",
            local_id=profile.id,
            error_message=str(e),
        )
        return None


async def create_zoho_books_invoice(
    db: Session,
    entity_type: str,
    entity_id: int,
    profile: Profile,
    line_items: list[dict[str, Any]],
    deposit_in_cents: int = 0,
) -> None:
    """
    Create an invoice for a booking, order or enrollment and mark it sent.

    line_items: [{"name", "description"?, "rate" (cents), "quantity"}]
    A deposit is recorded as a partial payment. The invoice id is stored on
    the source row.
    """
    if not is_zoho_books_configured():
        return

    local_id = f"{entity_type}-{entity_id}"
    try:
        customer_id = await ensure_zoho_books_customer(db, profile)
        if not customer_id:
            return

        result = await books_request(
            "/invoices",
            method="POST",
            body={
                "customer_id": customer_id,
                "line_items": [
                    {
                        "name": item["name"],
                        "description": item.get("description", ""),
                        "rate": item["rate"] / 100,
                        "quantity": item["quantity"],
                    }
                    for item in line_items
                ],
                "is_inclusive_tax": False,
                "notes": f"Auto-generated from T Creative {entity_type} #{entity_id}",
                "reference_number": f"tc-{entity_type}-{entity_id}",
            },
        )
        invoice = result.get("invoice") or {}
        invoice_id = invoice.get("invoice_id")
        if not invoice_id:
            raise ValueError("No invoice_id returned from Zoho Books")

        model = INVOICE_ENTITY_MODELS.get(entity_type)
        if model is not None:
            row = db.query(model).filter(model.id == entity_id).first()
            if row:
                row.zoho_invoice_id = invoice_id
                db.commit()

        try:
            await books_request(f"/invoices/{invoice_id}/status/sent", method="POST")
        except Exception as e:
            # Invoice still exists as a draft
            logger.warning(f"⚠️ Could not mark Zoho invoice {invoice_id} as sent: {e}")

        if deposit_in_cents and deposit_in_cents > 0:
            try:
                await books_request(
                    "/customerpayments",
                    method="POST",
                    body={
                        "customer_id": customer_id,
                        "amount": deposit_in_cents / 100,
                        "date": date.today().isoformat(),
                        "invoices": [{"invoice_id": invoice_id, "amount_applied": deposit_in_cents / 100}],
                        "description": "Deposit collected via Square",
                    },
                )
            except Exception as e:
                logger.warning(f"⚠️ Could not record deposit on Zoho invoice {invoice_id}: {e}")

        log_sync(
            db,
            provider="zoho",
            status="success",
            entity_type="books_invoice",
            local_id=local_id,
            remote_id=invoice_id,
            message=f"Created invoice {invoice.get('invoice_number')} for {entity_type} #{entity_id}",
            payload={"customerId": customer_id, "invoiceId": invoice_id, "lineItemCount": len(line_items)},
        )
    except Exception as e:
        logger.error(f"❌ Failed to create Zoho Books invoice: {e}")
        log_sync(
            db, provider="zoho", status="failed", entity_type="books_invoice", local_id=local_id, error_message=str(e)
        )


async def record_zoho_books_payment(
    db: Session,
    zoho_invoice_id: str,
    amount_in_cents: int,
    square_payment_id: Optional[str] = None,
    description: Optional[str] = None,
) -> None:
    """Apply a payment to an existing invoice (called from the Square webhook)"""
    if not is_zoho_books_configured():
        return

    try:
        invoice_result = await books_request(f"/invoices/{zoho_invoice_id}")
        customer_id = (invoice_result.get("invoice") or {}).get("customer_id")
        if not customer_id:
            raise ValueError(f"Invoice {zoho_invoice_id} not found or missing customer_id")

        body: dict[str, Any] = {
            "customer_id": customer_id,
            "amount": amount_in_cents / 100,
            "date": date.today().isoformat(),
            "invoices": [{"invoice_id": zoho_invoice_id, "amount_applied": amount_in_cents / 100}],
            "description": description or "Payment via Square",
        }
        if square_payment_id:
            body["reference_number"] = square_payment_id
        await books_request("/customerpayments", method="POST", body=body)

        log_sync(
            db,
            provider="zoho",
            status="success",
            entity_type="books_payment",
            local_id=square_payment_id,
            remote_id=zoho_invoice_id,
            message=f"Recorded ${amount_in_cents / 100:.2f} payment against invoice {zoho_invoice_id}",
        )
    except Exception as e:
        logger.error(f"❌ Failed to record Zoho Books payment: {e}")
        log_sync(
            db,
            provider="zoho",
            status="failed",
            entity_type="books_payment",
            local_id=square_payment_id,
            remote_id=zoho_invoice_id,
            error_message=str(e),
        )
