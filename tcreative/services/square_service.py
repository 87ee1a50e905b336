"""
Square Service
Orders and Checkout (payment link) calls against the studio's Square account
"""

import logging
import uuid
from typing import Any, Optional

import httpx

from ..config import SQUARE_ACCESS_TOKEN, SQUARE_ENVIRONMENT, SQUARE_LOCATION_ID

logger = logging.getLogger(__name__)

if SQUARE_ENVIRONMENT == "production":
    SQUARE_API_URL = "https://connect.squareup.com/v2"
else:
    SQUARE_API_URL = "https://connect.squareupsandbox.com/v2"

SQUARE_API_VERSION = "2024-12-18"


class SquareError(Exception):
    """Raised when a Square API call fails or returns an unexpected body"""

    pass


def is_square_configured() -> bool:
    return bool(SQUARE_ACCESS_TOKEN and SQUARE_LOCATION_ID)


def _headers() -> dict[str, str]:
    return {
        "Square-Version": SQUARE_API_VERSION,
        "Authorization": f"Bearer {SQUARE_ACCESS_TOKEN}",
        "Content-Type": "application/json",
    }


def _money(amount_in_cents: int) -> dict[str, Any]:
    return {"amount": int(amount_in_cents), "currency": "USD"}


async def _square_request(method: str, path: str, payload: Optional[dict] = None) -> dict:
    if not is_square_configured():
        raise SquareError("Square not configured")

    async with httpx.AsyncClient(timeout=30.0) as http_client:
        response = await http_client.request(
            method, f"{SQUARE_API_URL}{path}", json=payload, headers=_headers()
        )

    if response.status_code >= 400:
        logger.error(f"❌ Square {method} {path} failed ({response.status_code}): {response.text}")
        raise SquareError(f"Square {method} {path} failed ({response.status_code}): {response.text}")

    return response.json()


async def create_square_order(
    booking_id: int, service_name: str, amount_in_cents: int, client_name: Optional[str] = None
) -> str:
    """Create a Square order for a booking. reference_id carries the booking id."""
    metadata = {"bookingId": str(booking_id)}
    if client_name:
        metadata["clientName"] = client_name

    data = await _square_request(
        "POST",
        "/orders",
        {
            "idempotency_key": str(uuid.uuid4()),
            "order": {
                "location_id": SQUARE_LOCATION_ID,
                "reference_id": str(booking_id),
                "line_items": [
                    {
                        "name": service_name,
                        "quantity": "1",
                        "base_price_money": _money(amount_in_cents),
                    }
                ],
                "metadata": metadata,
            },
        },
    )
    order_id = (data.get("order") or {}).get("id")
    if not order_id:
        raise SquareError("Square order creation failed - no order ID returned")
    logger.info(f"✅ Square order created for booking {booking_id}: {order_id}")
    return order_id


async def create_square_payment_link(
    booking_id: int, service_name: str, amount_in_cents: int, link_type: str
) -> dict[str, str]:
    """
    Quick-pay link for a booking deposit or balance.

    The payment note "Booking #<id> (<type>)" is how the webhook recognizes
    deposits when the payment comes back.

    Returns {"url", "order_id"}.
    """
    label = f"Deposit - {service_name}" if link_type == "deposit" else service_name
    data = await _square_request(
        "POST",
        "/online-checkout/payment-links",
        {
            "idempotency_key": str(uuid.uuid4()),
            "quick_pay": {
                "name": label,
                "price_money": _money(amount_in_cents),
                "location_id": SQUARE_LOCATION_ID,
            },
            "payment_note": f"Booking #{booking_id} ({link_type})",
        },
    )
    return _payment_link_result(data)


async def create_square_order_payment_link(
    order_number: str, line_items: list[dict[str, Any]]
) -> dict[str, str]:
    """
    Payment link for a multi-item shop order.

    reference_id carries the order number, never a bare integer, so the
    webhook cannot mistake it for a Terminal booking reference.

    line_items: [{"name", "quantity", "amount_in_cents"}] where amount_in_cents
    is the line total.
    """
    order: dict[str, Any] = {
        "location_id": SQUARE_LOCATION_ID,
        "line_items": [
            {
                "name": item["name"],
                "quantity": str(item["quantity"]),
                "base_price_money": _money(item["amount_in_cents"] // item["quantity"]),
            }
            for item in line_items
        ],
        "reference_id": order_number,
        "metadata": {"orderNumber": order_number, "source": "shop"},
    }

    data = await _square_request(
        "POST",
        "/online-checkout/payment-links",
        {
            "idempotency_key": str(uuid.uuid4()),
            "order": order,
            "payment_note": f"Order {order_number}",
        },
    )
    return _payment_link_result(data)


async def get_square_order(order_id: str) -> dict:
    data = await _square_request("GET", f"/orders/{order_id}")
    return data.get("order") or {}


def _payment_link_result(data: dict) -> dict[str, str]:
    link = data.get("payment_link") or {}
    if not link.get("url") or not link.get("order_id"):
        raise SquareError("Payment link creation failed - no URL returned")
    logger.info(f"💰 Square payment link created: {link['url']}")
    return {"url": link["url"], "order_id": link["order_id"]}
