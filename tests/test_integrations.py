import asyncio
import json
import uuid
from types import SimpleNamespace

import httpx
import pytest

from tcreative.models import SyncLog
from tcreative.services import square_service, zoho_books_service, zoho_service


def route_http(monkeypatch, handler):
    """Send every httpx.AsyncClient request to handler instead of the network"""
    real_client = httpx.AsyncClient

    def mocked_client(*args, **kwargs):
        return real_client(*args, transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", mocked_client)


# ============================================================================
# SQUARE
# ============================================================================


@pytest.fixture
def square_api(monkeypatch):
    monkeypatch.setattr(square_service, "SQUARE_ACCESS_TOKEN", "sq-token")
    monkeypatch.setattr(square_service, "SQUARE_LOCATION_ID", "LOC-STUDIO")
    api = SimpleNamespace(sent=[], reply=(200, {}))

    def handler(request):
        api.sent.append(request)
        status, body = api.reply
        return httpx.Response(status, json=body)

    route_http(monkeypatch, handler)
    return api


def test_square_order_carries_booking_reference(square_api):
    square_api.reply = (200, {"order": {"id": "sq-order-9"}})

    order_id = asyncio.run(square_service.create_square_order(42, "Classic Lash Set", 9000, "Maya Lopez"))
    assert order_id == "sq-order-9"

    request = square_api.sent[0]
    assert request.method == "POST"
    assert str(request.url) == f"{square_service.SQUARE_API_URL}/orders"
    assert request.headers["Square-Version"] == "2024-12-18"
    assert request.headers["Authorization"] == "Bearer sq-token"

    body = json.loads(request.content)
    assert uuid.UUID(body["idempotency_key"]).version == 4
    order = body["order"]
    assert order["location_id"] == "LOC-STUDIO"
    assert order["reference_id"] == "42"
    assert order["line_items"] == [
        {"name": "Classic Lash Set", "quantity": "1", "base_price_money": {"amount": 9000, "currency": "USD"}}
    ]
    assert order["metadata"] == {"bookingId": "42", "clientName": "Maya Lopez"}


def test_each_square_call_gets_a_new_idempotency_key(square_api):
    square_api.reply = (200, {"order": {"id": "sq-order-9"}})
    asyncio.run(square_service.create_square_order(1, "Fill", 5000))
    asyncio.run(square_service.create_square_order(1, "Fill", 5000))

    keys = {json.loads(request.content)["idempotency_key"] for request in square_api.sent}
    assert len(keys) == 2


def test_square_order_without_id_is_an_error(square_api):
    square_api.reply = (200, {"order": {}})
    with pytest.raises(square_service.SquareError):
        asyncio.run(square_service.create_square_order(1, "Fill", 5000))


def test_square_http_error_is_raised(square_api):
    square_api.reply = (400, {"errors": [{"code": "INVALID_VALUE"}]})
    with pytest.raises(square_service.SquareError, match="400"):
        asyncio.run(square_service.create_square_payment_link(1, "Fill", 5000, "deposit"))


def test_unconfigured_square_never_calls_out(square_api, monkeypatch):
    monkeypatch.setattr(square_service, "SQUARE_ACCESS_TOKEN", None)
    with pytest.raises(square_service.SquareError, match="not configured"):
        asyncio.run(square_service.create_square_order(1, "Fill", 5000))
    assert square_api.sent == []


def test_shop_payment_link_prices_each_unit(square_api):
    square_api.reply = (200, {"payment_link": {"url": "https://square.link/u/shop", "order_id": "sq-order-3"}})

    result = asyncio.run(
        square_service.create_square_order_payment_link(
            "TC-ORD-7Q2K", [{"name": "Lash Cleanser", "quantity": 2, "amount_in_cents": 5000}]
        )
    )
    assert result == {"url": "https://square.link/u/shop", "order_id": "sq-order-3"}

    body = json.loads(square_api.sent[0].content)
    assert body["order"]["reference_id"] == "TC-ORD-7Q2K"
    assert body["order"]["line_items"][0]["quantity"] == "2"
    assert body["order"]["line_items"][0]["base_price_money"] == {"amount": 2500, "currency": "USD"}
    assert body["payment_note"] == "Order TC-ORD-7Q2K"


# ============================================================================
# ZOHO
# ============================================================================


@pytest.fixture
def zoho_api(monkeypatch):
    """Configured Zoho with a controllable clock and canned responses per (method, path)"""
    monkeypatch.setattr(zoho_service, "ZOHO_CLIENT_ID", "zoho-client")
    monkeypatch.setattr(zoho_service, "ZOHO_CLIENT_SECRET", "zoho-secret")
    monkeypatch.setattr(zoho_service, "ZOHO_REFRESH_TOKEN", "zoho-refresh")
    monkeypatch.setattr(zoho_books_service, "ZOHO_BOOKS_ORGANIZATION_ID", "org-1")
    monkeypatch.setattr(zoho_service, "_access_token", None)
    monkeypatch.setattr(zoho_service, "_token_expires_at", 0)

    api = SimpleNamespace(sent=[], token_refreshes=0, routes={}, now=1_000_000.0)
    monkeypatch.setattr(zoho_service, "time", SimpleNamespace(time=lambda: api.now))

    def handler(request):
        if request.url.path == "/oauth/v2/token":
            api.token_refreshes += 1
            return httpx.Response(200, json={"access_token": f"tok-{api.token_refreshes}", "expires_in": 3600})
        api.sent.append(request)
        status, body = api.routes.get((request.method, request.url.path), (200, {}))
        return httpx.Response(status, json=body)

    route_http(monkeypatch, handler)
    return api


def sent_json(api, method, path):
    return [json.loads(r.content) for r in api.sent if r.method == method and r.url.path == path]


def test_zoho_token_is_reused_until_five_minutes_before_expiry(zoho_api):
    assert asyncio.run(zoho_service.get_zoho_access_token()) == "tok-1"

    zoho_api.now += 3600 - 300 - 1
    assert asyncio.run(zoho_service.get_zoho_access_token()) == "tok-1"
    assert zoho_api.token_refreshes == 1

    zoho_api.now += 1
    assert asyncio.run(zoho_service.get_zoho_access_token()) == "tok-2"
    assert zoho_api.token_refreshes == 2


def test_zoho_requests_send_the_oauth_token(zoho_api):
    asyncio.run(zoho_service.zoho_request("/crm/v7", "/Contacts"))
    assert zoho_api.sent[0].headers["Authorization"] == "Zoho-oauthtoken tok-1"
    assert str(zoho_api.sent[0].url) == f"{zoho_service.ZOHO_API_DOMAIN}/crm/v7/Contacts"


def test_deal_amount_is_sent_in_dollars(zoho_api, db, customer, make_service, make_booking):
    customer.zoho_contact_id = "zc-7"
    db.commit()
    booking = make_booking(customer, make_service())
    zoho_api.routes[("POST", "/crm/v7/Deals")] = (201, {"data": [{"details": {"id": "zd-1"}}]})

    asyncio.run(
        zoho_service.create_zoho_deal(
            db, customer.email, "Classic Lash Set - Maya", "Booked", amount_in_cents=12050, booking_id=booking.id
        )
    )

    deal = sent_json(zoho_api, "POST", "/crm/v7/Deals")[0]["data"][0]
    assert deal["Amount"] == 120.5
    assert deal["Contact_Name"] == {"id": "zc-7"}
    db.refresh(booking)
    assert booking.zoho_project_id == "zd-1"


def test_failed_zoho_call_is_logged_not_raised(zoho_api, db, customer):
    zoho_api.routes[("POST", "/crm/v7/Contacts/upsert")] = (500, {"message": "boom"})

    asyncio.run(zoho_service.upsert_zoho_contact(db, customer))

    log = db.query(SyncLog).filter(SyncLog.entity_type == "contact").one()
    assert log.status == "failed"
    assert "500" in log.error_message


def test_note_is_attached_to_the_crm_contact(zoho_api, db, customer):
    customer.zoho_contact_id = "zc-7"
    db.commit()

    asyncio.run(zoho_service.log_zoho_note(db, customer.id, "Onboarding completed", "Source: instagram"))

    note = sent_json(zoho_api, "POST", "/crm/v7/Notes")[0]["data"][0]
    assert note["Note_Title"] == "Onboarding completed"
    assert note["Note_Content"] == "Source: instagram"
    assert note["Parent_Id"] == {"module": {"api_name": "Contacts"}, "id": "zc-7"}
    log = db.query(SyncLog).filter(SyncLog.entity_type == "note").one()
    assert (log.status, log.remote_id) == ("success", "zc-7")


def test_note_needs_a_crm_contact(zoho_api, db, customer):
    asyncio.run(zoho_service.log_zoho_note(db, customer.id, "Onboarding completed", "Source: instagram"))
    assert zoho_api.sent == []


def test_books_invoice_records_deposit_as_partial_payment(zoho_api, db, customer, make_service, make_booking):
    booking = make_booking(customer, make_service())
    zoho_api.routes.update(
        {
            ("GET", "/books/v3/contacts"): (200, {"contacts": []}),
            ("POST", "/books/v3/contacts"): (201, {"contact": {"contact_id": "bc-1"}}),
            ("POST", "/books/v3/invoices"): (201, {"invoice": {"invoice_id": "inv-1", "invoice_number": "INV-0001"}}),
        }
    )

    asyncio.run(
        zoho_books_service.create_zoho_books_invoice(
            db,
            "booking",
            booking.id,
            customer,
            [{"name": "Classic Lash Set", "rate": 12000, "quantity": 1}],
            deposit_in_cents=3000,
        )
    )

    assert all(r.url.params["organization_id"] == "org-1" for r in zoho_api.sent)
    invoice = sent_json(zoho_api, "POST", "/books/v3/invoices")[0]
    assert invoice["customer_id"] == "bc-1"
    assert invoice["line_items"][0]["rate"] == 120.0
    assert invoice["reference_number"] == f"tc-booking-{booking.id}"
    assert [r.url.path for r in zoho_api.sent if r.method == "POST"][-2:] == [
        "/books/v3/invoices/inv-1/status/sent",
        "/books/v3/customerpayments",
    ]

    payment = sent_json(zoho_api, "POST", "/books/v3/customerpayments")[0]
    assert payment["amount"] == 30.0
    assert payment["invoices"] == [{"invoice_id": "inv-1", "amount_applied": 30.0}]

    db.refresh(booking)
    db.refresh(customer)
    assert booking.zoho_invoice_id == "inv-1"
    assert customer.zoho_customer_id == "bc-1"


def test_books_payment_is_applied_to_invoice(zoho_api, db):
    zoho_api.routes[("GET", "/books/v3/invoices/inv-1")] = (200, {"invoice": {"customer_id": "bc-1"}})

    asyncio.run(zoho_books_service.record_zoho_books_payment(db, "inv-1", 4500, square_payment_id="sq-pay-1"))

    payment = sent_json(zoho_api, "POST", "/books/v3/customerpayments")[0]
    assert payment["customer_id"] == "bc-1"
    assert payment["amount"] == 45.0
    assert payment["reference_number"] == "sq-pay-1"
    log = db.query(SyncLog).filter(SyncLog.entity_type == "books_payment").one()
    assert (log.status, log.local_id) == ("success", "sq-pay-1")
