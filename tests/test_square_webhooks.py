import json
from datetime import datetime

import pytest

from tcreative import email_service
from tcreative.models import Order, Payment, SyncLog, WebhookEvent
from tcreative.routes import square_webhooks
from tcreative.routes.square_webhooks import map_tender_type, parse_square_timestamp
from tcreative.services import square_service
from tcreative.webhook_security import compute_hmac_sha256_base64, verify_square_signature

WEBHOOK_URL = "https://api.tcreative.test/api/webhooks/square"


def payment_event(event_id="evt-1", event_type="payment.completed", **payment):
    payment.setdefault("id", "sq-pay-1")
    payment.setdefault("amount_money", {"amount": 3000, "currency": "USD"})
    return {"event_id": event_id, "type": event_type, "data": {"object": {"payment": payment}}}


def refund_event(event_id, payment_id, amount):
    return {
        "event_id": event_id,
        "type": "refund.created",
        "data": {"object": {"refund": {"payment_id": payment_id, "amount_money": {"amount": amount}}}},
    }


@pytest.fixture
def post_event(client):
    def _post(event):
        return client.post("/api/webhooks/square", content=json.dumps(event))

    return _post


def test_tender_mapping():
    assert map_tender_type("CARD") == "square_card"
    assert map_tender_type("SQUARE_GIFT_CARD") == "square_gift_card"
    assert map_tender_type("BANK_ACCOUNT") == "square_other"
    assert map_tender_type(None) == "square_other"


def test_signature_verification_binds_url_and_body():
    body = b'{"event_id":"evt-1"}'
    signature = compute_hmac_sha256_base64("sig-key", WEBHOOK_URL.encode() + body)
    assert verify_square_signature("sig-key", body, signature, WEBHOOK_URL)
    assert not verify_square_signature("sig-key", body, signature, "https://elsewhere.test/hook")
    assert not verify_square_signature("sig-key", body + b" ", signature, WEBHOOK_URL)
    assert not verify_square_signature(None, body, signature, WEBHOOK_URL)


def test_invalid_signature_is_403(client, monkeypatch):
    monkeypatch.setattr(square_webhooks, "SQUARE_WEBHOOK_SIGNATURE_KEY", "sig-key")
    monkeypatch.setattr(square_webhooks, "SQUARE_WEBHOOK_URL", WEBHOOK_URL)
    response = client.post(
        "/api/webhooks/square",
        content=json.dumps(payment_event()),
        headers={"x-square-hmacsha256-signature": "bogus"},
    )
    assert response.status_code == 403


def test_valid_signature_is_accepted(client, monkeypatch):
    monkeypatch.setattr(square_webhooks, "SQUARE_WEBHOOK_SIGNATURE_KEY", "sig-key")
    monkeypatch.setattr(square_webhooks, "SQUARE_WEBHOOK_URL", WEBHOOK_URL)
    body = json.dumps(payment_event()).encode()
    signature = compute_hmac_sha256_base64("sig-key", WEBHOOK_URL.encode() + body)

    response = client.post(
        "/api/webhooks/square", content=body, headers={"x-square-hmacsha256-signature": signature}
    )
    assert response.status_code == 200


def test_invalid_json_is_400(client):
    response = client.post("/api/webhooks/square", content=b"not json")
    assert response.status_code == 400


def test_deposit_payment_links_to_booking(db, post_event, customer, make_service, make_booking, monkeypatch):
    booking = make_booking(customer, make_service(deposit_in_cents=3000), square_order_id="sq-order-1")
    receipts = []

    async def fake_receipt(db_session, client_id, booking_id, service_name, amount, tip, receipt_url, is_deposit):
        receipts.append((booking_id, amount, is_deposit))
        return True

    monkeypatch.setattr(email_service, "send_payment_receipt", fake_receipt)

    response = post_event(
        payment_event(
            order_id="sq-order-1",
            note="Booking #1 (deposit)",
            tenders=[{"type": "CARD"}],
            receipt_url="https://squareup.com/receipt/1",
        )
    )
    assert response.status_code == 200
    assert response.json()["message"] == f"Auto-linked payment to booking #{booking.id} (deposit)"

    payment = db.query(Payment).one()
    assert payment.booking_id == booking.id
    assert payment.method == "square_card"
    assert payment.status == "paid"
    db.refresh(booking)
    assert booking.deposit_paid_in_cents == 3000
    assert receipts == [(booking.id, 3000, True)]

    event_row = db.query(WebhookEvent).one()
    assert event_row.is_processed is True


def test_terminal_payment_found_through_order_reference(
    db, post_event, customer, make_service, make_booking, monkeypatch
):
    booking = make_booking(customer, make_service())

    async def fake_get_order(order_id):
        return {"id": order_id, "reference_id": str(booking.id)}

    monkeypatch.setattr(square_service, "is_square_configured", lambda: True)
    monkeypatch.setattr(square_service, "get_square_order", fake_get_order)

    post_event(payment_event(order_id="sq-terminal-9", source_type="CARD", tip_money={"amount": 500}))

    payment = db.query(Payment).one()
    assert payment.booking_id == booking.id
    assert payment.tip_in_cents == 500
    assert payment.notes == "Auto-linked via Square order"
    db.refresh(booking)
    assert booking.deposit_paid_in_cents is None


def test_payment_for_shop_order_moves_rows_in_progress(db, post_event, customer, monkeypatch):
    db.add_all(
        [
            Order(order_number="ord-k1-1", client_id=customer.id, title="Tote", status="accepted", square_order_id="sq-shop"),
            Order(order_number="ord-k1-2", client_id=customer.id, title="Hat", status="accepted", square_order_id="sq-shop"),
        ]
    )
    db.commit()
    updates = []

    async def fake_status_email(db_session, client_id, order_id, order_number, title, status):
        updates.append((order_number, title, status))
        return True

    monkeypatch.setattr(email_service, "send_order_status_update", fake_status_email)

    post_event(payment_event(order_id="sq-shop"))

    assert {o.status for o in db.query(Order).all()} == {"in_progress"}
    assert updates == [("ord-k1", "Tote, Hat", "in_progress")]


def test_shop_payment_is_not_linked_to_booking_with_same_id(
    db, post_event, customer, make_service, make_booking, monkeypatch
):
    booking = make_booking(customer, make_service())
    order = Order(order_number="ord-k2-5", client_id=customer.id, title="Tote", status="accepted", square_order_id="sq-shop-2")
    db.add(order)
    db.commit()
    assert order.id == booking.id

    async def fake_get_order(order_id):
        return {"id": order_id, "reference_id": str(order.id)}

    async def fake_status_email(*args):
        return True

    monkeypatch.setattr(square_service, "is_square_configured", lambda: True)
    monkeypatch.setattr(square_service, "get_square_order", fake_get_order)
    monkeypatch.setattr(email_service, "send_order_status_update", fake_status_email)

    response = post_event(payment_event(order_id="sq-shop-2"))
    assert response.json()["message"] == f"Auto-linked payment to product order #{order.id}"

    db.refresh(order)
    assert order.status == "in_progress"
    assert db.query(Payment).count() == 0


def test_unmatched_payment_is_logged_for_manual_linking(db, post_event):
    response = post_event(payment_event(order_id="sq-unknown"))
    assert response.json()["message"] == "No matching booking or order — logged for manual linking"
    skipped = db.query(SyncLog).filter(SyncLog.status == "skipped", SyncLog.entity_type == "payment").one()
    assert skipped.remote_id == "sq-pay-1"


def test_duplicate_event_is_acknowledged_once(db, post_event, customer, make_service, make_booking):
    make_booking(customer, make_service(), square_order_id="sq-order-1")
    event = payment_event(event_id="evt-dup", order_id="sq-order-1")

    post_event(event)
    second = post_event(event)

    assert second.json() == {"status": "ok", "message": "Already processed"}
    assert db.query(Payment).count() == 1
    assert db.query(WebhookEvent).count() == 1


def test_existing_payment_is_updated_not_duplicated(db, post_event, customer):
    db.add(Payment(client_id=customer.id, amount_in_cents=3000, status="pending", square_payment_id="sq-pay-1"))
    db.commit()

    response = post_event(payment_event(receipt_url="https://squareup.com/receipt/2"))
    assert response.json()["message"].startswith("Updated existing payment")
    payment = db.query(Payment).one()
    assert payment.status == "paid"
    assert payment.square_receipt_url == "https://squareup.com/receipt/2"


def test_payment_updated_refreshes_method(db, post_event, customer):
    db.add(Payment(client_id=customer.id, amount_in_cents=3000, status="paid", square_payment_id="sq-pay-1"))
    db.commit()

    post_event(payment_event(event_type="payment.updated", status="APPROVED", tenders=[{"type": "WALLET"}]))
    assert db.query(Payment).one().method == "square_wallet"


def test_partial_then_full_refund(db, post_event, customer):
    db.add(Payment(client_id=customer.id, amount_in_cents=10000, status="paid", square_payment_id="sq-pay-1"))
    db.commit()

    post_event(refund_event("evt-r1", "sq-pay-1", 4000))
    payment = db.query(Payment).one()
    assert payment.status == "partially_refunded"
    assert payment.refunded_in_cents == 4000

    post_event(refund_event("evt-r2", "sq-pay-1", 6000))
    db.refresh(payment)
    assert payment.status == "refunded"
    assert payment.refunded_in_cents == 10000


def test_unhandled_event_type_is_skipped(db, post_event):
    response = post_event({"event_id": "evt-x", "type": "customer.created", "data": {}})
    assert response.status_code == 200
    log = db.query(SyncLog).filter(SyncLog.direction == "inbound").one()
    assert log.status == "skipped"


def test_processing_error_is_stored_and_retry_counts_attempts(db, post_event, monkeypatch):
    def broken_refund(db_session, data):
        raise RuntimeError("database hiccup")

    monkeypatch.setattr(square_webhooks, "handle_refund_event", broken_refund)

    event = refund_event("evt-fail", "sq-pay-1", 100)
    first = post_event(event)
    assert first.status_code == 200
    assert first.json()["message"] == "database hiccup"

    post_event(event)
    row = db.query(WebhookEvent).one()
    assert row.is_processed is False
    assert row.attempts == 2
    assert row.error_message == "database hiccup"


def test_square_timestamps_are_stored_as_naive_utc():
    assert parse_square_timestamp("2026-05-10T12:00:00-07:00") == datetime(2026, 5, 10, 19, 0)
    assert parse_square_timestamp("2026-05-10T12:00:00.123Z") == datetime(2026, 5, 10, 12, 0, 0, 123000)
    assert parse_square_timestamp("2026-05-10T12:00:00") == datetime(2026, 5, 10, 12, 0)


@pytest.mark.parametrize("body", [b"[]", b'"payment.completed"', b"42"])
def test_json_that_is_not_an_object_is_400(client, db, body):
    response = client.post("/api/webhooks/square", content=body)
    assert response.status_code == 400
    assert db.query(WebhookEvent).count() == 0
