import asyncio

import pytest

from tcreative import email_service
from tcreative.domain.shop.schemas import CartItem
from tcreative.domain.shop.service import (
    ShopService,
    generate_order_number,
    merge_cart_items,
    to_base36,
    validate_cart_line,
)
from tcreative.models import LoyaltyTransaction, Order, Product, SyncLog
from tcreative.services import square_service

from .conftest import auth_headers


def place(db, client_profile, items, fulfillment_method="pickup_cash"):
    cart = [CartItem(productId=product_id, quantity=quantity) for product_id, quantity in items]
    return asyncio.run(ShopService(db).place_order(client_profile, cart, fulfillment_method))


def test_base36_order_numbers():
    assert to_base36(0) == "0"
    assert to_base36(35) == "z"
    assert to_base36(36) == "10"
    assert generate_order_number().startswith("ord-")


def test_merge_cart_items_combines_repeated_products():
    items = [CartItem(productId=2, quantity=1), CartItem(productId=5), CartItem(productId=2, quantity=2)]
    assert merge_cart_items(items) == [(2, 3), (5, 1)]


def test_cart_line_errors():
    quote_only = Product(title="Custom Blanket", is_published=True, pricing_type="contact_for_quote")
    hidden = Product(title="Old Tote", is_published=False, pricing_type="fixed_price", price_in_cents=100)
    sold_out = Product(
        title="Beanie", is_published=True, pricing_type="fixed_price", price_in_cents=100, availability="out_of_stock"
    )
    low = Product(
        title="Scarf",
        is_published=True,
        pricing_type="fixed_price",
        price_in_cents=100,
        availability="in_stock",
        stock_count=2,
    )

    assert validate_cart_line(None, 9, 1) == "Product not found: 9"
    assert validate_cart_line(hidden, 1, 1) == "Old Tote is no longer available"
    assert validate_cart_line(quote_only, 1, 1) == "Custom Blanket requires a quote — cannot add to cart"
    assert validate_cart_line(sold_out, 1, 1) == "Beanie is out of stock"
    assert validate_cart_line(low, 1, 3) == "Only 2 of Scarf in stock"
    assert validate_cart_line(low, 1, 2) is None


def test_empty_cart(db, customer):
    assert place(db, customer, []) == {"success": False, "error": "Cart is empty"}


def test_invalid_line_writes_nothing(db, customer, make_product):
    good = make_product(stock_count=5)
    scarce = make_product(stock_count=1)

    result = place(db, customer, [(good.id, 2), (scarce.id, 3)])
    assert result["success"] is False
    assert result["error"] == f"Only 1 of {scarce.title} in stock"
    assert db.query(Order).count() == 0
    db.refresh(good)
    assert good.stock_count == 5


def test_successful_checkout(db, customer, make_product):
    tote = make_product(price_in_cents=4500, stock_count=2)
    blanket = make_product(price_in_cents=12000, availability="made_to_order", stock_count=0)

    result = place(db, customer, [(tote.id, 2), (blanket.id, 1)])
    assert result["success"] is True
    assert result["paymentUrl"] is None

    orders = db.query(Order).order_by(Order.id).all()
    assert [o.order_number for o in orders] == [
        f"{result['orderNumber']}-{tote.id}",
        f"{result['orderNumber']}-{blanket.id}",
    ]
    assert [o.final_in_cents for o in orders] == [9000, 12000]
    assert {o.status for o in orders} == {"accepted"}

    db.refresh(tote)
    db.refresh(blanket)
    assert tote.stock_count == 0
    assert tote.availability == "out_of_stock"
    assert blanket.availability == "made_to_order"

    points = db.query(LoyaltyTransaction).one()
    assert points.type == "product_purchase"
    assert points.points == 30
    assert points.reference_id == result["orderNumber"]


def test_online_pickup_creates_payment_link(db, customer, make_product, monkeypatch):
    tote = make_product(price_in_cents=4500)
    captured = {}

    async def fake_order_link(order_number, line_items):
        captured.update(order_number=order_number, line_items=line_items)
        return {"url": "https://square.link/u/shop", "order_id": "sq-shop-1"}

    monkeypatch.setattr(square_service, "is_square_configured", lambda: True)
    monkeypatch.setattr(square_service, "create_square_order_payment_link", fake_order_link)

    result = place(db, customer, [(tote.id, 2)], "pickup_online")
    assert result["paymentUrl"] == "https://square.link/u/shop"

    order = db.query(Order).one()
    assert order.square_order_id == "sq-shop-1"
    assert captured["line_items"] == [{"name": tote.title, "quantity": 2, "amount_in_cents": 9000}]
    assert captured["order_number"] == result["orderNumber"]
    assert db.query(SyncLog).filter(SyncLog.entity_type == "payment_link").one().status == "success"


def test_payment_link_failure_still_places_order(db, customer, make_product, monkeypatch):
    tote = make_product()

    async def failing_link(*args, **kwargs):
        raise square_service.SquareError("boom")

    monkeypatch.setattr(square_service, "is_square_configured", lambda: True)
    monkeypatch.setattr(square_service, "create_square_order_payment_link", failing_link)

    result = place(db, customer, [(tote.id, 1)], "pickup_online")
    assert result["success"] is True
    assert result["paymentUrl"] is None
    assert db.query(SyncLog).filter(SyncLog.status == "failed").count() == 1


def test_checkout_endpoint_returns_400_on_error(client, customer):
    response = client.post("/shop/orders", json={"items": [{"productId": 404}]}, headers=auth_headers(customer))
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Product not found: 404"}


def test_checkout_endpoint_and_order_history(client, customer, make_product):
    tote = make_product()
    headers = auth_headers(customer)

    placed = client.post("/shop/orders", json={"items": [{"productId": tote.id, "quantity": 1}]}, headers=headers)
    assert placed.status_code == 200
    assert placed.json()["success"] is True

    history = client.get("/shop/orders/me", headers=headers).json()
    assert len(history) == 1
    assert history[0]["title"] == tote.title
    assert history[0]["status"] == "accepted"


def test_checkout_rejects_unknown_fulfillment(client, customer, make_product):
    tote = make_product()
    response = client.post(
        "/shop/orders",
        json={"items": [{"productId": tote.id}], "fulfillmentMethod": "delivery"},
        headers=auth_headers(customer),
    )
    assert response.status_code == 422


def test_storefront_lists_published_products(client, make_product):
    make_product(title="Tote", tags="crochet, bags ,")
    make_product(title="Draft", is_published=False)

    products = client.get("/shop/products").json()
    assert [p["title"] for p in products] == ["Tote"]
    assert products[0]["tags"] == ["crochet", "bags"]


def test_marketplace_stats(client, admin, make_product):
    make_product(stock_count=3)
    make_product(stock_count=20)
    make_product(stock_count=0, availability="out_of_stock")
    make_product(is_published=False, stock_count=40)

    stats = client.get("/shop/admin/stats", headers=auth_headers(admin)).json()
    assert stats == {
        "activeCount": 2,
        "totalProducts": 4,
        "totalSales": 0,
        "lowStockCount": 1,
        "outOfStockCount": 1,
    }


def test_admin_product_rows(client, db, admin, customer, make_product):
    sold = make_product()
    make_product(is_published=False)
    db.add(
        Order(order_number="ord-x-1", client_id=customer.id, product_id=sold.id, title=sold.title, status="completed")
    )
    db.commit()

    rows = {row["id"]: row for row in client.get("/shop/admin/products", headers=auth_headers(admin)).json()}
    assert rows[sold.id]["sales"] == 1
    assert rows[sold.id]["status"] == "active"
    assert [row["status"] for row in rows.values()].count("inactive") == 1


def test_stock_adjustment_never_goes_negative(client, admin, make_product):
    tote = make_product(stock_count=2)
    headers = auth_headers(admin)

    drained = client.post(f"/shop/admin/products/{tote.id}/stock", json={"delta": -5}, headers=headers).json()
    assert drained == {"id": tote.id, "stockCount": 0, "availability": "out_of_stock"}

    restocked = client.post(f"/shop/admin/products/{tote.id}/stock", json={"delta": 4}, headers=headers).json()
    assert restocked["availability"] == "in_stock"


def test_create_and_retitle_product(client, admin):
    headers = auth_headers(admin)
    created = client.post(
        "/shop/admin/products",
        json={"title": "Crochet Bucket Hat", "priceInCents": 3500, "stockCount": 4},
        headers=headers,
    )
    assert created.status_code == 200
    assert created.json()["slug"].startswith("crochet-bucket-hat-")

    renamed = client.patch(
        f"/shop/admin/products/{created.json()['id']}", json={"title": "Bucket Hat"}, headers=headers
    ).json()
    assert renamed["slug"].startswith("bucket-hat-")


def test_publish_toggle(client, admin, make_product):
    tote = make_product(is_published=False)
    response = client.post(f"/shop/admin/products/{tote.id}/publish-toggle", headers=auth_headers(admin))
    assert response.json()["isPublished"] is True


@pytest.mark.parametrize("status,emails", [("ready_for_pickup", 1), ("in_progress", 0), ("completed", 1)])
def test_order_status_update_notifies_client(client, db, admin, customer, monkeypatch, status, emails):
    order = Order(order_number="ord-abc-1", client_id=customer.id, title="Tote", status="accepted")
    db.add(order)
    db.commit()
    sent = []

    async def fake_status_email(db_session, client_id, order_id, order_number, title, new_status):
        sent.append(new_status)
        return True

    monkeypatch.setattr(email_service, "send_order_status_update", fake_status_email)

    response = client.patch(
        f"/shop/admin/orders/{order.id}/status", json={"status": status}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    assert len(sent) == emails

    db.refresh(order)
    assert order.status == status
    assert (order.completed_at is not None) == (status == "completed")


def test_missing_order_is_404(client, admin):
    response = client.patch("/shop/admin/orders/999/status", json={"status": "completed"}, headers=auth_headers(admin))
    assert response.status_code == 404


def test_admin_order_list_includes_client_name(client, db, admin, customer):
    db.add(Order(order_number="ord-abc-2", client_id=customer.id, title="Tote", status="accepted"))
    db.commit()
    rows = client.get("/shop/admin/orders", headers=auth_headers(admin)).json()
    assert rows[0]["clientName"] == "Maya Lopez"
