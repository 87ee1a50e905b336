"""Shop service - Cart checkout, client order history and marketplace admin"""

import logging
import re
import time
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ... import email_service
from ...models import Order, Product, Profile
from ...services import square_service, zoho_books_service, zoho_service
from ...services.sync_log import log_sync
from ...shared.validators import split_tags
from ..loyalty.service import POINTS_PER_PRODUCT_UNIT, LoyaltyService
from .repository import ShopRepository
from .schemas import CartItem, ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)

BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
NOTIFY_ORDER_STATUSES = ("ready_for_pickup", "completed")

PRODUCT_FIELD_MAP = {
    "title": "title",
    "description": "description",
    "productType": "product_type",
    "pricingType": "pricing_type",
    "priceInCents": "price_in_cents",
    "priceMinInCents": "price_min_in_cents",
    "priceMaxInCents": "price_max_in_cents",
    "availability": "availability",
    "stockCount": "stock_count",
    "imageUrl": "image_url",
    "tags": "tags",
    "isPublished": "is_published",
    "sortOrder": "sort_order",
}


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_order_number() -> str:
    return f"ord-{to_base36(int(time.time() * 1000))}"


def slugify(title: str) -> str:
    base = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")[:200]
    return f"{base}-{int(time.time() * 1000)}"


def product_status(product: Product) -> str:
    """Admin list status: unpublished wins over stock state"""
    if not product.is_published:
        return "inactive"
    if product.availability == "out_of_stock":
        return "out_of_stock"
    return "active"


def product_to_dict(product: Product) -> dict:
    return {
        "id": product.id,
        "title": product.title,
        "slug": product.slug,
        "description": product.description,
        "productType": product.product_type,
        "pricingType": product.pricing_type,
        "priceInCents": product.price_in_cents,
        "priceMinInCents": product.price_min_in_cents,
        "priceMaxInCents": product.price_max_in_cents,
        "availability": product.availability,
        "stockCount": product.stock_count,
        "imageUrl": product.image_url,
        "tags": split_tags(product.tags),
    }


def merge_cart_items(items: list[CartItem]) -> list[tuple[int, int]]:
    """Collapse repeated products into one line, keeping first-seen order"""
    quantities: dict[int, int] = {}
    for item in items:
        quantities[item.productId] = quantities.get(item.productId, 0) + item.quantity
    return list(quantities.items())


def validate_cart_line(product: Optional[Product], product_id: int, quantity: int) -> Optional[str]:
    """Error message for a cart line that cannot be bought, None when it can"""
    if product is None:
        return f"Product not found: {product_id}"
    if not product.is_published:
        return f"{product.title} is no longer available"
    if product.pricing_type != "fixed_price" or not product.price_in_cents:
        return f"{product.title} requires a quote — cannot add to cart"
    if product.availability == "out_of_stock":
        return f"{product.title} is out of stock"
    if product.availability == "in_stock" and product.stock_count < quantity:
        return f"Only {product.stock_count} of {product.title} in stock"
    return None


class ShopService:
    """Service layer for the storefront and the marketplace dashboard"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ShopRepository()

    # ========================================================================
    # STOREFRONT
    # ========================================================================

    def get_published_products(self) -> list[dict]:
        return [product_to_dict(p) for p in self.repo.get_published_products(self.db)]

    async def place_order(self, client: Profile, items: list[CartItem], fulfillment_method: str) -> dict:
        """
        Check out a cart.

        Every line is validated before anything is written. Stock is
        decremented for in-stock products; made-to-order and pre-order
        products are not tracked. Payment link, email, CRM deal, invoice and
        loyalty points are best effort once the order rows exist.
        """
        if not items:
            return {"success": False, "error": "Cart is empty"}

        lines = merge_cart_items(items)
        products = self.repo.get_products_by_ids(self.db, [product_id for product_id, _ in lines])

        for product_id, quantity in lines:
            error = validate_cart_line(products.get(product_id), product_id, quantity)
            if error:
                return {"success": False, "error": error}

        order_number = generate_order_number()
        rows = []
        for product_id, quantity in lines:
            product = products[product_id]
            rows.append(
                {
                    "order_number": f"{order_number}-{product_id}",
                    "client_id": client.id,
                    "product_id": product_id,
                    "title": product.title,
                    "quantity": quantity,
                    "status": "accepted",
                    "final_in_cents": product.price_in_cents * quantity,
                    "fulfillment_method": fulfillment_method,
                }
            )
            if product.availability == "in_stock":
                remaining = max(0, product.stock_count - quantity)
                product.stock_count = remaining
                if remaining == 0:
                    product.availability = "out_of_stock"

        # Stock changes are flushed in the same commit as the order rows
        orders = self.repo.create_orders(self.db, rows)
        first_order = orders[0]
        total_in_cents = sum(o.final_in_cents for o in orders)
        logger.info(f"🛒 Order {order_number} placed by {client.id}: {len(orders)} item(s), {total_in_cents} cents")

        payment_url = None
        if fulfillment_method == "pickup_online" and square_service.is_square_configured():
            payment_url = await self._create_order_payment_link(order_number, orders)

        try:
            await email_service.send_order_confirmation(
                self.db,
                client.id,
                order_number,
                [{"title": o.title, "quantity": o.quantity, "price_in_cents": o.final_in_cents} for o in orders],
                total_in_cents,
                fulfillment_method,
                payment_url,
            )
        except Exception as e:
            logger.warning(f"⚠️ Order confirmation email failed for {order_number}: {e}")

        titles = ", ".join(o.title for o in orders)
        await zoho_service.create_zoho_deal(
            self.db,
            contact_email=client.email,
            deal_name=f"Shop Order {order_number} — {titles}",
            stage="Closed Won",
            amount_in_cents=total_in_cents,
            pipeline="Shop",
            external_id=order_number,
        )
        await zoho_books_service.create_zoho_books_invoice(
            self.db,
            entity_type="order",
            entity_id=first_order.id,
            profile=client,
            line_items=[
                {"name": o.title, "rate": o.final_in_cents // o.quantity, "quantity": o.quantity} for o in orders
            ],
        )

        units = sum(o.quantity for o in orders)
        LoyaltyService(self.db).award_once(
            client.id,
            units * POINTS_PER_PRODUCT_UNIT,
            "product_purchase",
            f"Shop order {order_number}",
            reference_id=order_number,
        )

        return {"success": True, "orderNumber": order_number, "paymentUrl": payment_url}

    async def _create_order_payment_link(self, order_number: str, orders: list[Order]) -> Optional[str]:
        first_order = orders[0]
        try:
            link = await square_service.create_square_order_payment_link(
                order_number,
                [{"name": o.title, "quantity": o.quantity, "amount_in_cents": o.final_in_cents} for o in orders],
            )
        except Exception as e:
            logger.error(f"❌ Square payment link failed for order {order_number}: {e}")
            log_sync(
                self.db,
                provider="square",
                status="failed",
                entity_type="payment_link",
                local_id=str(first_order.id),
                error_message=str(e),
            )
            return None

        for order in orders:
            order.square_order_id = link["order_id"]
        self.db.commit()
        log_sync(
            self.db,
            provider="square",
            status="success",
            entity_type="payment_link",
            local_id=str(first_order.id),
            remote_id=link["order_id"],
            message=f"Created payment link for order {order_number}",
            payload={"url": link["url"], "orderNumber": order_number},
        )
        return link["url"]

    def get_client_orders(self, client_id: str) -> list[dict]:
        return [
            {
                "id": o.id,
                "orderNumber": o.order_number,
                "title": o.title,
                "status": o.status,
                "quantity": o.quantity,
                "finalInCents": o.final_in_cents,
                "fulfillmentMethod": o.fulfillment_method,
                "createdAt": o.created_at.strftime("%b %-d, %Y") if o.created_at else "",
            }
            for o in self.repo.get_orders_for_client(self.db, client_id)
        ]

    # ========================================================================
    # MARKETPLACE: PRODUCTS
    # ========================================================================

    def get_product(self, product_id: int) -> Product:
        product = self.repo.get_product_by_id(self.db, product_id)
        if not product:
            raise HTTPException(status_code=404, detail="Product not found")
        return product

    def list_products(self) -> list[dict]:
        sales = self.repo.get_completed_sales_by_product(self.db)
        rows = []
        for p in self.repo.get_products(self.db):
            row = product_to_dict(p)
            row.update(
                {
                    "isPublished": p.is_published,
                    "sortOrder": p.sort_order,
                    "status": product_status(p),
                    "sales": sales.get(p.id, 0),
                }
            )
            rows.append(row)
        return rows

    def create_product(self, data: ProductCreate) -> Product:
        values = {column: getattr(data, field) for field, column in PRODUCT_FIELD_MAP.items()}
        product = self.repo.create_product(self.db, slug=slugify(data.title), **values)
        logger.info(f"✅ Created product {product.id}: {product.title}")
        return product

    def update_product(self, product_id: int, data: ProductUpdate) -> Product:
        product = self.get_product(product_id)
        provided = data.model_dump(exclude_unset=True)
        updates = {PRODUCT_FIELD_MAP[field]: value for field, value in provided.items()}
        if updates.get("title"):
            updates["slug"] = slugify(updates["title"])
        return self.repo.update_product(self.db, product, **updates)

    def delete_product(self, product_id: int) -> dict:
        product = self.get_product(product_id)
        self.repo.delete_product(self.db, product)
        logger.info(f"🗑️ Deleted product {product_id}")
        return {"message": "Product deleted"}

    def toggle_publish(self, product_id: int) -> Product:
        product = self.get_product(product_id)
        return self.repo.update_product(self.db, product, is_published=not product.is_published)

    def adjust_stock(self, product_id: int, delta: int) -> Product:
        product = self.get_product(product_id)
        new_stock = max(0, product.stock_count + delta)
        return self.repo.update_product(
            self.db,
            product,
            stock_count=new_stock,
            availability="out_of_stock" if new_stock == 0 else "in_stock",
        )

    def get_stats(self) -> dict:
        summary = self.repo.get_product_summary(self.db)
        return {
            "activeCount": int(summary.active),
            "totalProducts": int(summary.total),
            "totalSales": self.repo.count_completed_orders(self.db),
            "lowStockCount": int(summary.low_stock),
            "outOfStockCount": int(summary.out_of_stock),
        }

    # ========================================================================
    # MARKETPLACE: ORDERS
    # ========================================================================

    def list_orders(self) -> list[dict]:
        rows = []
        for o in self.repo.get_orders(self.db):
            client_name = None
            if o.client:
                client_name = f"{o.client.first_name or ''} {o.client.last_name or ''}".strip() or None
            rows.append(
                {
                    "id": o.id,
                    "orderNumber": o.order_number,
                    "clientId": o.client_id,
                    "clientName": client_name,
                    "productId": o.product_id,
                    "title": o.title,
                    "quantity": o.quantity,
                    "status": o.status,
                    "quotedInCents": o.quoted_in_cents,
                    "finalInCents": o.final_in_cents,
                    "fulfillmentMethod": o.fulfillment_method,
                    "squareOrderId": o.square_order_id,
                    "createdAt": o.created_at,
                    "completedAt": o.completed_at,
                    "cancelledAt": o.cancelled_at,
                }
            )
        return rows

    async def update_order_status(self, order_id: int, status: str) -> Order:
        order = self.repo.get_order_by_id(self.db, order_id)
        if not order:
            raise HTTPException(status_code=404, detail="Order not found")

        updates: dict = {"status": status}
        if status == "completed":
            updates["completed_at"] = datetime.utcnow()
        elif status == "cancelled":
            updates["cancelled_at"] = datetime.utcnow()
        order = self.repo.update_order(self.db, order, **updates)
        logger.info(f"📦 Order {order.order_number} moved to {status}")

        if status in NOTIFY_ORDER_STATUSES:
            try:
                await email_service.send_order_status_update(
                    self.db, order.client_id, order.id, order.order_number, order.title, status
                )
            except Exception as e:
                logger.warning(f"⚠️ Order status email failed for order {order_id}: {e}")

        return order
