"""Shop repository - Database operations for products and orders"""

from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session, joinedload

from ...models import Order, Product

LOW_STOCK_THRESHOLD = 5


class ShopRepository:
    """Repository for shop database operations"""

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    @staticmethod
    def get_published_products(db: Session) -> list[Product]:
        return (
            db.query(Product)
            .filter(Product.is_published == True)  # noqa: E712
            .order_by(Product.sort_order.asc(), Product.created_at.desc(), Product.id.desc())
            .all()
        )

    @staticmethod
    def get_products(db: Session) -> list[Product]:
        return db.query(Product).order_by(Product.created_at.desc(), Product.id.desc()).all()

    @staticmethod
    def get_products_by_ids(db: Session, product_ids: list[int]) -> dict[int, Product]:
        if not product_ids:
            return {}
        return {p.id: p for p in db.query(Product).filter(Product.id.in_(product_ids)).all()}

    @staticmethod
    def get_product_by_id(db: Session, product_id: int) -> Optional[Product]:
        return db.query(Product).filter(Product.id == product_id).first()

    @staticmethod
    def create_product(db: Session, **data) -> Product:
        product = Product(**data)
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    @staticmethod
    def update_product(db: Session, product: Product, **updates) -> Product:
        for key, value in updates.items():
            setattr(product, key, value)
        db.commit()
        db.refresh(product)
        return product

    @staticmethod
    def delete_product(db: Session, product: Product) -> None:
        db.delete(product)
        db.commit()

    @staticmethod
    def get_completed_sales_by_product(db: Session) -> dict[int, int]:
        rows = (
            db.query(Order.product_id, func.count(Order.id))
            .filter(Order.status == "completed", Order.product_id.isnot(None))
            .group_by(Order.product_id)
            .all()
        )
        return {product_id: count for product_id, count in rows}

    @staticmethod
    def get_product_summary(db: Session):
        def count_where(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        return db.query(
            func.count(Product.id).label("total"),
            count_where((Product.is_published == True) & (Product.availability != "out_of_stock")).label(  # noqa: E712
                "active"
            ),
            count_where(
                (Product.stock_count > 0)
                & (Product.stock_count <= LOW_STOCK_THRESHOLD)
                & (Product.availability == "in_stock")
            ).label("low_stock"),
            count_where(Product.availability == "out_of_stock").label("out_of_stock"),
        ).one()

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    @staticmethod
    def create_orders(db: Session, rows: list[dict]) -> list[Order]:
        """Insert every cart line in one transaction"""
        orders = [Order(**row) for row in rows]
        db.add_all(orders)
        db.commit()
        for order in orders:
            db.refresh(order)
        return orders

    @staticmethod
    def get_order_by_id(db: Session, order_id: int) -> Optional[Order]:
        return db.query(Order).filter(Order.id == order_id).first()

    @staticmethod
    def get_orders(db: Session) -> list[Order]:
        return db.query(Order).options(joinedload(Order.client)).order_by(Order.created_at.desc(), Order.id.desc()).all()

    @staticmethod
    def get_orders_for_client(db: Session, client_id: str) -> list[Order]:
        return (
            db.query(Order)
            .filter(Order.client_id == client_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )

    @staticmethod
    def count_completed_orders(db: Session) -> int:
        return db.query(func.count(Order.id)).filter(Order.status == "completed").scalar() or 0

    @staticmethod
    def update_order(db: Session, order: Order, **updates) -> Order:
        for key, value in updates.items():
            setattr(order, key, value)
        db.commit()
        db.refresh(order)
        return order
