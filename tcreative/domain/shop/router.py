"""Shop router - FastAPI endpoints for the storefront and marketplace dashboard"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import Profile
from ...rate_limiter import create_rate_limiter
from .schemas import (
    ClientOrder,
    MarketplaceStats,
    OrderRow,
    OrderStatusUpdate,
    PlaceOrderRequest,
    PlaceOrderResult,
    ProductCreate,
    ProductRow,
    ProductUpdate,
    ShopProduct,
    StockAdjustment,
)
from .service import ShopService

router = APIRouter(prefix="/shop", tags=["Shop"])

checkout_rate_limit = create_rate_limiter(limit=10, window_seconds=60, key_prefix="checkout")


def get_shop_service(db: Session = Depends(get_db)) -> ShopService:
    """Dependency injection for ShopService"""
    return ShopService(db)


def _product_result(product) -> dict:
    return {"id": product.id, "slug": product.slug, "isPublished": product.is_published}


# ============================================================================
# STOREFRONT
# ============================================================================


@router.get("/products", response_model=list[ShopProduct])
async def get_products(service: ShopService = Depends(get_shop_service)):
    return service.get_published_products()


@router.post("/orders", response_model=PlaceOrderResult)
async def place_order(
    data: PlaceOrderRequest,
    current_user: Profile = Depends(get_current_user),
    service: ShopService = Depends(get_shop_service),
    _: None = Depends(checkout_rate_limit),
):
    """Check out the cart; validation failures come back as {success: false, error} with a 400"""
    result = await service.place_order(current_user, data.items, data.fulfillmentMethod)
    if not result["success"]:
        return JSONResponse(status_code=400, content=result)
    return result


@router.get("/orders/me", response_model=list[ClientOrder])
async def get_my_orders(
    current_user: Profile = Depends(get_current_user),
    service: ShopService = Depends(get_shop_service),
):
    return service.get_client_orders(current_user.id)


# ============================================================================
# MARKETPLACE (ADMIN)
# ============================================================================


@router.get("/admin/products", response_model=list[ProductRow])
async def list_products(
    _: Profile = Depends(require_admin),
    service: ShopService = Depends(get_shop_service),
):
    return service.list_products()


@router.post("/admin/products")
async def create_product(
    data: ProductCreate,
    _: Profile = Depends(require_admin),
    service: ShopService = Depends(get_shop_service),
):
    return _product_result(service.create_product(data))


@router.patch("/admin/products/{product_id}")
async def update_product(
    product_id: int,
    data: ProductUpdate,
    _: Profile = Depends(require_admin),
    service: ShopService = Depends(get_shop_service),
):
    return _product_result(service.update_product(product_id, data))


@router.delete("/admin/products/{product_id}")
async def delete_product(
    product_id: int,
    _: Profile = Depends(require_admin),
    service: ShopService = Depends(get_shop_service),
):
    return service.delete_product(product_id)


@router.post("/admin/products/{product_id}/publish-toggle")
async def toggle_publish(
    product_id: int,
    _: Profile = Depends(require_admin),
    service: ShopService = Depends(get_shop_service),
):
    return _product_result(service.toggle_publish(product_id))


@router.post("/admin/products/{product_id}/stock")
async def adjust_stock(
    product_id: int,
    data: StockAdjustment,
    _: Profile = Depends(require_admin),
    service: ShopService = Depends(get_shop_service),
):
    product = service.adjust_stock(product_id, data.delta)
    return {"id": product.id, "stockCount": product.stock_count, "availability": product.availability}


@router.get("/admin/stats", response_model=MarketplaceStats)
async def get_marketplace_stats(
    _: Profile = Depends(require_admin),
    service: ShopService = Depends(get_shop_service),
):
    return service.get_stats()


@router.get("/admin/orders", response_model=list[OrderRow])
async def list_orders(
    _: Profile = Depends(require_admin),
    service: ShopService = Depends(get_shop_service),
):
    return service.list_orders()


@router.patch("/admin/orders/{order_id}/status")
async def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    _: Profile = Depends(require_admin),
    service: ShopService = Depends(get_shop_service),
):
    order = await service.update_order_status(order_id, data.status)
    return {"id": order.id, "status": order.status}
