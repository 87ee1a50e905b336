"""Shop domain schemas - Pydantic models for products, cart checkout and orders"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

PRICING_TYPES = ("fixed_price", "starting_at", "price_range", "contact_for_quote")
AVAILABILITY_TYPES = ("in_stock", "made_to_order", "pre_order", "out_of_stock")
FULFILLMENT_METHODS = ("pickup_cash", "pickup_online")
ORDER_STATUSES = ("inquiry", "quoted", "accepted", "in_progress", "ready_for_pickup", "completed", "cancelled")


class CartItem(BaseModel):
    productId: int
    quantity: int = 1

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v):
        if v < 1:
            raise ValueError("Quantity must be at least 1")
        return v


class PlaceOrderRequest(BaseModel):
    items: list[CartItem]
    fulfillmentMethod: str = "pickup_cash"

    @field_validator("fulfillmentMethod")
    @classmethod
    def validate_fulfillment(cls, v):
        if v not in FULFILLMENT_METHODS:
            raise ValueError(f"Fulfillment method must be one of: {', '.join(FULFILLMENT_METHODS)}")
        return v


class PlaceOrderResult(BaseModel):
    success: bool
    orderNumber: Optional[str] = None
    paymentUrl: Optional[str] = None
    error: Optional[str] = None


class ShopProduct(BaseModel):
    id: int
    title: str
    slug: str
    description: Optional[str] = None
    productType: Optional[str] = None
    pricingType: str
    priceInCents: Optional[int] = None
    priceMinInCents: Optional[int] = None
    priceMaxInCents: Optional[int] = None
    availability: str
    stockCount: int
    imageUrl: Optional[str] = None
    tags: list[str] = []


class ClientOrder(BaseModel):
    id: int
    orderNumber: str
    title: str
    status: str
    quantity: int
    finalInCents: Optional[int] = None
    fulfillmentMethod: Optional[str] = None
    createdAt: str


# ============================================================================
# MARKETPLACE (ADMIN)
# ============================================================================


class ProductCreate(BaseModel):
    title: str
    description: Optional[str] = None
    productType: Optional[str] = None
    pricingType: str = "fixed_price"
    priceInCents: Optional[int] = None
    priceMinInCents: Optional[int] = None
    priceMaxInCents: Optional[int] = None
    availability: str = "in_stock"
    stockCount: int = 0
    imageUrl: Optional[str] = None
    tags: Optional[str] = None
    isPublished: bool = False
    sortOrder: int = 0

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if not v or not v.strip():
            raise ValueError("Title is required")
        return v.strip()

    @field_validator("pricingType")
    @classmethod
    def validate_pricing_type(cls, v):
        if v not in PRICING_TYPES:
            raise ValueError(f"Pricing type must be one of: {', '.join(PRICING_TYPES)}")
        return v

    @field_validator("availability")
    @classmethod
    def validate_availability(cls, v):
        if v not in AVAILABILITY_TYPES:
            raise ValueError(f"Availability must be one of: {', '.join(AVAILABILITY_TYPES)}")
        return v

    @field_validator("priceInCents", "priceMinInCents", "priceMaxInCents", "stockCount")
    @classmethod
    def validate_non_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError("Value cannot be negative")
        return v


class ProductUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    productType: Optional[str] = None
    pricingType: Optional[str] = None
    priceInCents: Optional[int] = None
    priceMinInCents: Optional[int] = None
    priceMaxInCents: Optional[int] = None
    availability: Optional[str] = None
    stockCount: Optional[int] = None
    imageUrl: Optional[str] = None
    tags: Optional[str] = None
    isPublished: Optional[bool] = None
    sortOrder: Optional[int] = None

    @field_validator("pricingType")
    @classmethod
    def validate_pricing_type(cls, v):
        if v is not None and v not in PRICING_TYPES:
            raise ValueError(f"Pricing type must be one of: {', '.join(PRICING_TYPES)}")
        return v

    @field_validator("availability")
    @classmethod
    def validate_availability(cls, v):
        if v is not None and v not in AVAILABILITY_TYPES:
            raise ValueError(f"Availability must be one of: {', '.join(AVAILABILITY_TYPES)}")
        return v

    @field_validator("priceInCents", "priceMinInCents", "priceMaxInCents", "stockCount")
    @classmethod
    def validate_non_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError("Value cannot be negative")
        return v


class StockAdjustment(BaseModel):
    delta: int


class OrderStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in ORDER_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(ORDER_STATUSES)}")
        return v


class ProductRow(BaseModel):
    id: int
    title: str
    slug: str
    description: Optional[str] = None
    productType: Optional[str] = None
    pricingType: str
    priceInCents: Optional[int] = None
    priceMinInCents: Optional[int] = None
    priceMaxInCents: Optional[int] = None
    availability: str
    stockCount: int
    imageUrl: Optional[str] = None
    tags: list[str] = []
    isPublished: bool
    sortOrder: int
    status: str  # active, inactive, out_of_stock
    sales: int


class OrderRow(BaseModel):
    id: int
    orderNumber: str
    clientId: Optional[str] = None
    clientName: Optional[str] = None
    productId: Optional[int] = None
    title: str
    quantity: int
    status: str
    quotedInCents: Optional[int] = None
    finalInCents: Optional[int] = None
    fulfillmentMethod: Optional[str] = None
    squareOrderId: Optional[str] = None
    createdAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    cancelledAt: Optional[datetime] = None


class MarketplaceStats(BaseModel):
    activeCount: int
    totalProducts: int
    totalSales: int
    lowStockCount: int
    outOfStockCount: int
