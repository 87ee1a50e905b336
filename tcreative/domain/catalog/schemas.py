"""Catalog domain schemas - Pydantic models for services and add-ons"""

from typing import Optional

from pydantic import BaseModel, field_validator

SERVICE_CATEGORIES = ("lash", "jewelry", "crochet", "consulting")


def _non_negative(v):
    if v is not None and v < 0:
        raise ValueError("Prices cannot be negative")
    return v


def _positive_duration(v):
    if v is not None and v <= 0:
        raise ValueError("Duration must be greater than zero")
    return v


def _valid_category(v):
    if v is not None and v not in SERVICE_CATEGORIES:
        raise ValueError(f"Category must be one of: {', '.join(SERVICE_CATEGORIES)}")
    return v


class ServiceCreate(BaseModel):
    category: str
    name: str
    description: Optional[str] = None
    priceInCents: Optional[int] = None
    priceMinInCents: Optional[int] = None
    priceMaxInCents: Optional[int] = None
    depositInCents: Optional[int] = None
    durationMinutes: Optional[int] = None
    sortOrder: int = 0
    isActive: bool = True

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        return _valid_category(v)

    @field_validator("priceInCents", "priceMinInCents", "priceMaxInCents", "depositInCents")
    @classmethod
    def validate_prices(cls, v):
        return _non_negative(v)

    @field_validator("durationMinutes")
    @classmethod
    def validate_duration(cls, v):
        return _positive_duration(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Service name is required")
        return v.strip()


class ServiceUpdate(BaseModel):
    category: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    priceInCents: Optional[int] = None
    priceMinInCents: Optional[int] = None
    priceMaxInCents: Optional[int] = None
    depositInCents: Optional[int] = None
    durationMinutes: Optional[int] = None
    sortOrder: Optional[int] = None
    isActive: Optional[bool] = None

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        return _valid_category(v)

    @field_validator("priceInCents", "priceMinInCents", "priceMaxInCents", "depositInCents")
    @classmethod
    def validate_prices(cls, v):
        return _non_negative(v)

    @field_validator("durationMinutes")
    @classmethod
    def validate_duration(cls, v):
        return _positive_duration(v)


class AddOnCreate(BaseModel):
    name: str
    description: Optional[str] = None
    priceInCents: int = 0
    additionalMinutes: int = 0

    @field_validator("priceInCents")
    @classmethod
    def validate_price(cls, v):
        return _non_negative(v)

    @field_validator("additionalMinutes")
    @classmethod
    def validate_minutes(cls, v):
        if v < 0:
            raise ValueError("Additional minutes cannot be negative")
        return v


class AddOnResponse(BaseModel):
    id: int
    serviceId: int
    name: str
    description: Optional[str] = None
    priceInCents: int
    additionalMinutes: int
    isActive: bool


class ServiceResponse(BaseModel):
    id: int
    category: str
    name: str
    description: Optional[str] = None
    priceInCents: Optional[int] = None
    priceMinInCents: Optional[int] = None
    priceMaxInCents: Optional[int] = None
    depositInCents: Optional[int] = None
    durationMinutes: Optional[int] = None
    sortOrder: int
    isActive: bool
    addOns: list[AddOnResponse] = []
