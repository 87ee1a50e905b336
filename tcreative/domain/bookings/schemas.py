"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

BOOKING_STATUSES = ("pending", "confirmed", "in_progress", "completed", "cancelled", "no_show")
PAYMENT_LINK_TYPES = ("deposit", "balance")


def _valid_status(v):
    if v is not None and v not in BOOKING_STATUSES:
        raise ValueError(f"Status must be one of: {', '.join(BOOKING_STATUSES)}")
    return v


class BookingCreate(BaseModel):
    """Schema for an admin-created booking"""

    clientId: str
    serviceId: int
    staffId: Optional[str] = None
    startsAt: datetime
    durationMinutes: Optional[int] = None
    totalInCents: Optional[int] = None
    location: Optional[str] = None
    clientNotes: Optional[str] = None
    staffNotes: Optional[str] = None
    addOnIds: list[int] = []

    @field_validator("durationMinutes")
    @classmethod
    def validate_duration(cls, v):
        if v is not None and v <= 0:
            raise ValueError("Duration must be greater than zero")
        return v

    @field_validator("totalInCents")
    @classmethod
    def validate_total(cls, v):
        if v is not None and v < 0:
            raise ValueError("Total cannot be negative")
        return v


class BookingUpdate(BaseModel):
    """Partial update; only the fields sent are written"""

    clientId: Optional[str] = None
    serviceId: Optional[int] = None
    staffId: Optional[str] = None
    startsAt: Optional[datetime] = None
    durationMinutes: Optional[int] = None
    totalInCents: Optional[int] = None
    discountInCents: Optional[int] = None
    location: Optional[str] = None
    clientNotes: Optional[str] = None
    staffNotes: Optional[str] = None
    status: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _valid_status(v)


class BookingStatusUpdate(BaseModel):
    status: str
    cancellationReason: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _valid_status(v)


class BookingAddOnItem(BaseModel):
    name: str
    priceInCents: int


class BookingRow(BaseModel):
    """Admin list row"""

    id: int
    status: str
    startsAt: datetime
    durationMinutes: int
    totalInCents: int
    location: Optional[str] = None
    clientNotes: Optional[str] = None
    clientId: str
    clientFirstName: Optional[str] = None
    clientLastName: Optional[str] = None
    clientPhone: Optional[str] = None
    serviceId: int
    serviceName: Optional[str] = None
    serviceCategory: str
    staffId: Optional[str] = None
    staffFirstName: Optional[str] = None
    addOns: list[BookingAddOnItem] = []


class SelectOption(BaseModel):
    id: str
    name: str


class ServiceOption(BaseModel):
    id: int
    name: str
    category: str
    durationMinutes: int
    priceInCents: int


class BookingFormOptions(BaseModel):
    clients: list[SelectOption]
    services: list[ServiceOption]
    staff: list[SelectOption]


class AssistantBookingRow(BaseModel):
    id: int
    date: str
    dayLabel: str
    time: str
    service: str
    category: str
    client: str
    clientInitials: str
    clientPhone: Optional[str] = None
    status: str
    durationMin: int
    price: float
    notes: Optional[str] = None


class AssistantBookingStats(BaseModel):
    upcomingCount: int
    completedCount: int
    completedRevenue: float


class AssistantBookingsResponse(BaseModel):
    bookings: list[AssistantBookingRow]
    stats: AssistantBookingStats


class ClientBookingRow(BaseModel):
    id: int
    dateISO: str
    date: str
    time: str
    service: str
    category: str
    assistant: str
    durationMin: int
    price: float
    status: str
    notes: Optional[str] = None
    location: Optional[str] = None
    addOns: list[BookingAddOnItem] = []
    reviewLeft: bool


class ClientBookingsResponse(BaseModel):
    bookings: list[ClientBookingRow]


class ClientReviewCreate(BaseModel):
    rating: int
    comment: Optional[str] = None

    @field_validator("rating")
    @classmethod
    def validate_rating(cls, v):
        if v < 1 or v > 5:
            raise ValueError("Rating must be between 1 and 5")
        return v


class PaymentLinkRequest(BaseModel):
    type: str = "deposit"

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v not in PAYMENT_LINK_TYPES:
            raise ValueError("Payment link type must be 'deposit' or 'balance'")
        return v


class PaymentLinkResponse(BaseModel):
    url: str
    orderId: str
    amountInCents: int


class TerminalOrderResponse(BaseModel):
    orderId: str
    amountInCents: int


class BookingResponse(BaseModel):
    id: int
    client_id: str
    staff_id: Optional[str] = None
    service_id: int
    status: str
    starts_at: datetime
    duration_minutes: int
    total_in_cents: int
    location: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    class Config:
        from_attributes = True
