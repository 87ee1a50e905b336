"""Client domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email, validate_us_phone

CLIENT_SOURCES = (
    "instagram",
    "tiktok",
    "pinterest",
    "word_of_mouth",
    "google_search",
    "referral",
    "website_direct",
)


class ClientCreate(BaseModel):
    """Schema for creating a new client"""

    firstName: str
    lastName: str = ""
    email: str
    phone: Optional[str] = None
    source: Optional[str] = None
    isVip: bool = False
    internalNotes: Optional[str] = None
    tags: Optional[str] = None

    @field_validator("firstName")
    @classmethod
    def validate_first_name(cls, v):
        if not v or not v.strip():
            raise ValueError("First name is required")
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v):
        if not v:
            raise ValueError("Email is required")
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v

    @field_validator("source")
    @classmethod
    def validate_source(cls, v):
        if v and v not in CLIENT_SOURCES:
            raise ValueError(f"Source must be one of: {', '.join(CLIENT_SOURCES)}")
        return v


class ClientUpdate(BaseModel):
    """Schema for updating an existing client"""

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    source: Optional[str] = None
    isVip: Optional[bool] = None
    internalNotes: Optional[str] = None
    tags: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v):
        if v:
            return validate_email(v)
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v

    @field_validator("source")
    @classmethod
    def validate_source(cls, v):
        if v and v not in CLIENT_SOURCES:
            raise ValueError(f"Source must be one of: {', '.join(CLIENT_SOURCES)}")
        return v


class ClientRow(BaseModel):
    """CRM list row with booking and loyalty aggregates"""

    id: str
    firstName: str
    lastName: str
    email: str
    phone: Optional[str] = None
    source: Optional[str] = None
    isVip: bool
    internalNotes: Optional[str] = None
    tags: Optional[str] = None
    referralCode: Optional[str] = None
    referredByName: Optional[str] = None
    createdAt: Optional[datetime] = None
    totalBookings: int
    totalSpent: int
    lastVisit: Optional[datetime] = None
    loyaltyPoints: int
