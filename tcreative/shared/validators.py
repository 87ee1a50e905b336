"""Shared validation utilities"""

import re
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_us_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a US phone number to E.164 (+1XXXXXXXXXX).

    Punctuation is ignored and a leading country code 1 is accepted, so
    "(510) 555-0199" and "1-510-555-0199" both become "+15105550199".
    """
    if not phone:
        return phone

    digits = "".join(ch for ch in phone if ch.isdigit())
    if len(digits) == 11 and digits[0] == "1":
        digits = digits[1:]
    if len(digits) != 10:
        raise ValueError("Phone number must be 10 digits for US numbers")
    return "+1" + digits


def validate_email(email: Optional[str]) -> Optional[str]:
    """Validate email format and return it lowercased"""
    if not email:
        return email

    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email address")
    return email


def validate_birthday(value: Optional[str]) -> Optional[str]:
    """Birthdays are stored without a year as MM/DD"""
    if not value:
        return value

    match = re.fullmatch(r"(\d{1,2})/(\d{1,2})", value.strip())
    if not match:
        raise ValueError("Birthday must be in MM/DD format")

    month, day = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        raise ValueError("Birthday must be a valid month and day")
    return f"{month:02d}/{day:02d}"


def split_tags(tags: Optional[str]) -> list[str]:
    """Split a comma separated tag string, trimming blanks"""
    if not tags:
        return []
    return [tag.strip() for tag in tags.split(",") if tag.strip()]
