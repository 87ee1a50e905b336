"""
Security Utilities
Signed tokens for staff invite links and referral codes
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Optional

from jose import JWTError
from jose import jwt as jose_jwt

from .config import INVITE_TOKEN_EXPIRE_DAYS, SECRET_KEY

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
INVITE_TOKEN_TYPE = "invite"


# ============================================================================
# JWT TOKENS
# ============================================================================


def create_jwt_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT token with expiration"""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(hours=24))
    to_encode.update({"exp": expire, "iat": datetime.utcnow()})
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_jwt_token(token: str) -> Optional[dict[str, Any]]:
    """Verify and decode JWT token"""
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None


def create_invite_token(email: str) -> str:
    """Signed invite for a prospective assistant"""
    return create_jwt_token(
        {"type": INVITE_TOKEN_TYPE, "email": email.strip().lower()},
        expires_delta=timedelta(days=INVITE_TOKEN_EXPIRE_DAYS),
    )


def verify_invite_token(token: str) -> Optional[dict[str, Any]]:
    """Return the invite payload, or None if the token is expired, tampered or not an invite"""
    payload = verify_jwt_token(token)
    if not payload or payload.get("type") != INVITE_TOKEN_TYPE:
        return None
    return payload


# ============================================================================
# REFERRAL CODES
# ============================================================================


def generate_referral_code(first_name: Optional[str]) -> str:
    """Human-friendly referral code, e.g. MAYA-7K2Q"""
    alphabet = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
    prefix = "".join(ch for ch in (first_name or "TC").upper() if ch.isalpha())[:8] or "TC"
    suffix = "".join(secrets.choice(alphabet) for _ in range(4))
    return f"{prefix}-{suffix}"
