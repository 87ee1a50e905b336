import logging
from typing import Optional

import httpx
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .config import SUPABASE_ANON_KEY, SUPABASE_JWT_AUDIENCE, SUPABASE_JWT_SECRET, SUPABASE_URL
from .database import get_db
from .models import Profile

logger = logging.getLogger(__name__)

security = HTTPBearer()

STAFF_ROLES = ("admin", "assistant")


class AuthExchangeError(Exception):
    """Raised when the auth platform rejects an OAuth code exchange"""

    pass


def verify_supabase_token(token: str) -> dict:
    """
    Verify a Supabase access token (HS256, signed with the project JWT secret).
    Returns the decoded claims.
    """
    if not SUPABASE_JWT_SECRET:
        logger.error("❌ SUPABASE_JWT_SECRET not configured")
        raise HTTPException(status_code=500, detail="Authentication not configured")

    try:
        claims = jwt.decode(
            token,
            SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience=SUPABASE_JWT_AUDIENCE,
        )
    except JWTError as e:
        logger.warning(f"⚠️ Invalid access token: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token") from e

    if not claims.get("sub"):
        raise HTTPException(status_code=401, detail="Token missing subject")
    return claims


def get_or_create_profile(db: Session, user_id: str, email: Optional[str]) -> Profile:
    """
    Look up the profile for an auth user, creating a client profile on first sight.
    Mirrors the platform's sign-up trigger for users who signed up before it existed.
    """
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if profile:
        return profile

    if not email:
        raise HTTPException(status_code=401, detail="User profile not found")

    profile = Profile(id=user_id, email=email.lower(), role="client")
    db.add(profile)
    db.commit()
    db.refresh(profile)
    logger.info(f"✅ Created profile for new auth user {user_id}")
    return profile


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Profile:
    """Resolve the bearer token to an active Profile"""
    claims = verify_supabase_token(credentials.credentials)
    profile = get_or_create_profile(db, claims["sub"], claims.get("email"))

    if not profile.is_active:
        logger.warning(f"⚠️ Suspended profile attempted access: {profile.id}")
        raise HTTPException(status_code=403, detail="Account suspended")

    return profile


async def require_staff(current_user: Profile = Depends(get_current_user)) -> Profile:
    if current_user.role not in STAFF_ROLES:
        raise HTTPException(status_code=403, detail="Staff access required")
    return current_user


async def require_admin(current_user: Profile = Depends(get_current_user)) -> Profile:
    if current_user.role != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return current_user


# ============================================================================
# AUTH PLATFORM (Supabase GoTrue) CALLS
# ============================================================================


async def exchange_code_for_session(code: str, code_verifier: Optional[str]) -> dict:
    """
    Exchange a PKCE authorization code for a session.
    Returns the session body, which includes "access_token" and "user".
    """
    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        raise AuthExchangeError("Supabase not configured")

    async with httpx.AsyncClient(timeout=15.0) as client:
        response = await client.post(
            f"{SUPABASE_URL}/auth/v1/token",
            params={"grant_type": "pkce"},
            json={"auth_code": code, "code_verifier": code_verifier},
            headers={"apikey": SUPABASE_ANON_KEY},
        )

    if response.status_code != 200:
        raise AuthExchangeError(f"Code exchange failed ({response.status_code}): {response.text}")

    session = response.json()
    if not session.get("user"):
        raise AuthExchangeError("Code exchange returned no user")
    return session


async def sign_out(access_token: str) -> None:
    """Revoke a session; failures only matter to the log"""
    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        return
    try:
        async with httpx.AsyncClient(timeout=15.0) as client:
            await client.post(
                f"{SUPABASE_URL}/auth/v1/logout",
                headers={"apikey": SUPABASE_ANON_KEY, "Authorization": f"Bearer {access_token}"},
            )
    except httpx.HTTPError as e:
        logger.warning(f"⚠️ Sign-out request failed: {e}")
