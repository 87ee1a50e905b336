"""
OAuth callback for the auth platform's PKCE sign-in flow.

Exchanges the one-time code for a session, applies role promotions (admin
allowlist, assistant invite) and redirects each role to where it belongs.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from .. import auth
from ..config import ADMIN_EMAILS, SITE_URL
from ..database import get_db
from ..domain.loyalty.service import LoyaltyService
from ..models import Profile
from ..rate_limiter import create_rate_limiter
from ..security_utils import verify_invite_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

callback_rate_limit = create_rate_limiter(limit=20, window_seconds=60, key_prefix="auth_callback")

SIGN_IN_ERROR = "/auth/error?detail=Something+went+wrong+during+sign-in.+Please+try+again."
AUTH_FAILED = "/auth/error?detail=Authentication+failed.+Please+try+again."

ACCESS_TOKEN_COOKIE = "sb-access-token"
REFRESH_TOKEN_COOKIE = "sb-refresh-token"
CODE_VERIFIER_SUFFIX = "-auth-token-code-verifier"


def is_onboarding_complete(profile: Optional[Profile]) -> bool:
    """The onboarding wizard's last step sets the first name"""
    return bool(profile and profile.first_name)


def find_code_verifier(request: Request) -> Optional[str]:
    """PKCE verifier left by the browser client, stored in a cookie named sb-<project>-auth-token-code-verifier"""
    verifier = request.query_params.get("code_verifier")
    if verifier:
        return verifier
    for name, value in request.cookies.items():
        if name.endswith(CODE_VERIFIER_SUFFIX):
            return value.strip('"')
    return None


def redirect_to(path: str) -> RedirectResponse:
    return RedirectResponse(url=f"{SITE_URL}{path}", status_code=303)


def resolve_redirect(profile: Profile, assigned_admin: bool, assigned_assistant: bool) -> str:
    if assigned_admin or profile.role == "admin":
        return "/admin" if is_onboarding_complete(profile) else "/onboarding?role=admin"

    is_assistant = assigned_assistant or profile.role == "assistant"
    if not is_onboarding_complete(profile):
        return f"/onboarding?role={'assistant' if is_assistant else 'client'}"
    return "/assistant" if is_assistant else "/"


@router.get("/callback")
async def auth_callback(
    request: Request,
    code: Optional[str] = None,
    invite: Optional[str] = None,
    db: Session = Depends(get_db),
    _: None = Depends(callback_rate_limit),
):
    if not code:
        return redirect_to(SIGN_IN_ERROR)

    try:
        session = await auth.exchange_code_for_session(code, find_code_verifier(request))
    except auth.AuthExchangeError as e:
        logger.warning(f"⚠️ Auth code exchange failed: {e}")
        return redirect_to(AUTH_FAILED)

    user = session.get("user") or {}
    access_token = session.get("access_token")
    if not user.get("id") or not access_token:
        return redirect_to(AUTH_FAILED)

    email = (user.get("email") or "").lower()
    try:
        profile = auth.get_or_create_profile(db, user["id"], email)
    except HTTPException:
        return redirect_to(AUTH_FAILED)

    assigned_admin = False
    if email and email in ADMIN_EMAILS:
        if profile.role != "admin":
            profile.role = "admin"
            db.commit()
            logger.info(f"👑 Promoted {email} to admin")
        assigned_admin = True

    assigned_assistant = False
    if not assigned_admin and invite:
        if verify_invite_token(invite):
            profile.role = "assistant"
            db.commit()
            assigned_assistant = True
            logger.info(f"✅ Invite accepted, {email} is now an assistant")
        else:
            logger.warning(f"⚠️ Invalid or expired invite token for {email}")

    if not profile.is_active:
        await auth.sign_out(access_token)
        response = redirect_to("/suspended")
        response.delete_cookie(ACCESS_TOKEN_COOKIE)
        response.delete_cookie(REFRESH_TOKEN_COOKIE)
        return response

    if profile.role == "client" and not profile.referral_code:
        profile.referral_code = LoyaltyService(db).new_referral_code(profile.first_name)
        db.commit()

    response = redirect_to(resolve_redirect(profile, assigned_admin, assigned_assistant))
    secure = SITE_URL.startswith("https://")
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        access_token,
        max_age=int(session.get("expires_in") or 3600),
        httponly=True,
        secure=secure,
        samesite="lax",
    )
    if session.get("refresh_token"):
        response.set_cookie(
            REFRESH_TOKEN_COOKIE, session["refresh_token"], httponly=True, secure=secure, samesite="lax"
        )
    return response
