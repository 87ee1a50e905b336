"""
Assistant invites.
Admins generate a signed invite link; signing in through it promotes the account to assistant.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .. import email_service
from ..auth import require_admin
from ..config import SITE_URL
from ..database import get_db
from ..models import Profile
from ..rate_limiter import create_rate_limiter
from ..security_utils import create_invite_token
from ..shared.validators import validate_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/invites", tags=["Invites"])

invite_rate_limit = create_rate_limiter(limit=20, window_seconds=3600, key_prefix="invites")


class InviteRequest(BaseModel):
    email: Optional[str] = None


@router.post("")
async def create_invite(
    data: InviteRequest,
    current_user: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
    _: None = Depends(invite_rate_limit),
):
    if not data.email or not data.email.strip():
        raise HTTPException(status_code=400, detail="Email is required")
    try:
        email = validate_email(data.email)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    invite_url = f"{SITE_URL}/login?invite={create_invite_token(email)}"

    # The link is returned even when the email cannot be sent
    await email_service.send_invite_email(db, email, invite_url)
    logger.info(f"📨 Invite created for {email} by {current_user.id}")
    return {"invite_url": invite_url}
