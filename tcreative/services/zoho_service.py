"""
Zoho CRM Service
OAuth token refresh shared with Zoho Books, plus contact/deal/note sync.

Every public call is fire-and-forget: failures are logged to sync_log and
never raised to the caller.
"""

import logging
import time
from typing import Any, Optional

import httpx
from sqlalchemy.orm import Session

from ..config import (
    ZOHO_ACCOUNTS_URL,
    ZOHO_API_DOMAIN,
    ZOHO_CLIENT_ID,
    ZOHO_CLIENT_SECRET,
    ZOHO_REFRESH_TOKEN,
)
from ..models import Booking, Profile
from .sync_log import log_sync

logger = logging.getLogger(__name__)

# Cached access token; refreshed 5 minutes before Zoho's expiry
_access_token: Optional[str] = None
_token_expires_at: float = 0


class ZohoError(Exception):
    pass


def is_zoho_configured() -> bool:
    return bool(ZOHO_CLIENT_ID and ZOHO_CLIENT_SECRET and ZOHO_REFRESH_TOKEN)


async def get_zoho_access_token() -> str:
    """Return a valid access token, refreshing with the long-lived refresh token when expired"""
    global _access_token, _token_expires_at

    if _access_token and time.time() < _token_expires_at:
        return _access_token

    async with httpx.AsyncClient(timeout=30.0) as http_client:
        response = await http_client.post(
            f"{ZOHO_ACCOUNTS_URL}/oauth/v2/token",
            params={
                "grant_type": "refresh_token",
                "client_id": ZOHO_CLIENT_ID,
                "client_secret": ZOHO_CLIENT_SECRET,
                "refresh_token": ZOHO_REFRESH_TOKEN,
            },
        )

    if response.status_code != 200:
        raise ZohoError(f"Zoho OAuth refresh failed ({response.status_code}): {response.text}")

    data = response.json()
    _access_token = data["access_token"]
    _token_expires_at = time.time() + (int(data.get("expires_in", 3600)) - 300)
    logger.info("✅ Zoho access token refreshed")
    return _access_token


async def zoho_request(
    base_path: str, path: str, method: str = "GET", body: Optional[dict] = None, params: Optional[dict] = None
) -> dict[str, Any]:
    """Authenticated call to a Zoho product API, e.g. base_path='/crm/v7'"""
    token = await get_zoho_access_token()
    async with httpx.AsyncClient(timeout=30.0) as http_client:
        response = await http_client.request(
            method,
            f"{ZOHO_API_DOMAIN}{base_path}{path}",
            json=body,
            params=params,
            headers={"Authorization": f"Zoho-oauthtoken {token}"},
        )

    if response.status_code >= 400:
        raise ZohoError(f"Zoho {method} {path} failed ({response.status_code}): {response.text}")

    return response.json() if response.content else {}


def _first_record_id(result: dict) -> Optional[str]:
    records = result.get("data") or []
    if not records:
        return None
    return (records[0].get("details") or {}).get("id")


# ============================================================================
# CRM
# ============================================================================


async def upsert_zoho_contact(db: Session, profile: Profile, description: Optional[str] = None) -> None:
    """Create or update the CRM contact for a profile (duplicate check on Email)"""
    if not is_zoho_configured():
        return

    try:
        contact: dict[str, Any] = {
            "Email": profile.email,
            "First_Name": profile.first_name,
            "Last_Name": profile.last_name or profile.first_name,
        }
        if profile.phone:
            contact["Phone"] = profile.phone
        if profile.source:
            contact["Lead_Source"] = profile.source
        if description:
            contact["Description"] = description
        if profile.role:
            contact["Title"] = profile.role
        if profile.is_vip:
            contact["Tag"] = [{"name": "VIP"}]

        result = await zoho_request(
            "/crm/v7",
            "/Contacts/upsert",
            method="POST",
            body={"data": [contact], "duplicate_check_fields": ["Email"]},
        )
        contact_id = _first_record_id(result)
        if contact_id:
            profile.zoho_contact_id = contact_id
            db.commit()

        log_sync(
            db,
            provider="zoho",
            status="success",
            entity_type="contact",
            local_id=profile.id,
            remote_id=contact_id,
            message=f"Upserted contact {profile.email}",
        )
    except Exception as e:
        logger.error(f"❌ Failed to upsert Zoho contact: {e}")
        log_sync(
            db, provider="zoho", status="failed", entity_type="contact", local_id=profile.id, error_message=str(e)
        )


async def create_zoho_deal(
    db: Session,
    contact_email: str,
    deal_name: str,
    stage: str,
    amount_in_cents: Optional[int] = None,
    pipeline: Optional[str] = None,
    booking_id: Optional[int] = None,
    external_id: Optional[str] = None,
) -> None:
    """Create a deal linked to the contact; the deal id is stored on the booking when given"""
    if not is_zoho_configured():
        return

    local_id = str(booking_id) if booking_id else external_id
    try:
        profile = db.query(Profile).filter(Profile.email == contact_email).first()

        deal: dict[str, Any] = {"Deal_Name": deal_name, "Stage": stage}
        if amount_in_cents is not None:
            deal["Amount"] = amount_in_cents / 100
        if pipeline:
            deal["Pipeline"] = pipeline
        if profile and profile.zoho_contact_id:
            deal["Contact_Name"] = {"id": profile.zoho_contact_id}

        result = await zoho_request("/crm/v7", "/Deals", method="POST", body={"data": [deal]})
        deal_id = _first_record_id(result)

        if deal_id and booking_id:
            booking = db.query(Booking).filter(Booking.id == booking_id).first()
            if booking:
                booking.zoho_project_id = deal_id
                db.commit()

        log_sync(
            db,
            provider="zoho",
            status="success",
            entity_type="deal",
            local_id=local_id,
            remote_id=deal_id,
            message=f"Created deal: {deal_name}",
        )
    except Exception as e:
        logger.error(f"❌ Failed to create Zoho deal: {e}")
        log_sync(db, provider="zoho", status="failed", entity_type="deal", local_id=local_id, error_message=str(e))


async def update_zoho_deal_stage(db: Session, booking_id: int, stage: str) -> None:
    if not is_zoho_configured():
        return

    try:
        booking = db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking or not booking.zoho_project_id:
            return

        await zoho_request(
            "/crm/v7", f"/Deals/{booking.zoho_project_id}", method="PUT", body={"data": [{"Stage": stage}]}
        )
        log_sync(
            db,
            provider="zoho",
            status="success",
            entity_type="deal",
            local_id=str(booking_id),
            remote_id=booking.zoho_project_id,
            message=f"Updated deal stage to {stage}",
        )
    except Exception as e:
        logger.error(f"❌ Failed to update Zoho deal: {e}")
        log_sync(
            db, provider="zoho", status="failed", entity_type="deal", local_id=str(booking_id), error_message=str(e)
        )


async def log_zoho_note(db: Session, profile_id: str, title: str, content: str) -> None:
    """Attach a note to the profile's CRM contact, if it has one"""
    if not is_zoho_configured():
        return

    try:
        profile = db.query(Profile).filter(Profile.id == profile_id).first()
        if not profile or not profile.zoho_contact_id:
            return

        await zoho_request(
            "/crm/v7",
            "/Notes",
            method="POST",
            body={
                "data": [
                    {
                        "Note_Title": title,
                        "Note_Content": content,
                        "Parent_Id": {"module": {"api_name": "Contacts"}, "id": profile.zoho_contact_id},
                        "se_module": "Contacts",
                    }
                ]
            },
        )
        log_sync(
            db,
            provider="zoho",
            status="success",
            entity_type="note",
            local_id=profile_id,
            remote_id=profile.zoho_contact_id,
            message=f"Added note: {title}",
        )
    except Exception as e:
        logger.error(f"❌ Failed to log Zoho note: {e}")
        log_sync(db, provider="zoho", status="failed", entity_type="note", local_id=profile_id, error_message=str(e))
