"""Client service - Business logic for the CRM client list"""

import csv
import logging
from datetime import datetime
from io import StringIO
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...models import Profile
from ...services import zoho_service
from ..loyalty.service import LoyaltyService
from .repository import ClientRepository
from .schemas import ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)

CLIENT_FIELD_MAP = {
    "firstName": "first_name",
    "lastName": "last_name",
    "email": "email",
    "phone": "phone",
    "source": "source",
    "isVip": "is_vip",
    "internalNotes": "internal_notes",
    "tags": "tags",
}


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """ISO date filter; invalid values are ignored"""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError as e:
        logger.warning(f"Invalid date filter: {value} - {e}")
        return None


def client_row(row) -> dict:
    profile, referred_by_name, total_bookings, total_spent, last_visit, loyalty_points = row
    return {
        "id": profile.id,
        "firstName": profile.first_name or "",
        "lastName": profile.last_name or "",
        "email": profile.email,
        "phone": profile.phone,
        "source": profile.source,
        "isVip": profile.is_vip,
        "internalNotes": profile.internal_notes,
        "tags": profile.tags,
        "referralCode": profile.referral_code,
        "referredByName": referred_by_name,
        "createdAt": profile.created_at,
        "totalBookings": int(total_bookings or 0),
        "totalSpent": int(total_spent or 0),
        "lastVisit": last_visit,
        "loyaltyPoints": int(loyalty_points or 0),
    }


class ClientService:
    """Service layer for client business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ClientRepository()

    def list_clients(
        self, search: Optional[str] = None, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> list[dict]:
        rows = self.repo.get_client_rows(self.db, search, parse_date(start_date), parse_date(end_date))
        return [client_row(r) for r in rows]

    def get_client(self, client_id: str) -> Profile:
        client = self.repo.get_client_by_id(self.db, client_id)
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")
        return client

    async def create_client(self, data: ClientCreate) -> Profile:
        """Admin-created client; no auth account is created, only the profile row"""
        if self.repo.get_profile_by_email(self.db, data.email):
            raise HTTPException(status_code=400, detail="A client with this email already exists")

        values = {column: getattr(data, field) for field, column in CLIENT_FIELD_MAP.items()}
        client = self.repo.create_client(
            self.db, referral_code=LoyaltyService(self.db).new_referral_code(data.firstName), **values
        )
        logger.info(f"✅ Created client {client.id} ({client.email})")

        await zoho_service.upsert_zoho_contact(self.db, client, description="Added from the admin dashboard")
        return client

    def update_client(self, client_id: str, data: ClientUpdate) -> Profile:
        client = self.get_client(client_id)
        provided = data.model_dump(exclude_unset=True)

        if provided.get("email") and provided["email"] != client.email:
            existing = self.repo.get_profile_by_email(self.db, provided["email"])
            if existing and existing.id != client.id:
                raise HTTPException(status_code=400, detail="A client with this email already exists")

        updates = {CLIENT_FIELD_MAP[field]: value for field, value in provided.items()}
        return self.repo.update_client(self.db, client, **updates)

    def delete_client(self, client_id: str) -> dict:
        client = self.get_client(client_id)
        booking_count = self.repo.count_bookings(self.db, client_id)
        if booking_count:
            plural = "s" if booking_count != 1 else ""
            raise HTTPException(
                status_code=400, detail=f"Cannot delete: client has {booking_count} booking{plural}."
            )

        self.repo.delete_client(self.db, client)
        logger.info(f"🗑️ Deleted client {client_id}")
        return {"message": "Client deleted"}

    def export_clients_csv(
        self, search: Optional[str] = None, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> StreamingResponse:
        """Export the filtered client list as CSV"""
        clients = self.list_clients(search, start_date, end_date)
        logger.info(f"📊 CSV export of {len(clients)} clients")

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(
            [
                "ID",
                "First Name",
                "Last Name",
                "Email",
                "Phone",
                "Source",
                "VIP",
                "Tags",
                "Referred By",
                "Total Bookings",
                "Total Spent ($)",
                "Last Visit",
                "Loyalty Points",
                "Created At",
            ]
        )
        for c in clients:
            writer.writerow(
                [
                    c["id"],
                    c["firstName"],
                    c["lastName"],
                    c["email"],
                    c["phone"] or "",
                    c["source"] or "",
                    "Yes" if c["isVip"] else "No",
                    c["tags"] or "",
                    c["referredByName"] or "",
                    c["totalBookings"],
                    f"{c['totalSpent'] / 100:.2f}",
                    c["lastVisit"].strftime("%Y-%m-%d") if c["lastVisit"] else "",
                    c["loyaltyPoints"],
                    c["createdAt"].strftime("%Y-%m-%d %H:%M:%S") if c["createdAt"] else "",
                ]
            )

        output.seek(0)
        filename = f"clients_export_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )
