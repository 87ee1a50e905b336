"""Client router - FastAPI endpoints for the CRM client list"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import Profile
from .schemas import ClientCreate, ClientRow, ClientUpdate
from .service import ClientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])


def get_client_service(db: Session = Depends(get_db)) -> ClientService:
    """Dependency injection for ClientService"""
    return ClientService(db)


def _client_result(client: Profile) -> dict:
    return {"id": client.id, "email": client.email, "phone": client.phone, "referralCode": client.referral_code}


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=list[ClientRow])
async def get_clients(
    search: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    _: Profile = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
):
    """Clients with booking count, completed spend, last visit, points and referrer"""
    return service.list_clients(search, start_date, end_date)


@router.get("/export")
async def export_clients(
    search: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    _: Profile = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
):
    return service.export_clients_csv(search, start_date, end_date)


@router.post("")
async def create_client(
    data: ClientCreate,
    _: Profile = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
):
    return _client_result(await service.create_client(data))


@router.patch("/{client_id}")
async def update_client(
    client_id: str,
    data: ClientUpdate,
    _: Profile = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
):
    return _client_result(service.update_client(client_id, data))


@router.delete("/{client_id}")
async def delete_client(
    client_id: str,
    _: Profile = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
):
    return service.delete_client(client_id)
