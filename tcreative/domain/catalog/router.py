"""Catalog router - FastAPI endpoints for the service menu"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import Profile
from .schemas import AddOnCreate, AddOnResponse, ServiceCreate, ServiceResponse, ServiceUpdate
from .service import CatalogService

router = APIRouter(prefix="/services", tags=["Services"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db)


# ============================================================================
# PUBLIC
# ============================================================================


@router.get("", response_model=list[ServiceResponse])
async def list_active_services(service: CatalogService = Depends(get_catalog_service)):
    """Active services ordered by category and sort order"""
    return service.get_active_services()


# ============================================================================
# ADMIN
# ============================================================================


@router.get("/admin", response_model=list[ServiceResponse])
async def list_all_services(
    _: Profile = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.get_all_services()


@router.post("", response_model=ServiceResponse)
async def create_service(
    data: ServiceCreate,
    _: Profile = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.create_service(data)


@router.patch("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: int,
    data: ServiceUpdate,
    _: Profile = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.update_service(service_id, data)


@router.post("/{service_id}/toggle", response_model=ServiceResponse)
async def toggle_service(
    service_id: int,
    _: Profile = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    """Flip a service between active and hidden"""
    return service.toggle_service(service_id)


@router.delete("/{service_id}")
async def delete_service(
    service_id: int,
    _: Profile = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.delete_service(service_id)


@router.get("/{service_id}/add-ons", response_model=list[AddOnResponse])
async def list_add_ons(
    service_id: int,
    _: Profile = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.get_add_ons(service_id)


@router.post("/{service_id}/add-ons", response_model=AddOnResponse)
async def create_add_on(
    service_id: int,
    data: AddOnCreate,
    _: Profile = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.create_add_on(service_id, data)


@router.delete("/{service_id}/add-ons/{add_on_id}")
async def delete_add_on(
    service_id: int,
    add_on_id: int,
    _: Profile = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.delete_add_on(service_id, add_on_id)
