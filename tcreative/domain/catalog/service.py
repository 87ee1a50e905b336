"""Catalog service - Business logic for the service menu"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Service, ServiceAddOn
from .repository import CatalogRepository
from .schemas import AddOnCreate, ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)

SERVICE_FIELD_MAP = {
    "category": "category",
    "name": "name",
    "description": "description",
    "priceInCents": "price_in_cents",
    "priceMinInCents": "price_min_in_cents",
    "priceMaxInCents": "price_max_in_cents",
    "depositInCents": "deposit_in_cents",
    "durationMinutes": "duration_minutes",
    "sortOrder": "sort_order",
    "isActive": "is_active",
}


def add_on_to_dict(add_on: ServiceAddOn) -> dict:
    return {
        "id": add_on.id,
        "serviceId": add_on.service_id,
        "name": add_on.name,
        "description": add_on.description,
        "priceInCents": add_on.price_in_cents,
        "additionalMinutes": add_on.additional_minutes,
        "isActive": add_on.is_active,
    }


def service_to_dict(service: Service, active_add_ons_only: bool = False) -> dict:
    add_ons = [a for a in service.add_ons if a.is_active or not active_add_ons_only]
    return {
        "id": service.id,
        "category": service.category,
        "name": service.name,
        "description": service.description,
        "priceInCents": service.price_in_cents,
        "priceMinInCents": service.price_min_in_cents,
        "priceMaxInCents": service.price_max_in_cents,
        "depositInCents": service.deposit_in_cents,
        "durationMinutes": service.duration_minutes,
        "sortOrder": service.sort_order,
        "isActive": service.is_active,
        "addOns": [add_on_to_dict(a) for a in add_ons],
    }


class CatalogService:
    """Service layer for services and their add-ons"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CatalogRepository()

    def get_active_services(self) -> list[dict]:
        """Public menu: active services with their active add-ons"""
        return [service_to_dict(s, active_add_ons_only=True) for s in self.repo.get_services(self.db, active_only=True)]

    def get_all_services(self) -> list[dict]:
        return [service_to_dict(s) for s in self.repo.get_services(self.db)]

    def get_service(self, service_id: int) -> Service:
        service = self.repo.get_service_by_id(self.db, service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        return service

    def create_service(self, data: ServiceCreate) -> dict:
        values = {column: getattr(data, field) for field, column in SERVICE_FIELD_MAP.items()}
        service = self.repo.create_service(self.db, **values)
        logger.info(f"✅ Created service {service.id}: {service.name}")
        return service_to_dict(service)

    def update_service(self, service_id: int, data: ServiceUpdate) -> dict:
        service = self.get_service(service_id)
        provided = data.model_dump(exclude_unset=True)
        updates = {SERVICE_FIELD_MAP[field]: value for field, value in provided.items()}
        return service_to_dict(self.repo.update_service(self.db, service, **updates))

    def toggle_service(self, service_id: int) -> dict:
        service = self.get_service(service_id)
        return service_to_dict(self.repo.update_service(self.db, service, is_active=not service.is_active))

    def delete_service(self, service_id: int) -> dict:
        service = self.get_service(service_id)
        self.repo.delete_service(self.db, service)
        logger.info(f"🗑️ Deleted service {service_id}")
        return {"message": "Service deleted"}

    # ------------------------------------------------------------------
    # Add-ons
    # ------------------------------------------------------------------

    def get_add_ons(self, service_id: int) -> list[dict]:
        self.get_service(service_id)
        return [add_on_to_dict(a) for a in self.repo.get_add_ons(self.db, service_id)]

    def create_add_on(self, service_id: int, data: AddOnCreate) -> dict:
        self.get_service(service_id)
        add_on = self.repo.create_add_on(
            self.db,
            service_id=service_id,
            name=data.name,
            description=data.description,
            price_in_cents=data.priceInCents,
            additional_minutes=data.additionalMinutes,
        )
        return add_on_to_dict(add_on)

    def delete_add_on(self, service_id: int, add_on_id: int) -> dict:
        add_on = self.repo.get_add_on_by_id(self.db, add_on_id)
        if not add_on or add_on.service_id != service_id:
            raise HTTPException(status_code=404, detail="Add-on not found")
        self.repo.delete_add_on(self.db, add_on)
        return {"message": "Add-on deleted"}
