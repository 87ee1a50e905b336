"""Catalog repository - Database operations for services and add-ons"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Service, ServiceAddOn


class CatalogRepository:
    """Repository for service menu operations"""

    @staticmethod
    def get_services(db: Session, active_only: bool = False) -> list[Service]:
        query = db.query(Service)
        if active_only:
            query = query.filter(Service.is_active == True)  # noqa: E712
        return query.order_by(Service.category, Service.sort_order, Service.name).all()

    @staticmethod
    def get_service_by_id(db: Session, service_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def create_service(db: Session, **data) -> Service:
        service = Service(**data)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def update_service(db: Session, service: Service, **updates) -> Service:
        for key, value in updates.items():
            setattr(service, key, value)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def delete_service(db: Session, service: Service) -> None:
        db.delete(service)
        db.commit()

    @staticmethod
    def get_add_on_by_id(db: Session, add_on_id: int) -> Optional[ServiceAddOn]:
        return db.query(ServiceAddOn).filter(ServiceAddOn.id == add_on_id).first()

    @staticmethod
    def get_add_ons(db: Session, service_id: int, active_only: bool = False) -> list[ServiceAddOn]:
        query = db.query(ServiceAddOn).filter(ServiceAddOn.service_id == service_id)
        if active_only:
            query = query.filter(ServiceAddOn.is_active == True)  # noqa: E712
        return query.order_by(ServiceAddOn.id).all()

    @staticmethod
    def create_add_on(db: Session, **data) -> ServiceAddOn:
        add_on = ServiceAddOn(**data)
        db.add(add_on)
        db.commit()
        db.refresh(add_on)
        return add_on

    @staticmethod
    def delete_add_on(db: Session, add_on: ServiceAddOn) -> None:
        db.delete(add_on)
        db.commit()
