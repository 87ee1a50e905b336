"""
Shared test configuration.

Environment is pinned before the application is imported: an in-memory
SQLite database, rate limiting off, and fixed secrets so bearer tokens and
invite links can be minted in tests. Square, Zoho and Resend stay
unconfigured unless a test patches them in.
"""

import os
from datetime import datetime, timedelta

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["SUPABASE_URL"] = "https://auth.tcreative.test"
os.environ["SUPABASE_ANON_KEY"] = "anon-key"
os.environ["SITE_URL"] = "https://tcreative.test"
os.environ["ADMIN_EMAILS"] = "owner@tcreative.test"
os.environ["CRON_SECRET"] = "cron-secret"
os.environ["SECURITY_HEADERS_ENABLED"] = "true"
for key in (
    "SQUARE_ACCESS_TOKEN",
    "SQUARE_LOCATION_ID",
    "SQUARE_WEBHOOK_SIGNATURE_KEY",
    "SQUARE_WEBHOOK_URL",
    "RESEND_API_KEY",
    "ZOHO_CLIENT_ID",
    "ZOHO_CLIENT_SECRET",
    "ZOHO_REFRESH_TOKEN",
    "ZOHO_BOOKS_ORGANIZATION_ID",
):
    os.environ.pop(key, None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402

from tcreative import models  # noqa: E402
from tcreative.database import Base, SessionLocal, engine  # noqa: E402
from tcreative.main import app  # noqa: E402


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    with TestClient(app) as test_client:
        yield test_client


def auth_headers(profile: models.Profile) -> dict:
    token = jwt.encode(
        {
            "sub": profile.id,
            "email": profile.email,
            "aud": "authenticated",
            "exp": datetime.utcnow() + timedelta(hours=1),
        },
        os.environ["SUPABASE_JWT_SECRET"],
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


# ============================================================================
# FACTORIES
# ============================================================================


@pytest.fixture
def make_profile(db):
    counter = {"n": 0}

    def _make(role="client", first_name="Maya", last_name="Lopez", **kwargs):
        counter["n"] += 1
        profile = models.Profile(
            role=role,
            first_name=first_name,
            last_name=last_name,
            email=kwargs.pop("email", f"{role}{counter['n']}@example.com"),
            **kwargs,
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile

    return _make


@pytest.fixture
def admin(make_profile):
    return make_profile(role="admin", first_name="Trini", last_name="Owner")


@pytest.fixture
def assistant(make_profile):
    return make_profile(role="assistant", first_name="Jade", last_name="Kim")


@pytest.fixture
def customer(make_profile):
    return make_profile(role="client", first_name="Maya", last_name="Lopez", phone="+15105550101")


@pytest.fixture
def make_service(db):
    def _make(**kwargs):
        values = {
            "category": "lash",
            "name": "Classic Lash Set",
            "price_in_cents": 12000,
            "duration_minutes": 120,
        }
        values.update(kwargs)
        service = models.Service(**values)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    return _make


@pytest.fixture
def make_booking(db):
    def _make(client, service, **kwargs):
        values = {
            "client_id": client.id,
            "service_id": service.id,
            "status": "confirmed",
            "starts_at": datetime.utcnow() + timedelta(days=2),
            "duration_minutes": service.duration_minutes or 60,
            "total_in_cents": service.price_in_cents or 0,
        }
        values.update(kwargs)
        booking = models.Booking(**values)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make


@pytest.fixture
def make_product(db):
    counter = {"n": 0}

    def _make(**kwargs):
        counter["n"] += 1
        values = {
            "title": f"Crochet Tote {counter['n']}",
            "slug": f"crochet-tote-{counter['n']}",
            "pricing_type": "fixed_price",
            "price_in_cents": 4500,
            "availability": "in_stock",
            "stock_count": 5,
            "is_published": True,
        }
        values.update(kwargs)
        product = models.Product(**values)
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture
def make_program(db):
    counter = {"n": 0}

    def _make(**kwargs):
        counter["n"] += 1
        values = {
            "name": f"Lash Certification {counter['n']}",
            "slug": f"lash-certification-{counter['n']}",
            "type": "lash",
            "price_in_cents": 150000,
            "max_students": 4,
        }
        values.update(kwargs)
        program = models.TrainingProgram(**values)
        db.add(program)
        db.commit()
        db.refresh(program)
        return program

    return _make
