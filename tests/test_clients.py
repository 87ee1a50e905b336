from datetime import datetime, timedelta

from tcreative.domain.clients.service import parse_date
from tcreative.domain.loyalty.service import LoyaltyService
from tcreative.models import Profile

from .conftest import auth_headers


def test_parse_date_ignores_garbage():
    assert parse_date("2026-03-01T00:00:00Z") == datetime(2026, 3, 1)
    assert parse_date("not-a-date") is None
    assert parse_date(None) is None


def test_client_rows_aggregate_bookings_points_and_referrer(
    client, db, admin, customer, make_profile, make_service, make_booking
):
    referrer = make_profile(first_name="Aaliyah", last_name="Grant")
    customer.referred_by = referrer.id
    db.commit()

    service = make_service()
    visit = datetime(2026, 2, 14, 10, 0)
    make_booking(customer, service, status="completed", starts_at=visit, total_in_cents=12000)
    make_booking(customer, service, status="completed", starts_at=visit - timedelta(days=30), total_in_cents=8000)
    make_booking(customer, service, status="confirmed", starts_at=visit + timedelta(days=30), total_in_cents=9900)
    LoyaltyService(db).award_points(customer.id, 150, "manual_credit")

    rows = client.get("/clients", headers=auth_headers(admin)).json()
    by_id = {row["id"]: row for row in rows}
    assert admin.id not in by_id

    row = by_id[customer.id]
    assert row["totalBookings"] == 3
    assert row["totalSpent"] == 20000
    assert row["lastVisit"].startswith("2026-02-14")
    assert row["loyaltyPoints"] == 150
    assert row["referredByName"] == "Aaliyah Grant"

    assert by_id[referrer.id]["totalBookings"] == 0
    assert by_id[referrer.id]["lastVisit"] is None


def test_search_matches_name_email_and_phone(client, admin, customer, make_profile):
    make_profile(first_name="Jordan", last_name="Price", email="jordan@example.com")
    headers = auth_headers(admin)

    assert [r["firstName"] for r in client.get("/clients?search=lop", headers=headers).json()] == ["Maya"]
    assert [r["firstName"] for r in client.get("/clients?search=jordan@", headers=headers).json()] == ["Jordan"]
    assert [r["firstName"] for r in client.get("/clients?search=5550101", headers=headers).json()] == ["Maya"]


def test_create_client_normalizes_fields(client, db, admin):
    response = client.post(
        "/clients",
        json={"firstName": " Keisha ", "email": "Keisha@Example.COM", "phone": "(510) 555-0199", "source": "instagram"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["email"] == "keisha@example.com"
    assert body["phone"] == "+15105550199"
    assert body["referralCode"].startswith("KEISHA-")

    profile = db.query(Profile).filter(Profile.id == body["id"]).one()
    assert profile.role == "client"
    assert profile.first_name == "Keisha"


def test_create_client_rejects_bad_input(client, admin, customer):
    headers = auth_headers(admin)
    bad_phone = client.post("/clients", json={"firstName": "A", "email": "a@example.com", "phone": "555"}, headers=headers)
    assert bad_phone.status_code == 422

    bad_source = client.post(
        "/clients", json={"firstName": "A", "email": "a@example.com", "source": "billboard"}, headers=headers
    )
    assert bad_source.status_code == 422

    duplicate = client.post(
        "/clients", json={"firstName": "Maya", "email": customer.email.upper()}, headers=headers
    )
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "A client with this email already exists"


def test_update_client_email_conflict(client, admin, customer, make_profile):
    other = make_profile(email="other@example.com")
    response = client.patch(f"/clients/{customer.id}", json={"email": other.email}, headers=auth_headers(admin))
    assert response.status_code == 400


def test_update_client_partial(client, db, admin, customer):
    response = client.patch(
        f"/clients/{customer.id}", json={"isVip": True, "tags": "vip, lash"}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    db.refresh(customer)
    assert customer.is_vip is True
    assert customer.first_name == "Maya"


def test_delete_blocked_while_bookings_exist(client, admin, customer, make_service, make_booking):
    make_booking(customer, make_service())
    make_booking(customer, make_service())
    response = client.delete(f"/clients/{customer.id}", headers=auth_headers(admin))
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot delete: client has 2 bookings."


def test_delete_client_with_points(client, db, admin, customer):
    LoyaltyService(db).award_points(customer.id, 10, "manual_credit")
    response = client.delete(f"/clients/{customer.id}", headers=auth_headers(admin))
    assert response.json() == {"message": "Client deleted"}
    assert db.query(Profile).filter(Profile.id == customer.id).first() is None


def test_staff_cannot_be_deleted_as_client(client, admin, assistant):
    assert client.delete(f"/clients/{assistant.id}", headers=auth_headers(admin)).status_code == 404


def test_csv_export(client, admin, customer):
    response = client.get("/clients/export", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.strip().splitlines()
    assert lines[0].startswith("ID,First Name,Last Name,Email")
    assert "Maya,Lopez" in lines[1]
    assert len(lines) == 2
