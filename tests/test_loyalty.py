import pytest
from fastapi import HTTPException

from tcreative.domain.loyalty.service import LoyaltyService
from tcreative.domain.loyalty.tiers import get_loyalty_tier
from tcreative.models import LoyaltyTransaction

from .conftest import auth_headers


@pytest.mark.parametrize(
    "points,name,points_to_next",
    [
        (-40, "Bronze", 340),
        (0, "Bronze", 300),
        (299, "Bronze", 1),
        (300, "Silver", 400),
        (699, "Silver", 1),
        (700, "Gold", 800),
        (1500, "Platinum", None),
        (9000, "Platinum", None),
    ],
)
def test_loyalty_tier_thresholds(points, name, points_to_next):
    tier = get_loyalty_tier(points)
    assert tier["name"] == name
    assert tier["points_to_next"] == points_to_next


def test_award_points_skips_zero(db, customer):
    service = LoyaltyService(db)
    assert service.award_points(customer.id, 0, "manual_credit") is None
    assert db.query(LoyaltyTransaction).count() == 0


def test_award_once_is_idempotent_per_reference(db, customer):
    service = LoyaltyService(db)
    service.award_once(customer.id, 100, "first_booking", "First booking", "12")
    service.award_once(customer.id, 100, "first_booking", "First booking", "12")
    assert service.get_balance(customer.id) == 100


def test_issue_reward_rejects_unknown_client(db):
    with pytest.raises(HTTPException) as exc:
        LoyaltyService(db).issue_loyalty_reward("missing", 50, "Welcome gift")
    assert exc.value.status_code == 404


def test_debit_defaults_to_manual_debit(db, customer):
    transaction = LoyaltyService(db).issue_loyalty_reward(customer.id, -25, "Correction")
    assert transaction.type == "manual_debit"


def test_new_referral_code_avoids_existing_codes(db, make_profile, monkeypatch):
    make_profile(referral_code="MAYA-AAAA")
    codes = iter(["MAYA-AAAA", "MAYA-BBBB"])
    monkeypatch.setattr("tcreative.domain.loyalty.service.generate_referral_code", lambda _name: next(codes))
    assert LoyaltyService(db).new_referral_code("Maya") == "MAYA-BBBB"


def test_new_referral_code_gives_up_after_collisions(db, make_profile, monkeypatch):
    make_profile(referral_code="MAYA-AAAA")
    monkeypatch.setattr("tcreative.domain.loyalty.service.generate_referral_code", lambda _name: "MAYA-AAAA")
    assert LoyaltyService(db).new_referral_code("Maya") is None


def test_my_loyalty_endpoint(client, db, customer, make_profile):
    customer.referral_code = "MAYA-7K2Q"
    db.commit()
    make_profile(referred_by=customer.id)
    LoyaltyService(db).award_points(customer.id, 350, "manual_credit", "Welcome back")

    response = client.get("/loyalty/me", headers=auth_headers(customer))
    assert response.status_code == 200
    body = response.json()
    assert body["totalPoints"] == 350
    assert body["tier"]["name"] == "Silver"
    assert body["referralCount"] == 1
    assert len(body["transactions"]) == 1


def test_rewards_require_admin(client, customer):
    response = client.post(
        "/loyalty/rewards",
        json={"profileId": customer.id, "points": 10, "description": "Thanks"},
        headers=auth_headers(customer),
    )
    assert response.status_code == 403


def test_admin_issues_reward(client, admin, customer):
    response = client.post(
        "/loyalty/rewards",
        json={"profileId": customer.id, "points": 75, "description": "Event bonus"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["type"] == "manual_credit"


def test_leaderboard_ranks_clients_by_points(client, db, admin, make_profile):
    low = make_profile(first_name="Low")
    high = make_profile(first_name="High")
    service = LoyaltyService(db)
    service.award_points(low.id, 20, "manual_credit")
    service.award_points(high.id, 900, "manual_credit")

    response = client.get("/loyalty/leaderboard", headers=auth_headers(admin))
    assert response.status_code == 200
    names = [entry["firstName"] for entry in response.json()]
    assert names[:2] == ["High", "Low"]
    assert response.json()[0]["tier"] == "Gold"


def test_missing_bearer_token_is_rejected(client):
    assert client.get("/loyalty/me").status_code in (401, 403)


def test_award_once_pays_each_new_reference(db, customer):
    service = LoyaltyService(db)
    service.award_once(customer.id, 30, "product_purchase", "Shop order TC-A1", "TC-A1")
    service.award_once(customer.id, 20, "product_purchase", "Shop order TC-B2", "TC-B2")
    assert service.get_balance(customer.id) == 50
