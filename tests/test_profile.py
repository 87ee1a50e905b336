import pytest

from tcreative.models import LoyaltyTransaction, Profile
from tcreative.routes.auth_callback import is_onboarding_complete
from tcreative.services import zoho_service

from .conftest import auth_headers


def onboarding(**overrides):
    payload = {
        "firstName": "Keisha",
        "lastName": "Brown",
        "phone": "(510) 555-0144",
        "source": "referral",
        "notifications": {"sms": False, "email": True, "marketing": True},
        "birthday": "3/7",
        "answers": {"interests": ["lash"], "waiverAgreed": True},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def newcomer(make_profile):
    """Profile as the auth callback leaves it on first sign-in"""
    return make_profile(first_name="", last_name="", email="keisha@example.com")


@pytest.fixture
def referrer(make_profile):
    return make_profile(first_name="Aaliyah", last_name="Grant", email="aaliyah@example.com", referral_code="AALIYAH-7K2Q")


def points_of(db, profile, type):
    return [t.points for t in db.query(LoyaltyTransaction).filter_by(profile_id=profile.id, type=type)]


# ============================================================================
# ONBOARDING
# ============================================================================


def test_onboarding_saves_answers_and_completes_profile(client, db, newcomer):
    assert not is_onboarding_complete(newcomer)

    response = client.post("/profile/onboarding", json=onboarding(), headers=auth_headers(newcomer))
    assert response.status_code == 200
    body = response.json()
    assert body["redirect"] == "/"
    assert body["referralCode"].startswith("KEISHA-")

    db.refresh(newcomer)
    assert is_onboarding_complete(newcomer)
    assert (newcomer.first_name, newcomer.last_name) == ("Keisha", "Brown")
    assert newcomer.phone == "+15105550144"
    assert newcomer.source == "referral"
    assert (newcomer.notify_sms, newcomer.notify_email, newcomer.notify_marketing) == (False, True, True)
    assert newcomer.onboarding_data["birthday"] == "03/07"
    assert newcomer.onboarding_data["interests"] == ["lash"]


def test_rerunning_onboarding_keeps_earlier_answers(client, db, make_profile):
    returning = make_profile(onboarding_data={"allergies": "latex", "birthday": "12/01"})
    client.post("/profile/onboarding", json=onboarding(birthday=None), headers=auth_headers(returning))

    db.refresh(returning)
    assert returning.onboarding_data["allergies"] == "latex"
    assert returning.onboarding_data["birthday"] == "12/01"


def test_referral_code_links_referrer_and_awards_both(client, db, newcomer, referrer):
    response = client.post(
        "/profile/onboarding", json=onboarding(referralCode="aaliyah-7k2q"), headers=auth_headers(newcomer)
    )
    assert response.json()["referredBy"] == "Aaliyah Grant"

    db.refresh(newcomer)
    assert newcomer.referred_by == referrer.id
    assert points_of(db, referrer, "referral_referrer") == [100]
    assert points_of(db, newcomer, "referral_referee") == [50]


def test_referrer_can_be_found_by_email(client, db, newcomer, referrer):
    client.post(
        "/profile/onboarding", json=onboarding(referrerEmail="Aaliyah@Example.com"), headers=auth_headers(newcomer)
    )
    db.refresh(newcomer)
    assert newcomer.referred_by == referrer.id


def test_referral_is_rewarded_only_once(client, db, newcomer, referrer):
    headers = auth_headers(newcomer)
    client.post("/profile/onboarding", json=onboarding(referralCode=referrer.referral_code), headers=headers)
    client.post("/profile/onboarding", json=onboarding(referralCode=referrer.referral_code), headers=headers)

    assert points_of(db, referrer, "referral_referrer") == [100]
    assert points_of(db, newcomer, "referral_referee") == [50]


def test_unknown_or_own_referral_is_ignored(client, db, customer):
    customer_code = "MAYA-ZZ11"
    customer.referral_code = customer_code
    db.commit()

    for referral in ({"referralCode": "NOBODY-0000"}, {"referralCode": customer_code}):
        response = client.post("/profile/onboarding", json=onboarding(**referral), headers=auth_headers(customer))
        assert response.status_code == 200
        assert response.json()["referredBy"] is None

    db.refresh(customer)
    assert customer.referred_by is None
    assert db.query(LoyaltyTransaction).count() == 0


def test_staff_onboarding_goes_to_their_dashboard(client, db, assistant):
    response = client.post("/profile/onboarding", json=onboarding(referralCode=None), headers=auth_headers(assistant))
    assert response.json()["redirect"] == "/assistant"
    assert response.json()["referralCode"] is None


def test_onboarding_syncs_contact_and_note_to_crm(client, newcomer, referrer, monkeypatch):
    synced = []

    async def fake_upsert(db, profile, description=None):
        synced.append(("contact", profile.email))

    async def fake_note(db, profile_id, title, content):
        synced.append(("note", title, content))

    monkeypatch.setattr(zoho_service, "upsert_zoho_contact", fake_upsert)
    monkeypatch.setattr(zoho_service, "log_zoho_note", fake_note)

    client.post("/profile/onboarding", json=onboarding(referralCode=referrer.referral_code), headers=auth_headers(newcomer))

    assert synced[0] == ("contact", "keisha@example.com")
    kind, title, content = synced[1]
    assert (kind, title) == ("note", "Onboarding completed")
    assert "Referred by: Aaliyah Grant (aaliyah@example.com)" in content


@pytest.mark.parametrize(
    "overrides",
    [{"firstName": "  "}, {"birthday": "13/40"}, {"phone": "12345"}, {"source": "billboard"}, {"referrerEmail": "nope"}],
)
def test_invalid_onboarding_answers_are_rejected(client, db, newcomer, overrides):
    response = client.post("/profile/onboarding", json=onboarding(**overrides), headers=auth_headers(newcomer))
    assert response.status_code == 422
    assert db.query(Profile).filter(Profile.id == newcomer.id).one().first_name == ""


# ============================================================================
# NOTIFICATION PREFERENCES
# ============================================================================


def test_preferences_default_and_partial_update(client, db, customer):
    headers = auth_headers(customer)
    assert client.get("/profile/preferences", headers=headers).json() == {
        "notifySms": True,
        "notifyEmail": True,
        "notifyMarketing": False,
    }

    response = client.patch("/profile/preferences", json={"notifyEmail": False}, headers=headers)
    assert response.json() == {"notifySms": True, "notifyEmail": False, "notifyMarketing": False}

    db.refresh(customer)
    assert customer.notify_email is False
    assert customer.notify_sms is True


def test_preferences_require_sign_in(client):
    assert client.get("/profile/preferences").status_code in (401, 403)
