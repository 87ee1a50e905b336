import pytest
from fastapi import HTTPException
from jose import jwt

from tcreative import auth, email_service
from tcreative.models import Profile
from tcreative.security_utils import create_invite_token, generate_referral_code, verify_invite_token

from .conftest import auth_headers

SITE = "https://tcreative.test"


@pytest.fixture
def sign_in(client, monkeypatch):
    """Run the OAuth callback with a faked code exchange for the given auth user"""
    signed_out = []

    async def fake_sign_out(access_token):
        signed_out.append(access_token)

    monkeypatch.setattr(auth, "sign_out", fake_sign_out)

    def _sign_in(user_id, email, invite=None, **session):
        async def fake_exchange(code, code_verifier):
            assert code == "auth-code"
            return {
                "access_token": session.get("access_token", "access-123"),
                "refresh_token": "refresh-456",
                "expires_in": 3600,
                "user": {"id": user_id, "email": email},
            }

        monkeypatch.setattr(auth, "exchange_code_for_session", fake_exchange)
        params = {"code": "auth-code"}
        if invite:
            params["invite"] = invite
        return client.get("/auth/callback", params=params, follow_redirects=False)

    _sign_in.signed_out = signed_out
    return _sign_in


# ============================================================================
# TOKENS
# ============================================================================


def test_bearer_token_resolves_profile(client, customer):
    response = client.get("/loyalty/me", headers=auth_headers(customer))
    assert response.status_code == 200


def test_token_with_wrong_audience_is_rejected(client, customer):
    token = jwt.encode({"sub": customer.id, "aud": "anon"}, "test-jwt-secret", algorithm="HS256")
    response = client.get("/loyalty/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_suspended_profile_is_forbidden(client, make_profile):
    suspended = make_profile(is_active=False)
    assert client.get("/loyalty/me", headers=auth_headers(suspended)).status_code == 403


def test_unknown_user_without_email_is_rejected(db):
    with pytest.raises(HTTPException) as exc:
        auth.get_or_create_profile(db, "new-user", None)
    assert exc.value.status_code == 401


def test_first_sight_creates_client_profile(db):
    profile = auth.get_or_create_profile(db, "new-user", "New@Example.com")
    assert profile.role == "client"
    assert profile.email == "new@example.com"


def test_invite_tokens_round_trip_and_reject_other_tokens():
    payload = verify_invite_token(create_invite_token(" Jade@Example.com "))
    assert payload["email"] == "jade@example.com"
    assert verify_invite_token("garbage") is None


def test_referral_code_format():
    code = generate_referral_code("Mary-Jo")
    prefix, suffix = code.split("-")
    assert prefix == "MARYJO"
    assert len(suffix) == 4
    assert generate_referral_code(None).startswith("TC-")


# ============================================================================
# OAUTH CALLBACK
# ============================================================================


def test_callback_without_code(client):
    response = client.get("/auth/callback", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"].startswith(f"{SITE}/auth/error")


def test_failed_exchange_redirects_to_error(client, monkeypatch):
    async def failing_exchange(code, code_verifier):
        raise auth.AuthExchangeError("bad code")

    monkeypatch.setattr(auth, "exchange_code_for_session", failing_exchange)
    response = client.get("/auth/callback", params={"code": "nope"}, follow_redirects=False)
    assert response.headers["location"] == f"{SITE}/auth/error?detail=Authentication+failed.+Please+try+again."


def test_new_client_goes_to_onboarding_with_referral_code(db, sign_in):
    response = sign_in("user-1", "maya@example.com")
    assert response.status_code == 303
    assert response.headers["location"] == f"{SITE}/onboarding?role=client"
    assert "sb-access-token=access-123" in response.headers["set-cookie"]

    profile = db.query(Profile).filter(Profile.id == "user-1").one()
    assert profile.referral_code is not None


def test_onboarded_client_goes_home(sign_in, customer):
    response = sign_in(customer.id, customer.email)
    assert response.headers["location"] == f"{SITE}/"


def test_admin_allowlist_promotes(db, sign_in):
    response = sign_in("owner-1", "Owner@TCreative.test")
    assert response.headers["location"] == f"{SITE}/onboarding?role=admin"
    assert db.query(Profile).filter(Profile.id == "owner-1").one().role == "admin"


def test_onboarded_admin_goes_to_dashboard(sign_in, admin):
    assert sign_in(admin.id, admin.email).headers["location"] == f"{SITE}/admin"


def test_invite_promotes_to_assistant(db, sign_in, customer):
    response = sign_in(customer.id, customer.email, invite=create_invite_token(customer.email))
    assert response.headers["location"] == f"{SITE}/assistant"
    db.refresh(customer)
    assert customer.role == "assistant"


def test_bad_invite_leaves_role_alone(db, sign_in, customer):
    response = sign_in(customer.id, customer.email, invite="forged")
    assert response.headers["location"] == f"{SITE}/"
    db.refresh(customer)
    assert customer.role == "client"


def test_suspended_account_is_signed_out(sign_in, make_profile):
    suspended = make_profile(is_active=False)
    response = sign_in(suspended.id, suspended.email)
    assert response.headers["location"] == f"{SITE}/suspended"
    assert sign_in.signed_out == ["access-123"]


def test_session_without_token_fails(sign_in):
    response = sign_in("user-2", "x@example.com", access_token=None)
    assert response.headers["location"] == f"{SITE}/auth/error?detail=Authentication+failed.+Please+try+again."


# ============================================================================
# INVITES
# ============================================================================


def test_admin_creates_invite(client, admin, monkeypatch):
    sent = []

    async def fake_invite_email(db, email, invite_url):
        sent.append((email, invite_url))
        return True

    monkeypatch.setattr(email_service, "send_invite_email", fake_invite_email)

    response = client.post("/api/invites", json={"email": "Jade@Example.com"}, headers=auth_headers(admin))
    assert response.status_code == 200
    invite_url = response.json()["invite_url"]
    assert invite_url.startswith(f"{SITE}/login?invite=")
    assert sent == [("jade@example.com", invite_url)]

    token = invite_url.split("invite=", 1)[1]
    assert verify_invite_token(token)["email"] == "jade@example.com"


def test_invite_still_returned_when_email_fails(client, admin):
    # Resend is unconfigured, so the send reports failure
    response = client.post("/api/invites", json={"email": "jade@example.com"}, headers=auth_headers(admin))
    assert response.status_code == 200


@pytest.mark.parametrize("payload,detail", [({}, "Email is required"), ({"email": "nope"}, "Invalid email address")])
def test_invite_requires_valid_email(client, admin, payload, detail):
    response = client.post("/api/invites", json=payload, headers=auth_headers(admin))
    assert response.status_code == 400
    assert response.json()["detail"] == detail


def test_assistants_cannot_invite(client, assistant):
    response = client.post("/api/invites", json={"email": "a@example.com"}, headers=auth_headers(assistant))
    assert response.status_code == 403
