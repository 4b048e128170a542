import httpx
import pytest

from app.core.settings import settings
from app.models.user import User
from app.services import clerk


def _profile(**overrides):
    profile = {
        "clerk_user_id": "user_abc",
        "email": "social@example.com",
        "first_name": "Kasun",
        "last_name": "Perera",
        "image_url": "https://img.example.com/k.png",
        "phone": None,
        "auth_provider": "google",
    }
    profile.update(overrides)
    return profile


def test_missing_bearer_header_is_rejected(client):
    r = client.post("/api/auth/clerk")
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "MISSING_TOKEN"


def test_provider_failure_maps_to_auth_provider_error(client, monkeypatch):
    def boom(token):
        raise clerk.ClerkError("Invalid Clerk session token")

    monkeypatch.setattr(clerk, "resolve_profile", boom)
    r = client.post("/api/auth/clerk", headers={"Authorization": "Bearer abc"})
    assert r.status_code == 401
    assert r.json()["detail"]["code"] == "AUTH_PROVIDER_ERROR"


def test_new_social_user_is_created_once(client, monkeypatch, db):
    monkeypatch.setattr(clerk, "resolve_profile", lambda token: _profile())

    first = client.post("/api/auth/clerk", headers={"Authorization": "Bearer abc"})
    assert first.status_code == 200
    body = first.json()
    assert body["user"]["name"] == "Kasun Perera"
    assert body["user"]["auth_provider"] == "google"

    second = client.post("/api/auth/clerk", headers={"Authorization": "Bearer abc"})
    assert second.json()["user"]["id"] == body["user"]["id"]
    assert db.query(User).count() == 1


def test_social_login_merges_into_password_account_by_email(client, signup, monkeypatch, db):
    existing = signup(email="social@example.com", name="Old Name", phone="0771234567")
    monkeypatch.setattr(clerk, "resolve_profile", lambda token: _profile(last_name=None))

    r = client.post("/api/auth/clerk", headers={"Authorization": "Bearer abc"})
    assert r.status_code == 200
    user = r.json()["user"]
    assert user["id"] == existing["user"]["id"]
    assert user["name"] == "Kasun"
    # null incoming values keep what is stored
    assert user["phone"] == "0771234567"
    assert user["avatar"] == "https://img.example.com/k.png"

    stored = db.get(User, user["id"])
    assert stored.clerk_user_id == "user_abc"
    assert stored.hashed_password is not None
    # the account now signs in through its social provider only
    login = client.post("/api/auth/login", json={"email": "social@example.com", "password": "secret123"})
    assert login.status_code == 401
    assert login.json()["detail"]["code"] == "SOCIAL_LOGIN_REQUIRED"
    assert login.json()["detail"]["provider"] == "google"


def test_social_login_matches_by_phone_when_email_is_absent(client, signup, monkeypatch):
    existing = signup(email="phone@example.com", phone="0779876543")
    monkeypatch.setattr(
        clerk, "resolve_profile", lambda token: _profile(email=None, phone="0779876543", clerk_user_id="user_p")
    )
    r = client.post("/api/auth/clerk", headers={"Authorization": "Bearer abc"})
    assert r.status_code == 200
    assert r.json()["user"]["id"] == existing["user"]["id"]
    assert r.json()["user"]["email"] == "phone@example.com"


def test_get_user_flattens_the_clerk_payload(monkeypatch):
    monkeypatch.setattr(settings, "clerk_secret_key", "sk_test")
    payload = {
        "id": "user_xyz",
        "first_name": "Ama",
        "last_name": None,
        "image_url": "https://img.example.com/a.png",
        "email_addresses": [{"email_address": "ama@example.com"}],
        "phone_numbers": [{"phone_number": "+94771112223"}],
        "external_accounts": [{"provider": "oauth_apple"}],
    }

    def fake_get(url, headers=None, timeout=None):
        assert url.endswith("/users/user_xyz")
        assert headers["Authorization"] == "Bearer sk_test"
        return httpx.Response(200, json=payload, request=httpx.Request("GET", url))

    monkeypatch.setattr(clerk.httpx, "get", fake_get)
    user = clerk.get_user("user_xyz")
    assert user["email"] == "ama@example.com"
    assert user["phone"] == "+94771112223"
    assert user["auth_provider"] == "apple"


def test_get_user_wraps_http_errors(monkeypatch):
    monkeypatch.setattr(settings, "clerk_secret_key", "sk_test")

    def fake_get(url, headers=None, timeout=None):
        return httpx.Response(404, json={}, request=httpx.Request("GET", url))

    monkeypatch.setattr(clerk.httpx, "get", fake_get)
    with pytest.raises(clerk.ClerkError):
        clerk.get_user("user_missing")


def test_unconfigured_clerk_rejects_tokens(monkeypatch):
    monkeypatch.setattr(settings, "clerk_jwks_url", "")
    with pytest.raises(clerk.ClerkError):
        clerk.verify_session_token("anything")


def test_social_login_keeps_email_owned_by_another_account(client, signup, monkeypatch, db):
    other = signup(email="taken@example.com")
    monkeypatch.setattr(clerk, "resolve_profile", lambda token: _profile(email="first@example.com"))
    first = client.post("/api/auth/clerk", headers={"Authorization": "Bearer abc"})
    assert first.status_code == 200

    monkeypatch.setattr(clerk, "resolve_profile", lambda token: _profile(email="taken@example.com"))
    r = client.post("/api/auth/clerk", headers={"Authorization": "Bearer abc"})
    assert r.status_code == 200
    assert r.json()["user"]["id"] == first.json()["user"]["id"]
    assert r.json()["user"]["email"] == "first@example.com"
    assert db.get(User, other["user"]["id"]).email == "taken@example.com"


def test_complete_claims_skip_the_user_api(monkeypatch):
    claims = {
        "sub": "user_full",
        "email": "full@example.com",
        "first_name": "Nimal",
        "external_accounts": [{"provider": "oauth_facebook"}],
    }
    monkeypatch.setattr(clerk, "verify_session_token", lambda token: claims)

    def unexpected(clerk_user_id):
        raise AssertionError("user API should not be called")

    monkeypatch.setattr(clerk, "get_user", unexpected)
    profile = clerk.resolve_profile("tok")
    assert profile["email"] == "full@example.com"
    assert profile["auth_provider"] == "facebook"


def test_missing_claims_are_filled_from_the_user_api(monkeypatch):
    monkeypatch.setattr(clerk, "verify_session_token", lambda token: {"sub": "user_thin", "first_name": "Token"})
    calls = []

    def fake_get_user(clerk_user_id):
        calls.append(clerk_user_id)
        return {
            "clerk_user_id": clerk_user_id,
            "email": "thin@example.com",
            "first_name": "Remote",
            "last_name": "Name",
            "image_url": None,
            "phone": None,
            "auth_provider": "google",
        }

    monkeypatch.setattr(clerk, "get_user", fake_get_user)
    profile = clerk.resolve_profile("tok")
    assert calls == ["user_thin"]
    assert profile["email"] == "thin@example.com"
    # token claims take precedence over the remote copy
    assert profile["first_name"] == "Token"
    assert profile["last_name"] == "Name"
    assert profile["auth_provider"] == "google"


def test_user_api_failure_falls_back_to_claims(monkeypatch):
    monkeypatch.setattr(clerk, "verify_session_token", lambda token: {"sub": "user_off", "email": "off@example.com"})

    def down(clerk_user_id):
        raise clerk.ClerkError("Failed to fetch Clerk user")

    monkeypatch.setattr(clerk, "get_user", down)
    profile = clerk.resolve_profile("tok")
    assert (profile["email"], profile["first_name"], profile["auth_provider"]) == ("off@example.com", None, "clerk")
