import datetime as dt

import jwt

from app.core.clock import utcnow
from app.core.settings import settings
from app.models.user import RefreshToken, User
from app.security import jwt_tokens
from app.security.jwt_tokens import create_access_token, create_admin_token


def test_signup_returns_token_pair_and_sets_cookie(client):
    r = client.post(
        "/api/auth/signup",
        json={"name": "  Nimal  ", "email": "Nimal@Example.com", "password": "secret123", "phone": "077 123 4567"},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["access_token"] and body["refresh_token"]
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "nimal@example.com"
    assert body["user"]["name"] == "Nimal"
    assert body["user"]["auth_provider"] == "password"
    assert "refresh_token=" in r.headers.get("set-cookie", "")


def test_signup_duplicate_email_is_rejected(client, signup):
    signup(email="dup@example.com")
    r = client.post(
        "/api/auth/signup", json={"name": "Other", "email": "DUP@example.com", "password": "secret123"}
    )
    assert r.status_code == 400


def test_signup_validation_errors_return_400(client):
    assert client.post("/api/auth/signup", json={"name": "A", "email": "a@example.com", "password": "secret123"}).status_code == 400
    assert client.post("/api/auth/signup", json={"name": "Abc", "email": "a@example.com", "password": "123"}).status_code == 400
    r = client.post(
        "/api/auth/signup", json={"name": "Abc", "email": "a@example.com", "password": "secret123", "phone": "12345"}
    )
    assert r.status_code == 400
    assert isinstance(r.json()["detail"], list)


def test_login_success_and_failures(client, signup, db):
    signup(email="login@example.com", password="secret123")

    r = client.post("/api/auth/login", json={"email": "login@example.com", "password": "secret123"})
    assert r.status_code == 200
    assert r.json()["user"]["last_login"] is not None

    assert client.post("/api/auth/login", json={"email": "login@example.com", "password": "nope123"}).status_code == 401
    assert client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "secret123"}).status_code == 401


def test_login_for_social_account_requires_social_login(client, db):
    db.add(User(name="Social", email="social@example.com", auth_provider="google", clerk_user_id="user_1"))
    db.commit()

    r = client.post("/api/auth/login", json={"email": "social@example.com", "password": "whatever1"})
    assert r.status_code == 401
    detail = r.json()["detail"]
    assert detail["code"] == "SOCIAL_LOGIN_REQUIRED"
    assert detail["provider"] == "google"


def test_refresh_rotates_and_rejects_replay(client, signup):
    tokens = signup()
    old_refresh = tokens["refresh_token"]

    r = client.post("/api/auth/refresh", json={"refresh_token": old_refresh})
    assert r.status_code == 200
    new_refresh = r.json()["refresh_token"]
    assert new_refresh != old_refresh

    assert client.post("/api/auth/refresh", json={"refresh_token": old_refresh}).status_code == 401
    assert client.post("/api/auth/refresh", json={"refresh_token": new_refresh}).status_code == 200


def test_refresh_reads_cookie_when_body_is_missing(client, signup):
    signup()
    r = client.post("/api/auth/refresh")
    assert r.status_code == 200
    assert "access_token" in r.json()


def test_refresh_with_garbage_token_fails(client):
    assert client.post("/api/auth/refresh", json={"refresh_token": "not-a-jwt"}).status_code == 401


def test_logout_revokes_the_given_refresh_token(client, signup):
    tokens = signup()
    r = client.post("/api/auth/logout", json={"refresh_token": tokens["refresh_token"]}, headers=tokens["headers"])
    assert r.status_code == 200
    assert client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]}).status_code == 401


def test_logout_all_revokes_every_session(client, signup, db):
    first = signup(email="multi@example.com")
    second = client.post("/api/auth/login", json={"email": "multi@example.com", "password": "secret123"}).json()

    r = client.post("/api/auth/logout-all", headers=first["headers"])
    assert r.status_code == 200

    for refresh in (first["refresh_token"], second["refresh_token"]):
        assert client.post("/api/auth/refresh", json={"refresh_token": refresh}).status_code == 401
    assert db.query(RefreshToken).filter(RefreshToken.revoked.is_(False)).count() == 0


def test_me_requires_a_valid_access_token(client, signup):
    tokens = signup()
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer junk"}).status_code == 401

    r = client.get("/api/auth/me", headers=tokens["headers"])
    assert r.status_code == 200
    assert r.json()["email"] == "user@example.com"


def test_expired_access_token_reports_token_expired(client, signup):
    tokens = signup()
    user_id = tokens["user"]["id"]
    past = dt.datetime.now(tz=dt.timezone.utc) - dt.timedelta(minutes=5)
    expired = jwt.encode(
        {"sub": str(user_id), "type": "access", "exp": past, "iat": past - dt.timedelta(minutes=15)},
        settings.access_token_secret,
        algorithm=settings.jwt_algorithm,
    )
    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert r.status_code == 401
    assert r.json()["detail"]["code"] == "TOKEN_EXPIRED"


def test_access_token_lifetime_follows_the_shared_clock(client, signup, monkeypatch):
    tokens = signup()
    monkeypatch.setattr(jwt_tokens, "utcnow", lambda: utcnow() - dt.timedelta(hours=1))
    stale = create_access_token(subject=str(tokens["user"]["id"]))

    claims = jwt.decode(
        stale, settings.access_token_secret, algorithms=[settings.jwt_algorithm], options={"verify_exp": False}
    )
    assert claims["exp"] - claims["iat"] == settings.access_token_expires_minutes * 60
    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {stale}"})
    assert r.json()["detail"]["code"] == "TOKEN_EXPIRED"


def test_admin_token_is_not_accepted_as_user_token(client, signup):
    tokens = signup()
    admin_token = create_admin_token(subject=str(tokens["user"]["id"]), role="SUPER_ADMIN")
    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {admin_token}"})
    assert r.status_code == 401


def test_banned_user_is_rejected_until_ban_expires(client, signup, db):
    tokens = signup()
    user = db.get(User, tokens["user"]["id"])
    user.status = "BANNED"
    user.ban_expires_at = utcnow() + dt.timedelta(days=2)
    user.ban_reason = "spam"
    db.commit()

    r = client.get("/api/auth/me", headers=tokens["headers"])
    assert r.status_code == 403
    detail = r.json()["detail"]
    assert detail["code"] == "USER_BANNED"
    assert detail["ban_reason"] == "spam"

    user.ban_expires_at = utcnow() - dt.timedelta(minutes=1)
    db.commit()

    r = client.get("/api/auth/me", headers=tokens["headers"])
    assert r.status_code == 200
    assert r.json()["status"] == "ACTIVE"


def test_blocked_user_is_rejected(client, signup, db):
    tokens = signup()
    user = db.get(User, tokens["user"]["id"])
    user.status = "BLOCKED"
    db.commit()

    r = client.get("/api/auth/me", headers=tokens["headers"])
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "USER_BLOCKED"
