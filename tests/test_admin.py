from app.models.notification import NotificationLog


def test_first_admin_becomes_super_admin_and_later_signups_are_guarded(client):
    r = client.post("/api/admin/signup", json={"name": "Root", "email": "root@example.com", "password": "adminpass"})
    assert r.status_code == 201
    assert r.json()["role"] == "SUPER_ADMIN"

    r = client.post("/api/admin/signup", json={"email": "sneaky@example.com", "password": "adminpass"})
    assert r.status_code == 401

    token = client.post("/api/admin/login", json={"email": "root@example.com", "password": "adminpass"}).json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}
    r = client.post("/api/admin/signup", json={"email": "mod@example.com", "password": "modpass1"}, headers=headers)
    assert r.status_code == 201
    assert r.json()["role"] == "MODERATOR"
    r = client.post("/api/admin/signup", json={"email": "MOD@example.com", "password": "modpass1"}, headers=headers)
    assert r.status_code == 409

    mod_token = client.post("/api/admin/login", json={"email": "mod@example.com", "password": "modpass1"}).json()[
        "access_token"
    ]
    r = client.post(
        "/api/admin/signup",
        json={"email": "third@example.com", "password": "adminpass"},
        headers={"Authorization": f"Bearer {mod_token}"},
    )
    assert r.status_code == 403


def test_admin_login_failures(client, admin_headers):
    assert client.post("/api/admin/login", json={"email": "root@example.com", "password": "wrong"}).status_code == 401
    assert client.post("/api/admin/login", json={"email": "nobody@example.com", "password": "adminpass"}).status_code == 401


def test_user_token_cannot_reach_admin_routes(client, signup):
    tokens = signup()
    assert client.get("/api/admin/stats", headers=tokens["headers"]).status_code == 403
    assert client.get("/api/admin/stats").status_code == 401


def test_stats(client, admin_headers, signup, seed):
    tokens = signup()
    seller_id = tokens["user"]["id"]
    car = seed.vehicle_type("Car")
    seed.ad(seller_id, car.id, status="ACTIVE", is_featured=True)
    seed.ad(seller_id, car.id, status="EXPIRED")
    seed.ad(seller_id, car.id, status="DRAFT")

    stats = client.get("/api/admin/stats", headers=admin_headers).json()
    assert stats == {
        "total_ads": 3,
        "active_ads": 1,
        "expired_ads": 1,
        "featured_ads": 1,
        "vehicle_types": 1,
        "brands": 0,
        "users": 1,
    }


def test_users_with_ad_counts(client, admin_headers, signup, seed):
    busy = signup(email="busy@example.com")
    signup(email="idle@example.com")
    car = seed.vehicle_type()
    seed.ad(busy["user"]["id"], car.id, status="ACTIVE")
    seed.ad(busy["user"]["id"], car.id, status="SOLD")
    seed.ad(busy["user"]["id"], car.id, status="DRAFT")

    rows = {u["email"]: u for u in client.get("/api/admin/users", headers=admin_headers).json()}
    assert (rows["busy@example.com"]["total_ads"], rows["busy@example.com"]["posted_ads"]) == (3, 2)
    assert rows["busy@example.com"]["drafted_ads"] == 1
    assert rows["idle@example.com"]["total_ads"] == 0


def test_ban_block_and_restore_user(client, admin_headers, signup):
    tokens = signup()
    user_id = tokens["user"]["id"]

    r = client.put(f"/api/admin/users/{user_id}/ban", json={"duration_days": 3, "reason": "spam"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "BANNED"
    assert r.json()["ban_expires_at"] is not None
    assert client.get("/api/auth/me", headers=tokens["headers"]).json()["detail"]["code"] == "USER_BANNED"

    banned = client.get("/api/admin/users", params={"status": "BANNED"}, headers=admin_headers).json()
    assert [u["id"] for u in banned] == [user_id]

    r = client.put(f"/api/admin/users/{user_id}/block", json={"reason": "fraud"}, headers=admin_headers)
    assert r.json()["status"] == "BLOCKED"
    assert client.get("/api/auth/me", headers=tokens["headers"]).json()["detail"]["code"] == "USER_BLOCKED"

    r = client.put(f"/api/admin/users/{user_id}/unban", headers=admin_headers)
    assert r.json()["status"] == "ACTIVE"
    assert client.get("/api/auth/me", headers=tokens["headers"]).status_code == 200

    r = client.put("/api/admin/users/999/ban", json={"duration_days": 1}, headers=admin_headers)
    assert r.status_code == 404
    r = client.put(f"/api/admin/users/{user_id}/ban", json={"duration_days": 0}, headers=admin_headers)
    assert r.status_code == 400


def test_admin_ad_moderation(client, admin_headers, signup, seed):
    tokens = signup()
    car = seed.vehicle_type()
    ad = seed.ad(tokens["user"]["id"], car.id, status="PENDING", title="Nissan Leaf 2018")
    draft = seed.ad(tokens["user"]["id"], car.id, status="DRAFT", title="Suzuki Alto")

    page = client.get("/api/admin/ads", params={"search": "leaf"}, headers=admin_headers).json()
    assert [a["id"] for a in page["items"]] == [ad.id]
    assert client.get("/api/admin/ads", params={"status": "DRAFT"}, headers=admin_headers).json()["total"] == 1

    r = client.put(f"/api/admin/ads/{ad.id}/status", json={"status": "ACTIVE", "is_featured": True}, headers=admin_headers)
    assert (r.json()["status"], r.json()["is_featured"]) == ("ACTIVE", True)

    r = client.put(f"/api/admin/ads/{ad.id}/ban", json={"duration_days": 7, "reason": "fake"}, headers=admin_headers)
    assert (r.json()["status"], r.json()["is_banned"]) == ("BANNED", True)
    assert client.get("/api/cars").json()["total"] == 0

    r = client.put(f"/api/admin/ads/{ad.id}/unban", headers=admin_headers)
    assert (r.json()["status"], r.json()["is_banned"]) == ("ACTIVE", False)
    assert client.get("/api/cars").json()["total"] == 1

    client.put(f"/api/admin/ads/{draft.id}/ban", json={"duration_days": 1}, headers=admin_headers)
    r = client.put(f"/api/admin/ads/{draft.id}/unban", headers=admin_headers)
    assert (r.json()["status"], r.json()["is_banned"]) == ("DRAFT", False)
    assert client.get("/api/cars").json()["total"] == 1

    assert client.put("/api/admin/ads/999/unban", headers=admin_headers).status_code == 404


def test_notification_log_listing(client, admin_headers, seed, db):
    user = seed.user()
    db.add_all(
        [
            NotificationLog(user_id=user.id, notification_type="PURCHASE", status="SENT", subject="a"),
            NotificationLog(user_id=user.id, notification_type="EXPIRY_WARNING", status="FAILED", subject="b"),
        ]
    )
    db.commit()

    rows = client.get("/api/admin/notifications", headers=admin_headers).json()
    assert len(rows) == 2
    rows = client.get(
        "/api/admin/notifications", params={"notification_type": "EXPIRY_WARNING"}, headers=admin_headers
    ).json()
    assert [r["status"] for r in rows] == ["FAILED"]
