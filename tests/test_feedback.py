def _ad_for(seed, seller_id, **fields):
    car = seed.vehicle_type()
    return seed.ad(seller_id, car.id, status="ACTIVE", **fields)


def test_reviews_and_stats(client, signup, seed):
    seller = signup(email="seller@example.com")
    buyer = signup(email="buyer@example.com", name="Buyer One")
    other = signup(email="other@example.com")
    ad = _ad_for(seed, seller["user"]["id"])

    r = client.post("/api/reviews", json={"ad_id": ad.id, "rating": 5}, headers=seller["headers"])
    assert r.status_code == 400

    r = client.post("/api/reviews", json={"ad_id": ad.id, "rating": 4, "comment": "Clean car"}, headers=buyer["headers"])
    assert r.status_code == 201
    assert r.json()["user_name"] == "Buyer One"
    assert client.post("/api/reviews", json={"ad_id": ad.id, "rating": 1}, headers=buyer["headers"]).status_code == 400
    client.post("/api/reviews", json={"ad_id": ad.id, "rating": 5}, headers=other["headers"])

    assert client.post("/api/reviews", json={"ad_id": ad.id, "rating": 6}, headers=other["headers"]).status_code == 400
    assert client.post("/api/reviews", json={"ad_id": 999, "rating": 3}, headers=other["headers"]).status_code == 404

    assert len(client.get(f"/api/reviews/ad/{ad.id}").json()) == 2
    stats = client.get(f"/api/reviews/ad/{ad.id}/stats").json()
    assert stats["count"] == 2
    assert stats["average"] == 4.5
    assert stats["by_star"] == {"1": 0, "2": 0, "3": 0, "4": 1, "5": 1}


def test_review_stats_for_unreviewed_ad(client):
    stats = client.get("/api/reviews/ad/1/stats").json()
    assert (stats["count"], stats["average"]) == (0, 0.0)


def test_reports_flow(client, signup, seed, admin_headers):
    seller = signup(email="seller@example.com")
    reporter = signup(email="reporter@example.com")
    ad = _ad_for(seed, seller["user"]["id"])

    r = client.post("/api/reports", json={"ad_id": ad.id, "reason": "Scam"}, headers=reporter["headers"])
    assert r.status_code == 201
    report = r.json()
    assert report["status"] == "PENDING"
    assert client.post("/api/reports", json={"ad_id": 999, "reason": "Scam"}, headers=reporter["headers"]).status_code == 404

    assert client.get("/api/reports", headers=reporter["headers"]).status_code == 403
    r = client.put(f"/api/reports/{report['id']}/status", json={"status": "RESOLVED"}, headers=admin_headers)
    assert r.json()["status"] == "RESOLVED"
    assert client.get("/api/reports", params={"status": "PENDING"}, headers=admin_headers).json() == []
    assert len(client.get("/api/reports", params={"status": "RESOLVED"}, headers=admin_headers).json()) == 1


def test_complaints_flow(client, signup, admin_headers):
    tokens = signup()
    r = client.post(
        "/api/complaints",
        json={"subject": "Seller never replied", "category": "SELLER", "description": "Called three times"},
        headers=tokens["headers"],
    )
    assert r.status_code == 201
    complaint = r.json()

    r = client.put(
        f"/api/complaints/{complaint['id']}/status",
        json={"status": "REVIEWED", "admin_response": "We contacted the seller"},
        headers=admin_headers,
    )
    assert r.json()["admin_response"] == "We contacted the seller"

    mine = client.get("/api/complaints/mine", headers=tokens["headers"]).json()
    assert [c["status"] for c in mine] == ["REVIEWED"]
    assert len(client.get("/api/complaints", headers=admin_headers).json()) == 1


def test_favorites_toggle(client, signup, seed):
    seller = signup(email="seller@example.com")
    fan = signup(email="fan@example.com")
    ad = _ad_for(seed, seller["user"]["id"])

    assert client.get(f"/api/favorites/check/{ad.id}").json() == {"is_favorite": False}

    r = client.post("/api/favorites/toggle", json={"ad_id": ad.id}, headers=fan["headers"])
    assert r.json() == {"is_favorite": True}
    assert client.get(f"/api/favorites/check/{ad.id}", headers=fan["headers"]).json() == {"is_favorite": True}
    assert [a["id"] for a in client.get("/api/favorites", headers=fan["headers"]).json()] == [ad.id]

    r = client.post("/api/favorites/toggle", json={"ad_id": ad.id}, headers=fan["headers"])
    assert r.json() == {"is_favorite": False}
    assert client.get("/api/favorites", headers=fan["headers"]).json() == []

    assert client.post("/api/favorites/toggle", json={"ad_id": 999}, headers=fan["headers"]).status_code == 404


def test_app_reviews_one_per_user_with_stats(client, signup):
    first = signup(email="first@example.com", name="First User")
    second = signup(email="second@example.com")

    r = client.post(
        "/api/app-reviews", json={"rating": 5, "comment": "Sold my car in a week"}, headers=first["headers"]
    )
    assert r.status_code == 201
    assert r.json()["user_name"] == "First User"
    assert client.post("/api/app-reviews", json={"rating": 4}, headers=first["headers"]).status_code == 400
    assert client.post("/api/app-reviews", json={"rating": 0}, headers=second["headers"]).status_code == 400
    client.post("/api/app-reviews", json={"rating": 2}, headers=second["headers"])

    assert len(client.get("/api/app-reviews").json()) == 2
    assert [r["rating"] for r in client.get("/api/app-reviews", params={"rating": 5}).json()] == [5]
    stats = client.get("/api/app-reviews/stats").json()
    assert (stats["count"], stats["average"]) == (2, 3.5)
    assert stats["by_star"] == {"1": 0, "2": 1, "3": 0, "4": 0, "5": 1}


def test_app_review_stats_when_empty(client):
    assert client.get("/api/app-reviews/stats").json() == {
        "average": 0.0,
        "count": 0,
        "by_star": {"1": 0, "2": 0, "3": 0, "4": 0, "5": 0},
    }


def test_app_review_reply_and_deletion(client, signup, admin_headers):
    author = signup(email="author@example.com")
    stranger = signup(email="stranger@example.com")
    review = client.post("/api/app-reviews", json={"rating": 3}, headers=author["headers"]).json()
    other = client.post("/api/app-reviews", json={"rating": 1}, headers=stranger["headers"]).json()

    reply_url = f"/api/app-reviews/{review['id']}/reply"
    r = client.post(reply_url, json={"reply": "Thanks, we are on it"}, headers=admin_headers)
    assert r.json()["reply"] == "Thanks, we are on it"
    assert r.json()["reply_at"] is not None
    assert client.post(reply_url, json={"reply": ""}, headers=admin_headers).status_code == 400
    assert client.post(reply_url, json={"reply": "x"}, headers=author["headers"]).status_code == 403

    assert client.delete(f"/api/app-reviews/{review['id']}", headers=stranger["headers"]).status_code == 403
    assert client.delete(f"/api/app-reviews/{review['id']}", headers=author["headers"]).status_code == 200
    assert client.delete(f"/api/app-reviews/{review['id']}", headers=author["headers"]).status_code == 404

    assert client.delete(f"/api/app-reviews/{other['id']}/admin", headers=admin_headers).status_code == 200
    assert client.get("/api/app-reviews").json() == []
