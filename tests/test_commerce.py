from datetime import timedelta

from app.core.clock import utcnow
from app.models.ad import CarAd
from app.models.billing import Payment
from app.models.pricing import PackageIncludedItem, PricingRule


def _item(client, headers, code, item_type="PACKAGE", **extra):
    r = client.post(
        "/api/pricing/items",
        json={"code": code, "name": code.title(), "item_type": item_type, **extra},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    return r.json()


# Pricing catalogue

def test_price_item_crud(client, admin_headers):
    gold = _item(client, admin_headers, "GOLD")
    assert client.post(
        "/api/pricing/items", json={"code": "GOLD", "name": "Again", "item_type": "PACKAGE"}, headers=admin_headers
    ).status_code == 409

    r = client.put(f"/api/pricing/items/{gold['id']}", json={"name": "Gold Plus"}, headers=admin_headers)
    assert r.json()["name"] == "Gold Plus"
    assert client.put(f"/api/pricing/items/{gold['id']}", json={}, headers=admin_headers).status_code == 400

    _item(client, admin_headers, "FL_BOOST", item_type="BOOST_ITEM")
    assert [i["code"] for i in client.get("/api/pricing/items", params={"item_type": "BOOST_ITEM"}).json()] == ["FL_BOOST"]

    assert client.delete(f"/api/pricing/items/{gold['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/pricing/items/{gold['id']}").status_code == 404


def test_price_item_with_subscribers_cannot_be_deleted(client, admin_headers, seed):
    pkg = seed.package("GOLD")
    user = seed.user()
    seed.subscription(user.id, pkg.id)

    assert client.delete(f"/api/pricing/items/{pkg.id}", headers=admin_headers).status_code == 409


def test_rules_features_and_limits_enrich_the_item(client, admin_headers, seed):
    car = seed.vehicle_type("Car")
    van = seed.vehicle_type("Van")
    gold = _item(client, admin_headers, "GOLD")
    boost = _item(client, admin_headers, "FL_BOOST", item_type="BOOST_ITEM")

    for type_id, price in ((None, 1000), (car.id, 2500), (van.id, 4000)):
        r = client.post(
            "/api/pricing/rules",
            json={"price_item_id": gold["id"], "vehicle_type_id": type_id, "price": price},
            headers=admin_headers,
        )
        assert r.status_code == 201

    r = client.post(
        "/api/pricing/features",
        json={"price_item_id": gold["id"], "feature_key": "DURATION_DAYS", "feature_value": "30"},
        headers=admin_headers,
    )
    feature_id = r.json()["id"]
    r = client.post(
        "/api/pricing/features",
        json={"price_item_id": gold["id"], "feature_key": "DURATION_DAYS", "feature_value": "60"},
        headers=admin_headers,
    )
    assert r.json()["id"] == feature_id
    assert r.json()["feature_value"] == "60"

    r = client.post(
        "/api/pricing/package-items",
        json={"package_id": gold["id"], "included_item_id": gold["id"]},
        headers=admin_headers,
    )
    assert r.status_code == 400
    r = client.post(
        "/api/pricing/package-items",
        json={"package_id": gold["id"], "included_item_id": boost["id"]},
        headers=admin_headers,
    )
    assert r.status_code == 201

    r = client.post(
        f"/api/pricing/packages/{gold['id']}/ad-limits", json={"vehicle_type_id": car.id, "quantity": 5}, headers=admin_headers
    )
    assert r.status_code == 201
    r = client.post(
        f"/api/pricing/packages/{gold['id']}/ad-limits", json={"vehicle_type_id": car.id, "quantity": 9}, headers=admin_headers
    )
    assert r.status_code == 409

    item = client.get(f"/api/pricing/items/{gold['id']}", params={"vehicle_type_id": car.id}).json()
    assert sorted(rule["price"] for rule in item["rules"]) == [1000, 2500]
    assert item["config"] == {"DURATION_DAYS": "60"}
    assert [i["code"] for i in item["included_items"]] == ["FL_BOOST"]
    assert item["ad_limits"][0]["vehicle_type_name"] == "Car"

    public = client.get("/api/pricing/public-packages").json()
    assert [p["code"] for p in public] == ["GOLD"]


def test_rule_bounds_are_checked(client, admin_headers, seed):
    pkg = seed.package("GOLD")
    r = client.post(
        "/api/pricing/rules",
        json={"price_item_id": pkg.id, "price": 100, "min_qty": 10, "max_qty": 2},
        headers=admin_headers,
    )
    assert r.status_code == 400


def test_admin_subscriber_views(client, admin_headers, seed):
    car = seed.vehicle_type("Car")
    pkg = seed.package("GOLD", limits={car.id: 3})
    user = seed.user()
    seed.subscription(user.id, pkg.id)
    seed.subscription(user.id, pkg.id, start=utcnow() - timedelta(days=90), status="EXPIRED")
    seed.payment(user.id, "V-Car")

    rows = client.get("/api/pricing/admin/subscribers", params={"status": "ACTIVE"}, headers=admin_headers).json()
    assert len(rows) == 1
    assert rows[0]["package_name"] == "Gold"
    assert rows[0]["user_email"] == "seller@example.com"

    usage = client.get(f"/api/pricing/admin/subscriber-usage/{user.id}/{pkg.id}", headers=admin_headers).json()
    assert usage["ad_limits"][0]["used"] == 1
    assert client.get(f"/api/pricing/admin/subscriber-usage/{user.id}/999", headers=admin_headers).status_code == 404


def test_unsubscribe_specific_subscription(client, signup, seed):
    tokens = signup()
    pkg = seed.package("GOLD")
    sub = seed.subscription(tokens["user"]["id"], pkg.id)

    r = client.post("/api/pricing/unsubscribe", json={"subscription_id": sub.id + 50}, headers=tokens["headers"])
    assert r.status_code == 404
    r = client.post("/api/pricing/unsubscribe", json={"subscription_id": sub.id}, headers=tokens["headers"])
    assert r.status_code == 200
    assert client.get("/api/pricing/active-package", headers=tokens["headers"]).json()["has_package"] is False


# Discounts

def test_discount_crud_and_validation(client, admin_headers, seed):
    car = seed.vehicle_type("Car")
    r = client.post(
        "/api/discounts",
        json={"name": "Too much", "discount_type": "PERCENTAGE", "value": 150},
        headers=admin_headers,
    )
    assert r.status_code == 400

    now = utcnow()
    r = client.post(
        "/api/discounts",
        json={
            "name": "Backwards",
            "discount_type": "FIXED",
            "value": 100,
            "start_date": now.isoformat(),
            "end_date": (now - timedelta(days=1)).isoformat(),
        },
        headers=admin_headers,
    )
    assert r.status_code == 400

    r = client.post(
        "/api/discounts",
        json={"name": "Ghost type", "discount_type": "FIXED", "value": 100, "vehicle_type_ids": [999]},
        headers=admin_headers,
    )
    assert r.status_code == 400

    r = client.post(
        "/api/discounts",
        json={"name": "Car week", "discount_type": "PERCENTAGE", "value": 10, "vehicle_type_ids": [car.id]},
        headers=admin_headers,
    )
    assert r.status_code == 201
    discount = r.json()
    assert discount["vehicle_type_ids"] == [car.id]

    r = client.put(f"/api/discounts/{discount['id']}", json={"status": "INACTIVE"}, headers=admin_headers)
    assert r.json()["status"] == "INACTIVE"
    assert client.get("/api/discounts/active").json() == []
    assert client.get(f"/api/discounts/{discount['id']}").status_code == 200

    assert client.delete(f"/api/discounts/{discount['id']}", headers=admin_headers).status_code == 200
    assert client.get("/api/discounts", headers=admin_headers).json() == []


def test_quote_picks_the_biggest_applicable_saving(client, admin_headers, signup, seed):
    car = seed.vehicle_type("Car")
    van = seed.vehicle_type("Van")
    tokens = signup()
    for payload in (
        {"name": "Five off", "discount_type": "PERCENTAGE", "value": 5},
        {"name": "Car fixed", "discount_type": "FIXED", "value": 300, "vehicle_type_ids": [car.id]},
        {"name": "Welcome", "discount_type": "PERCENTAGE", "value": 20, "is_first_time_user": True},
        {"name": "Bulk", "discount_type": "PERCENTAGE", "value": 50, "min_bulk_ads": 10},
        {
            "name": "Expired",
            "discount_type": "PERCENTAGE",
            "value": 90,
            "end_date": (utcnow() - timedelta(days=1)).isoformat(),
        },
    ):
        assert client.post("/api/discounts", json=payload, headers=admin_headers).status_code == 201

    r = client.post("/api/discounts/quote", json={"amount": 1000, "vehicle_type_id": car.id}, headers=tokens["headers"])
    quote = r.json()
    assert quote["discount_name"] == "Car fixed"
    assert quote["final_amount"] == 700

    r = client.post("/api/discounts/quote", json={"amount": 2000, "vehicle_type_id": van.id}, headers=tokens["headers"])
    assert r.json()["discount_name"] == "Welcome"
    assert r.json()["discount_amount"] == 400

    r = client.post(
        "/api/discounts/quote", json={"amount": 2000, "vehicle_type_id": van.id, "ad_count": 10}, headers=tokens["headers"]
    )
    assert r.json()["discount_name"] == "Bulk"

    # a paying customer is no longer first time
    seed.payment(tokens["user"]["id"], "ORD-1", amount=2000)
    r = client.post("/api/discounts/quote", json={"amount": 2000, "vehicle_type_id": van.id}, headers=tokens["headers"])
    assert r.json()["discount_name"] == "Five off"


def test_quote_without_discounts(client, signup):
    tokens = signup()
    r = client.post("/api/discounts/quote", json={"amount": 1500}, headers=tokens["headers"])
    assert r.json() == {
        "original_amount": 1500,
        "discount_id": None,
        "discount_name": None,
        "discount_amount": 0,
        "final_amount": 1500,
    }


# Boosts

def test_boost_catalogue(client, seed, db):
    car = seed.vehicle_type("Car")
    seed.package("FL_BOOST", item_type="BOOST_ITEM")
    seed.package("OLD_BOOST", item_type="BOOST_ITEM", status="INACTIVE")
    priced = seed.package("WEEK_BUNDLE", item_type="BOOST_PACKAGE")
    seed.package("UNPRICED_BUNDLE", item_type="BOOST_PACKAGE")
    db.add(PricingRule(price_item_id=priced.id, vehicle_type_id=car.id, unit="PER_AD", price=1500))
    db.commit()

    assert [i["code"] for i in client.get("/api/boosts/items").json()] == ["FL_BOOST"]
    assert len(client.get("/api/boosts/packages").json()) == 2
    scoped = client.get("/api/boosts/packages", params={"vehicle_type_id": car.id}).json()
    assert [p["code"] for p in scoped] == ["WEEK_BUNDLE"]


def test_apply_boost_directly(client, signup, seed, db):
    owner = signup(email="owner@example.com")
    other = signup(email="other@example.com")
    car = seed.vehicle_type("Car")
    ad = seed.ad(owner["user"]["id"], car.id, status="ACTIVE")
    featured = seed.package("FL_BOOST", item_type="BOOST_ITEM")
    banner = seed.package("HB_BOOST", item_type="BOOST_ITEM")
    bundle = seed.package("MEGA", item_type="BOOST_PACKAGE", features={"DURATION_DAYS": "14"})
    db.add(PackageIncludedItem(package_id=bundle.id, included_item_id=banner.id))
    db.commit()
    plain = seed.package("GOLD")

    payload = {"ad_id": ad.id, "package_id": featured.id}
    assert client.post("/api/boosts/apply", json=payload, headers=other["headers"]).status_code == 403
    assert client.post(
        "/api/boosts/apply", json={"ad_id": ad.id, "package_id": plain.id}, headers=owner["headers"]
    ).status_code == 400

    r = client.post("/api/boosts/apply", json=payload, headers=owner["headers"])
    assert r.status_code == 201
    r = client.post("/api/boosts/apply", json={"ad_id": ad.id, "package_id": bundle.id}, headers=owner["headers"])
    assert r.status_code == 201
    boost = r.json()
    assert boost["status"] == "ACTIVE"

    db.expire_all()
    refreshed = db.get(CarAd, ad.id)
    assert (refreshed.is_featured, refreshed.is_homepage_banner, refreshed.is_urgent) == (True, True, False)
    methods = {p.payment_method for p in db.query(Payment).all()}
    assert methods == {"DIRECT_ACTIVATE"}

    active = client.get(f"/api/boosts/ad/{ad.id}").json()
    assert len(active) == 2
    assert {b["package_id"] for b in active} == {featured.id, bundle.id}
