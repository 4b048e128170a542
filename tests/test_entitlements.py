from datetime import timedelta

from app.core.clock import utcnow
from app.services.entitlements import (
    find_active_subscription,
    get_subscriber_usage,
    get_user_active_package,
    parse_usage_order_id,
    usage_order_id,
)


def _limit(entitlement, type_id):
    return next(lim for lim in entitlement["ad_limits"] if lim["vehicle_type_id"] == type_id)


def test_usage_order_id_round_trip_and_rejects():
    assert usage_order_id("Car") == "V-Car"
    assert parse_usage_order_id("V-Car") == "Car"
    assert parse_usage_order_id("V-") is None
    assert parse_usage_order_id("ORD-123") is None
    assert parse_usage_order_id(None) is None


def test_usage_is_counted_per_type_from_matching_payments(db, seed):
    car = seed.vehicle_type("Car")
    van = seed.vehicle_type("Van")
    pkg = seed.package("GOLD", features={"FREE_ADS_LIMIT": "10"}, limits={car.id: 3, van.id: None})
    user = seed.user()
    start = utcnow() - timedelta(days=2)
    seed.subscription(user.id, pkg.id, start=start)

    seed.payment(user.id, "V-Car")
    seed.payment(user.id, "V-car")
    seed.payment(user.id, "V-Van")
    # none of these count
    seed.payment(user.id, "V-Truck")
    seed.payment(user.id, "V-Car", status="FAILED")
    seed.payment(user.id, "ORD-1", amount=1500)
    seed.payment(user.id, "V-Car", created_at=start - timedelta(days=1))

    ent = get_user_active_package(db, user.id)
    assert ent["has_package"] is True
    assert ent["package"]["code"] == "GOLD"

    car_limit = _limit(ent, car.id)
    assert car_limit["vehicle_type_name"] == "Car"
    assert (car_limit["quantity"], car_limit["used"], car_limit["remaining"]) == (3, 2, 1)

    van_limit = _limit(ent, van.id)
    assert van_limit["is_unlimited"] is True
    assert van_limit["used"] == 1
    assert van_limit["remaining"] == 9999

    assert ent["total_used"] == 3
    assert ent["global_remaining"] == 7
    assert ent["features"]["FREE_ADS_LIMIT"] == "10"


def test_remaining_never_goes_negative(db, seed):
    car = seed.vehicle_type("Car")
    pkg = seed.package(limits={car.id: 1}, features={"FREE_ADS_LIMIT": "1"})
    user = seed.user()
    seed.subscription(user.id, pkg.id)
    for _ in range(3):
        seed.payment(user.id, "V-Car")

    ent = get_user_active_package(db, user.id)
    assert _limit(ent, car.id)["remaining"] == 0
    assert ent["global_remaining"] == 0


def test_unlimited_feature_overrides_global_quota(db, seed):
    pkg = seed.package(features={"FREE_ADS_LIMIT": "2", "IS_UNLIMITED_ADS": "true"})
    user = seed.user()
    seed.subscription(user.id, pkg.id)

    ent = get_user_active_package(db, user.id)
    assert ent["ad_limits"] == []
    assert ent["global_remaining"] == 9999


def test_no_global_quota_without_features(db, seed):
    pkg = seed.package()
    user = seed.user()
    seed.subscription(user.id, pkg.id)
    assert get_user_active_package(db, user.id)["global_remaining"] is None


def test_user_without_subscription_has_no_package(db, seed):
    user = seed.user()
    assert get_user_active_package(db, user.id) == {"has_package": False, "message": "No active package"}


def test_expired_cancelled_and_future_subscriptions_are_ignored(db, seed):
    pkg = seed.package()
    user = seed.user()
    now = utcnow()
    seed.subscription(user.id, pkg.id, start=now - timedelta(days=40), days=30)
    seed.subscription(user.id, pkg.id, status="CANCELLED")
    seed.subscription(user.id, pkg.id, start=now + timedelta(days=1))

    assert find_active_subscription(db, user.id) is None


def test_latest_ending_subscription_wins(db, seed):
    short = seed.package("SHORT")
    long_ = seed.package("LONG")
    user = seed.user()
    seed.subscription(user.id, short.id, days=10)
    seed.subscription(user.id, long_.id, days=60)

    ent = get_user_active_package(db, user.id)
    assert ent["package"]["code"] == "LONG"


def test_subscriber_usage_uses_newest_subscription_for_package(db, seed):
    car = seed.vehicle_type("Car")
    pkg = seed.package(limits={car.id: 5})
    user = seed.user()
    seed.subscription(user.id, pkg.id, start=utcnow() - timedelta(days=90), status="EXPIRED")
    current = seed.subscription(user.id, pkg.id)
    seed.payment(user.id, "V-Car")

    usage = get_subscriber_usage(db, user.id, pkg.id)
    assert usage["subscription"]["id"] == current.id
    assert _limit(usage, car.id)["used"] == 1

    assert get_subscriber_usage(db, user.id, pkg.id + 100) is None


def test_active_package_endpoint(client, signup, seed):
    tokens = signup()
    car = seed.vehicle_type("Car")
    pkg = seed.package(limits={car.id: 2})

    r = client.get("/api/pricing/active-package", headers=tokens["headers"])
    assert r.status_code == 200
    assert r.json()["has_package"] is False

    seed.subscription(tokens["user"]["id"], pkg.id)
    r = client.get("/api/pricing/active-package", headers=tokens["headers"])
    body = r.json()
    assert body["has_package"] is True
    assert body["ad_limits"][0]["remaining"] == 2
