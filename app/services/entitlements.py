"""Remaining ad-posting quota derived from a subscription and its payments.

Usage is not stored as a counter. Every ad activated under a package leaves
a SUCCESS payment whose order id is ``V-<vehicle type name>``; the quota is
rebuilt by scanning those rows since the subscription started.
"""
import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.settings import settings
from app.models.billing import Payment, UserSubscription
from app.models.pricing import PackageAdLimit, PackageFeature, PriceItem
from app.models.vehicle import VehicleType


logger = logging.getLogger(__name__)

USAGE_ORDER_PREFIX = "V-"


def usage_order_id(type_name: str) -> str:
    return f"{USAGE_ORDER_PREFIX}{type_name}"


def parse_usage_order_id(order_id: Optional[str]) -> Optional[str]:
    """Return the vehicle type name encoded in a usage order id, if any."""
    if not order_id or not order_id.startswith(USAGE_ORDER_PREFIX):
        return None
    name = order_id[len(USAGE_ORDER_PREFIX):].strip()
    return name or None


def find_active_subscription(
    db: Session, user_id: int, now: Optional[datetime] = None
) -> Optional[UserSubscription]:
    now = now or utcnow()
    return (
        db.query(UserSubscription)
        .filter(
            UserSubscription.user_id == user_id,
            UserSubscription.status == "ACTIVE",
            UserSubscription.start_date <= now,
            UserSubscription.end_date >= now,
        )
        .order_by(UserSubscription.end_date.desc(), UserSubscription.id.desc())
        .first()
    )


def count_usage(db: Session, user_id: int, since: datetime) -> Counter:
    """Count activations per vehicle type id since ``since``.

    Order ids that do not follow the ``V-<type>`` convention, or that name
    a type that no longer exists, do not count.
    """
    types_by_name = {t.type_name.lower(): t.id for t in db.query(VehicleType).all()}
    payments = (
        db.query(Payment.order_id)
        .filter(
            Payment.user_id == user_id,
            Payment.status == "SUCCESS",
            Payment.created_at >= since,
            Payment.order_id.like(f"{USAGE_ORDER_PREFIX}%"),
        )
        .all()
    )

    usage: Counter = Counter()
    for (order_id,) in payments:
        name = parse_usage_order_id(order_id)
        type_id = types_by_name.get(name.lower()) if name else None
        if type_id is None:
            logger.debug("Ignoring unrecognised usage order id %r for user %s", order_id, user_id)
            continue
        usage[type_id] += 1
    return usage


def _feature_map(db: Session, package_id: int) -> Dict[str, Optional[str]]:
    rows = db.query(PackageFeature).filter(PackageFeature.price_item_id == package_id).all()
    return {row.feature_key: row.feature_value for row in rows}


def _is_true(value: Optional[str]) -> bool:
    return str(value).strip().lower() in ("true", "1", "yes")


def global_remaining(features: Dict[str, Optional[str]], total_used: int) -> Optional[int]:
    if _is_true(features.get("IS_UNLIMITED_ADS")):
        return settings.unlimited_sentinel
    raw = features.get("FREE_ADS_LIMIT")
    if raw is None or str(raw).strip() == "":
        return None
    try:
        limit = int(str(raw).strip())
    except ValueError:
        logger.warning("FREE_ADS_LIMIT has a non-numeric value %r", raw)
        return None
    return max(0, limit - total_used)


def build_entitlement(db: Session, subscription: UserSubscription) -> Dict[str, Any]:
    package: PriceItem = subscription.package
    features = _feature_map(db, package.id)
    usage = count_usage(db, subscription.user_id, subscription.start_date)
    limits = db.query(PackageAdLimit).filter(PackageAdLimit.package_id == package.id).all()

    ad_limits = []
    for limit in limits:
        used = usage.get(limit.vehicle_type_id, 0)
        if limit.is_unlimited:
            remaining = settings.unlimited_sentinel
        else:
            remaining = max(0, limit.quantity - used)
        ad_limits.append(
            {
                "vehicle_type_id": limit.vehicle_type_id,
                "vehicle_type_name": limit.vehicle_type.type_name if limit.vehicle_type else None,
                "quantity": limit.quantity,
                "is_unlimited": limit.is_unlimited,
                "used": used,
                "remaining": remaining,
            }
        )

    total_used = sum(usage.values())
    return {
        "has_package": True,
        "subscription": {
            "id": subscription.id,
            "status": subscription.status,
            "start_date": subscription.start_date,
            "end_date": subscription.end_date,
        },
        "package": {
            "id": package.id,
            "code": package.code,
            "name": package.name,
            "description": package.description,
        },
        "features": features,
        "ad_limits": ad_limits,
        "total_used": total_used,
        "global_remaining": global_remaining(features, total_used),
    }


def get_user_active_package(db: Session, user_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
    subscription = find_active_subscription(db, user_id, now)
    if not subscription:
        return {"has_package": False, "message": "No active package"}
    return build_entitlement(db, subscription)


def get_subscriber_usage(db: Session, user_id: int, package_id: int) -> Optional[Dict[str, Any]]:
    subscription = (
        db.query(UserSubscription)
        .filter(UserSubscription.user_id == user_id, UserSubscription.package_id == package_id)
        .order_by(UserSubscription.created_at.desc(), UserSubscription.id.desc())
        .first()
    )
    if not subscription:
        return None
    return build_entitlement(db, subscription)
