from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models.pricing import (
    PackageAdLimit,
    PackageFeature,
    PackageIncludedItem,
    PriceItem,
    PricingRule,
)


def _rule_dict(rule: PricingRule) -> Dict[str, Any]:
    return {
        "id": rule.id,
        "vehicle_type_id": rule.vehicle_type_id,
        "unit": rule.unit,
        "price": rule.price,
        "min_qty": rule.min_qty,
        "max_qty": rule.max_qty,
        "extra_letter_price": rule.extra_letter_price,
        "description_limit": rule.description_limit,
    }


def rules_for(db: Session, item_id: int, vehicle_type_id: Optional[int] = None) -> List[PricingRule]:
    query = db.query(PricingRule).filter(PricingRule.price_item_id == item_id)
    if vehicle_type_id is not None:
        query = query.filter(
            or_(PricingRule.vehicle_type_id == vehicle_type_id, PricingRule.vehicle_type_id.is_(None))
        )
    return query.order_by(PricingRule.id).all()


def included_items_for(db: Session, package_id: int) -> List[Dict[str, Any]]:
    rows = db.query(PackageIncludedItem).filter(PackageIncludedItem.package_id == package_id).all()
    return [
        {
            "id": row.id,
            "included_item_id": row.included_item_id,
            "code": row.included_item.code if row.included_item else None,
            "name": row.included_item.name if row.included_item else None,
            "vehicle_type_id": row.vehicle_type_id,
            "quantity": row.quantity,
            "is_unlimited": row.is_unlimited,
        }
        for row in rows
    ]


def enrich_item(
    db: Session, item: PriceItem, vehicle_type_id: Optional[int] = None, with_limits: bool = True
) -> Dict[str, Any]:
    features = db.query(PackageFeature).filter(PackageFeature.price_item_id == item.id).all()
    data: Dict[str, Any] = {
        "id": item.id,
        "code": item.code,
        "name": item.name,
        "description": item.description,
        "item_type": item.item_type,
        "status": item.status,
        "rules": [_rule_dict(r) for r in rules_for(db, item.id, vehicle_type_id)],
        "features": [{"feature_key": f.feature_key, "feature_value": f.feature_value} for f in features],
        "config": {f.feature_key: f.feature_value for f in features},
        "included_items": included_items_for(db, item.id),
    }
    if with_limits:
        limits = db.query(PackageAdLimit).filter(PackageAdLimit.package_id == item.id).all()
        data["ad_limits"] = [
            {
                "id": lim.id,
                "vehicle_type_id": lim.vehicle_type_id,
                "vehicle_type_name": lim.vehicle_type.type_name if lim.vehicle_type else None,
                "quantity": lim.quantity,
                "is_unlimited": lim.is_unlimited,
            }
            for lim in limits
        ]
    return data


def public_packages(db: Session, vehicle_type_id: Optional[int] = None) -> List[Dict[str, Any]]:
    items = (
        db.query(PriceItem)
        .filter(PriceItem.item_type == "PACKAGE", PriceItem.status == "ACTIVE")
        .order_by(PriceItem.id)
        .all()
    )
    return [enrich_item(db, item, vehicle_type_id) for item in items]


def boost_packages(db: Session, vehicle_type_id: Optional[int] = None) -> List[Dict[str, Any]]:
    items = (
        db.query(PriceItem)
        .filter(PriceItem.item_type == "BOOST_PACKAGE", PriceItem.status == "ACTIVE")
        .order_by(PriceItem.id)
        .all()
    )
    result = []
    for item in items:
        data = enrich_item(db, item, vehicle_type_id, with_limits=False)
        if vehicle_type_id is not None and not data["rules"]:
            continue
        result.append(data)
    return result
