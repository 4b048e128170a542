import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.admin import Admin
from app.models.billing import UserSubscription
from app.models.pricing import (
    PackageAdLimit,
    PackageFeature,
    PackageIncludedItem,
    PriceItem,
    PricingRule,
)
from app.models.user import User
from app.models.vehicle import VehicleType
from app.schemas.auth import MessageResponse
from app.schemas.pricing import (
    AdLimitCreate,
    AdLimitOut,
    FeatureOut,
    FeatureUpsert,
    IncludedItemCreate,
    IncludedItemOut,
    PriceItemCreate,
    PriceItemOut,
    PriceItemUpdate,
    PricingRuleCreate,
    PricingRuleOut,
    PricingRuleUpdate,
    SubscriptionOut,
    UnsubscribeRequest,
)
from app.security.deps import get_current_user, require_admin
from app.services import pricing as pricing_service
from app.services.entitlements import get_subscriber_usage, get_user_active_package
from app.services.subscriptions import cancel_subscriptions


logger = logging.getLogger(__name__)

router = APIRouter()


def _get_or_404(db: Session, model, row_id: int, label: str):
    row = db.get(model, row_id)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    return row


def _apply(row, changes: dict) -> None:
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    for field, value in changes.items():
        setattr(row, field, value)


# Price items

@router.get("/items", response_model=List[PriceItemOut])
def list_items(item_type: Optional[str] = None, db: Session = Depends(get_db)) -> List[PriceItem]:
    query = db.query(PriceItem)
    if item_type:
        query = query.filter(PriceItem.item_type == item_type)
    return query.order_by(PriceItem.id).all()


@router.get("/items/{item_id}")
def get_item(item_id: int, vehicle_type_id: Optional[int] = None, db: Session = Depends(get_db)) -> Dict[str, Any]:
    item = _get_or_404(db, PriceItem, item_id, "Price item")
    return pricing_service.enrich_item(db, item, vehicle_type_id)


@router.post("/items", response_model=PriceItemOut, status_code=status.HTTP_201_CREATED)
def create_item(payload: PriceItemCreate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> PriceItem:
    if db.query(PriceItem).filter(PriceItem.code == payload.code).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Price item code already exists")
    item = PriceItem(**payload.model_dump())
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@router.put("/items/{item_id}", response_model=PriceItemOut)
def update_item(
    item_id: int, payload: PriceItemUpdate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> PriceItem:
    item = _get_or_404(db, PriceItem, item_id, "Price item")
    _apply(item, payload.model_dump(exclude_unset=True))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Price item code already exists")
    db.refresh(item)
    return item


@router.delete("/items/{item_id}", response_model=MessageResponse)
def delete_item(item_id: int, admin: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> MessageResponse:
    _get_or_404(db, PriceItem, item_id, "Price item")
    try:
        db.query(PriceItem).filter(PriceItem.id == item_id).delete(synchronize_session=False)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Price item is still referenced by subscriptions"
        )
    logger.info("Admin %s deleted price item %s", admin.id, item_id)
    return MessageResponse(message="Price item deleted")


# Pricing rules

@router.get("/rules", response_model=List[PricingRuleOut])
def list_rules(
    price_item_id: Optional[int] = None, vehicle_type_id: Optional[int] = None, db: Session = Depends(get_db)
) -> List[PricingRule]:
    query = db.query(PricingRule)
    if price_item_id is not None:
        query = query.filter(PricingRule.price_item_id == price_item_id)
    if vehicle_type_id is not None:
        query = query.filter(PricingRule.vehicle_type_id == vehicle_type_id)
    return query.order_by(PricingRule.id).all()


def _check_qty_bounds(min_qty: Optional[int], max_qty: Optional[int]) -> None:
    if min_qty is not None and max_qty is not None and min_qty > max_qty:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="min_qty cannot exceed max_qty")


@router.post("/rules", response_model=PricingRuleOut, status_code=status.HTTP_201_CREATED)
def create_rule(payload: PricingRuleCreate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> PricingRule:
    _get_or_404(db, PriceItem, payload.price_item_id, "Price item")
    if payload.vehicle_type_id is not None:
        _get_or_404(db, VehicleType, payload.vehicle_type_id, "Vehicle type")
    _check_qty_bounds(payload.min_qty, payload.max_qty)
    rule = PricingRule(**payload.model_dump())
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


@router.put("/rules/{rule_id}", response_model=PricingRuleOut)
def update_rule(
    rule_id: int, payload: PricingRuleUpdate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> PricingRule:
    rule = _get_or_404(db, PricingRule, rule_id, "Pricing rule")
    _apply(rule, payload.model_dump(exclude_unset=True))
    _check_qty_bounds(rule.min_qty, rule.max_qty)
    db.commit()
    db.refresh(rule)
    return rule


@router.delete("/rules/{rule_id}", response_model=MessageResponse)
def delete_rule(rule_id: int, _: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> MessageResponse:
    rule = _get_or_404(db, PricingRule, rule_id, "Pricing rule")
    db.delete(rule)
    db.commit()
    return MessageResponse(message="Pricing rule deleted")


# Package features

@router.get("/items/{item_id}/features", response_model=List[FeatureOut])
def list_features(item_id: int, db: Session = Depends(get_db)) -> List[PackageFeature]:
    return db.query(PackageFeature).filter(PackageFeature.price_item_id == item_id).all()


@router.post("/features", response_model=FeatureOut)
def upsert_feature(payload: FeatureUpsert, _: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> PackageFeature:
    _get_or_404(db, PriceItem, payload.price_item_id, "Price item")
    feature = (
        db.query(PackageFeature)
        .filter(
            PackageFeature.price_item_id == payload.price_item_id,
            PackageFeature.feature_key == payload.feature_key,
        )
        .first()
    )
    if feature:
        feature.feature_value = payload.feature_value
    else:
        feature = PackageFeature(**payload.model_dump())
        db.add(feature)
    db.commit()
    db.refresh(feature)
    return feature


@router.delete("/features/{feature_id}", response_model=MessageResponse)
def delete_feature(feature_id: int, _: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> MessageResponse:
    feature = _get_or_404(db, PackageFeature, feature_id, "Feature")
    db.delete(feature)
    db.commit()
    return MessageResponse(message="Feature deleted")


# Included items

@router.get("/packages/{package_id}/included-items")
def list_included_items(package_id: int, db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    return pricing_service.included_items_for(db, package_id)


@router.post("/package-items", response_model=IncludedItemOut, status_code=status.HTTP_201_CREATED)
def add_included_item(
    payload: IncludedItemCreate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> PackageIncludedItem:
    if payload.package_id == payload.included_item_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A package cannot include itself")
    _get_or_404(db, PriceItem, payload.package_id, "Package")
    _get_or_404(db, PriceItem, payload.included_item_id, "Included item")
    row = PackageIncludedItem(**payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.delete("/package-items/{row_id}", response_model=MessageResponse)
def remove_included_item(row_id: int, _: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> MessageResponse:
    row = _get_or_404(db, PackageIncludedItem, row_id, "Included item")
    db.delete(row)
    db.commit()
    return MessageResponse(message="Included item removed")


# Package ad limits

@router.get("/packages/{package_id}/ad-limits", response_model=List[AdLimitOut])
def list_ad_limits(package_id: int, db: Session = Depends(get_db)) -> List[PackageAdLimit]:
    return db.query(PackageAdLimit).filter(PackageAdLimit.package_id == package_id).all()


@router.post("/packages/{package_id}/ad-limits", response_model=AdLimitOut, status_code=status.HTTP_201_CREATED)
def add_ad_limit(
    package_id: int, payload: AdLimitCreate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> PackageAdLimit:
    _get_or_404(db, PriceItem, package_id, "Package")
    _get_or_404(db, VehicleType, payload.vehicle_type_id, "Vehicle type")
    limit = PackageAdLimit(package_id=package_id, **payload.model_dump())
    db.add(limit)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="This package already has a limit for that vehicle type"
        )
    db.refresh(limit)
    return limit


@router.delete("/ad-limits/{limit_id}", response_model=MessageResponse)
def delete_ad_limit(limit_id: int, _: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> MessageResponse:
    limit = _get_or_404(db, PackageAdLimit, limit_id, "Ad limit")
    db.delete(limit)
    db.commit()
    return MessageResponse(message="Ad limit deleted")


# Packages and subscriptions

@router.get("/public-packages")
def public_packages(vehicle_type_id: Optional[int] = None, db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    return pricing_service.public_packages(db, vehicle_type_id)


@router.get("/active-package")
def active_package(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> Dict[str, Any]:
    return get_user_active_package(db, user.id)


@router.post("/unsubscribe", response_model=MessageResponse)
def unsubscribe(
    payload: Optional[UnsubscribeRequest] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    subscription_id = payload.subscription_id if payload else None
    count = cancel_subscriptions(db, user.id, subscription_id)
    if subscription_id is not None and count == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Active subscription not found")
    return MessageResponse(message=f"Cancelled {count} subscription(s)")


@router.get("/admin/subscribers", response_model=List[SubscriptionOut])
def list_subscribers(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    _: Admin = Depends(require_admin),
    db: Session = Depends(get_db),
) -> List[SubscriptionOut]:
    query = db.query(UserSubscription)
    if status_filter:
        query = query.filter(UserSubscription.status == status_filter)
    return [
        SubscriptionOut(
            id=sub.id,
            user_id=sub.user_id,
            package_id=sub.package_id,
            payment_id=sub.payment_id,
            start_date=sub.start_date,
            end_date=sub.end_date,
            status=sub.status,
            package_name=sub.package.name if sub.package else None,
            user_name=sub.user.name if sub.user else None,
            user_email=sub.user.email if sub.user else None,
        )
        for sub in query.order_by(UserSubscription.created_at.desc()).all()
    ]


@router.get("/admin/subscriber-usage/{user_id}/{package_id}")
def subscriber_usage(
    user_id: int, package_id: int, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> Dict[str, Any]:
    usage = get_subscriber_usage(db, user_id, package_id)
    if usage is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found")
    return usage
