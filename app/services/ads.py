import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import to_aware_utc, utcnow
from app.core.settings import settings
from app.models.ad import AdAttributeValue, AdImage, CarAd, CarDetails
from app.models.user import User
from app.models.vehicle import VehicleAttribute, VehicleType
from app.schemas.ad import AdCreate


logger = logging.getLogger(__name__)


def _attach_attributes(db: Session, ad: CarAd, payload: AdCreate) -> int:
    known = {
        a.id
        for a in db.query(VehicleAttribute).filter(VehicleAttribute.vehicle_type_id == ad.vehicle_type_id).all()
    }
    saved = 0
    for item in payload.attributes:
        if item.attribute_id not in known:
            logger.warning("Skipping attribute %s: not defined for vehicle type %s", item.attribute_id, ad.vehicle_type_id)
            continue
        try:
            with db.begin_nested():
                db.add(AdAttributeValue(ad_id=ad.id, attribute_id=item.attribute_id, value=item.value))
            saved += 1
        except SQLAlchemyError as exc:
            logger.error("Failed to save attribute %s for ad %s: %s", item.attribute_id, ad.id, exc)
    return saved


def _attach_images(db: Session, ad: CarAd, payload: AdCreate) -> int:
    urls = [url for url in payload.images if url and url.strip()]
    if not urls:
        return 0
    try:
        with db.begin_nested():
            for index, url in enumerate(urls):
                db.add(AdImage(ad_id=ad.id, image_url=url.strip(), is_primary=index == 0))
    except SQLAlchemyError as exc:
        logger.error("Failed to save images for ad %s: %s", ad.id, exc)
        return 0
    return len(urls)


def create_ad(db: Session, seller: User, payload: AdCreate) -> CarAd:
    """Create an ad with its details; attributes and images are best effort."""
    vehicle_type: Optional[VehicleType] = db.get(VehicleType, payload.vehicle_type_id)
    if not vehicle_type or vehicle_type.status != "ACTIVE":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or disabled vehicle type")

    expiry_days = vehicle_type.expiry_days or settings.ad_default_expiry_days
    ad = CarAd(
        seller_id=seller.id,
        vehicle_type_id=vehicle_type.id,
        title=payload.title.strip(),
        price=payload.price,
        location=payload.location,
        description=payload.description,
        status="DRAFT",
        expiry_date=utcnow() + timedelta(days=expiry_days),
    )
    try:
        db.add(ad)
        db.flush()
        details = payload.details.model_dump() if payload.details else {}
        db.add(CarDetails(ad_id=ad.id, **details))
        db.flush()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to create ad for user %s", seller.id)
        raise

    attributes = _attach_attributes(db, ad, payload)
    images = _attach_images(db, ad, payload)
    db.commit()
    db.refresh(ad)
    logger.info("Ad %s created by user %s (%s attribute(s), %s image(s))", ad.id, seller.id, attributes, images)
    return ad


def ban_ad(ad: CarAd, duration_days: int, reason: Optional[str], now: Optional[datetime] = None) -> None:
    now = now or utcnow()
    if not ad.is_banned:
        ad.status_before_ban = ad.status
    ad.is_banned = True
    ad.status = "BANNED"
    ad.ban_expires_at = now + timedelta(days=duration_days)
    ad.ban_reason = reason


def lift_ad_ban(ad: CarAd, now: Optional[datetime] = None) -> None:
    """Clear the ban and put the ad back in the status it had before.

    An ad that was live but whose expiry passed during the ban comes back
    EXPIRED. A ban with no recorded status falls back to DRAFT.
    """
    now = now or utcnow()
    restored = ad.status_before_ban or "DRAFT"
    expiry = to_aware_utc(ad.expiry_date)
    if restored == "ACTIVE" and expiry is not None and expiry < to_aware_utc(now):
        restored = "EXPIRED"
    ad.status = restored
    ad.is_banned = False
    ad.ban_expires_at = None
    ad.ban_reason = None
    ad.status_before_ban = None
