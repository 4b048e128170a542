import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Set

from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.models.ad import CarAd
from app.models.boost import AdBoost
from app.models.pricing import PackageIncludedItem, PriceItem
from app.services.subscriptions import package_duration_days


logger = logging.getLogger(__name__)

# Included item code -> ad flag it switches on
BOOST_FLAGS: Dict[str, str] = {
    "HB_BOOST": "is_homepage_banner",
    "FL_BOOST": "is_featured",
    "PP_BOOST": "is_popup_promotion",
    "US_BOOST": "is_urgent",
}


def boost_flags_for_package(db: Session, package: PriceItem) -> Set[str]:
    codes = {package.code}
    included = db.query(PackageIncludedItem).filter(PackageIncludedItem.package_id == package.id).all()
    codes.update(item.included_item.code for item in included if item.included_item)
    return {BOOST_FLAGS[code] for code in codes if code in BOOST_FLAGS}


def apply_boost_to_ad(
    db: Session,
    ad: CarAd,
    package: PriceItem,
    payment_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> AdBoost:
    """Record a boost window on the ad and switch on its flags. Caller commits."""
    start = now or utcnow()
    boost = AdBoost(
        ad_id=ad.id,
        package_id=package.id,
        payment_id=payment_id,
        start_date=start,
        end_date=start + timedelta(days=package_duration_days(db, package.id)),
        status="ACTIVE",
    )
    db.add(boost)
    flags = boost_flags_for_package(db, package)
    for flag in flags:
        setattr(ad, flag, True)
    db.add(ad)
    db.flush()
    logger.info("Boost %s (%s) applied to ad %s: %s", boost.id, package.code, ad.id, sorted(flags) or "no flags")
    return boost


def active_boosts_for_ad(db: Session, ad_id: int, now: Optional[datetime] = None) -> List[AdBoost]:
    now = now or utcnow()
    return (
        db.query(AdBoost)
        .filter(
            AdBoost.ad_id == ad_id,
            AdBoost.status == "ACTIVE",
            AdBoost.start_date <= now,
            AdBoost.end_date >= now,
        )
        .order_by(AdBoost.end_date.desc())
        .all()
    )


def expire_boosts(db: Session, now: Optional[datetime] = None) -> int:
    """Expire lapsed boosts and clear flags no remaining boost grants. Caller commits."""
    now = now or utcnow()
    lapsed = db.query(AdBoost).filter(AdBoost.status == "ACTIVE", AdBoost.end_date < now).all()
    if not lapsed:
        return 0

    for boost in lapsed:
        boost.status = "EXPIRED"
    db.flush()

    for ad_id in {b.ad_id for b in lapsed}:
        ad = db.get(CarAd, ad_id)
        if not ad:
            continue
        still_granted: Set[str] = set()
        for boost in active_boosts_for_ad(db, ad_id, now):
            still_granted |= boost_flags_for_package(db, boost.package)
        for flag in BOOST_FLAGS.values():
            if flag not in still_granted:
                setattr(ad, flag, False)
        db.add(ad)

    logger.info("Expired %s boost(s)", len(lapsed))
    return len(lapsed)
