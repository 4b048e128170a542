from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.models.billing import Payment
from app.models.discount import Discount


def active_discounts(db: Session, now: Optional[datetime] = None) -> List[Discount]:
    now = now or utcnow()
    return (
        db.query(Discount)
        .filter(
            Discount.status == "ACTIVE",
            or_(Discount.start_date.is_(None), Discount.start_date <= now),
            or_(Discount.end_date.is_(None), Discount.end_date >= now),
        )
        .order_by(Discount.id.desc())
        .all()
    )


def discount_amount(discount: Discount, amount: float) -> float:
    if discount.discount_type == "PERCENTAGE":
        return round(amount * float(discount.value) / 100, 2)
    return round(min(float(discount.value), amount), 2)


def _applies(
    discount: Discount,
    vehicle_type_id: Optional[int],
    package_id: Optional[int],
    ad_count: int,
    first_time: bool,
) -> bool:
    type_ids = {vt.id for vt in discount.vehicle_types}
    if type_ids and vehicle_type_id not in type_ids:
        return False
    package_ids = {p.id for p in discount.packages}
    if package_ids and package_id not in package_ids:
        return False
    if discount.is_first_time_user and not first_time:
        return False
    if discount.min_bulk_ads and ad_count < discount.min_bulk_ads:
        return False
    return True


def quote(
    db: Session,
    user_id: int,
    amount: float,
    vehicle_type_id: Optional[int] = None,
    package_id: Optional[int] = None,
    ad_count: int = 1,
) -> Dict[str, Any]:
    """Pick the applicable discount that saves the most and price the order with it."""
    first_time = (
        db.query(Payment.id).filter(Payment.user_id == user_id, Payment.status == "SUCCESS").first() is None
    )
    best: Optional[Discount] = None
    best_saving = 0.0
    for discount in active_discounts(db):
        if not _applies(discount, vehicle_type_id, package_id, ad_count, first_time):
            continue
        saving = discount_amount(discount, amount)
        if saving > best_saving:
            best, best_saving = discount, saving

    return {
        "original_amount": round(amount, 2),
        "discount_id": best.id if best else None,
        "discount_name": best.name if best else None,
        "discount_amount": best_saving,
        "final_amount": round(amount - best_saving, 2),
    }
