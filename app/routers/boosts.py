import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.settings import settings
from app.db.session import get_db
from app.models.ad import CarAd
from app.models.admin import Admin
from app.models.billing import Payment
from app.models.pricing import PriceItem
from app.models.user import User
from app.schemas.boost import AdBoostOut, BoostApplyRequest
from app.schemas.pricing import PriceItemOut
from app.security.deps import get_current_user, require_admin
from app.services import boosts as boost_service
from app.services import pricing as pricing_service


logger = logging.getLogger(__name__)

router = APIRouter()

BOOST_ITEM_TYPES = ("BOOST_ITEM", "BOOST_PACKAGE")


@router.get("/items", response_model=List[PriceItemOut])
def boost_items(db: Session = Depends(get_db)) -> List[PriceItem]:
    return (
        db.query(PriceItem)
        .filter(PriceItem.item_type == "BOOST_ITEM", PriceItem.status == "ACTIVE")
        .order_by(PriceItem.id)
        .all()
    )


@router.get("/packages")
def boost_packages(vehicle_type_id: Optional[int] = None, db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    return pricing_service.boost_packages(db, vehicle_type_id)


@router.get("/ad/{ad_id}", response_model=List[AdBoostOut])
def ad_boosts(ad_id: int, db: Session = Depends(get_db)):
    if not db.get(CarAd, ad_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ad not found")
    return boost_service.active_boosts_for_ad(db, ad_id)


@router.post("/apply", response_model=AdBoostOut, status_code=status.HTTP_201_CREATED)
def apply_boost(payload: BoostApplyRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    ad = db.get(CarAd, payload.ad_id)
    if not ad:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ad not found")
    if ad.seller_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not own this ad")
    package = db.get(PriceItem, payload.package_id)
    if not package or package.item_type not in BOOST_ITEM_TYPES or package.status != "ACTIVE":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid boost package")

    payment = Payment(
        user_id=user.id,
        package_id=package.id,
        ad_id=ad.id,
        order_id=f"BOOST-{uuid.uuid4().hex[:12].upper()}",
        amount=payload.amount or 0,
        currency=settings.default_currency,
        status="SUCCESS",
        payment_method="DIRECT_ACTIVATE",
    )
    db.add(payment)
    db.flush()
    boost = boost_service.apply_boost_to_ad(db, ad, package, payment_id=payment.id)
    db.commit()
    db.refresh(boost)
    logger.info("User %s applied boost %s to ad %s", user.id, package.code, ad.id)
    return boost


@router.get("/admin/items", response_model=List[PriceItemOut])
def admin_boost_items(_: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> List[PriceItem]:
    return db.query(PriceItem).filter(PriceItem.item_type.in_(BOOST_ITEM_TYPES)).order_by(PriceItem.id).all()
