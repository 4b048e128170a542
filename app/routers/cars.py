import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.ad import CarAd, CarDetails
from app.models.user import User
from app.schemas.ad import AdCreate, AdDetailOut, AdOut, AdPage, AdUpdate, AttributeValueOut, SellerContact
from app.security.deps import get_current_user
from app.services.ads import create_ad


logger = logging.getLogger(__name__)

router = APIRouter()


def _detail(ad: CarAd) -> AdDetailOut:
    data = AdOut.model_validate(ad).model_dump()
    data["vehicle_type_name"] = ad.vehicle_type.type_name if ad.vehicle_type else None
    data["attribute_values"] = [
        AttributeValueOut(
            attribute_id=value.attribute_id,
            attribute_name=value.attribute.attribute_name if value.attribute else None,
            unit=value.attribute.unit if value.attribute else None,
            value=value.value,
        )
        for value in ad.attribute_values
    ]
    data["seller"] = SellerContact.model_validate(ad.seller) if ad.seller else None
    return AdDetailOut(**data)


@router.post("", response_model=AdDetailOut, status_code=status.HTTP_201_CREATED)
def create_car_ad(
    payload: AdCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> AdDetailOut:
    return _detail(create_ad(db, user, payload))


@router.get("", response_model=AdPage)
def list_car_ads(
    min_price: Optional[float] = Query(default=None, ge=0),
    max_price: Optional[float] = Query(default=None, ge=0),
    vehicle_type_id: Optional[int] = None,
    brand: Optional[str] = None,
    model: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
) -> AdPage:
    query = db.query(CarAd).filter(CarAd.status == "ACTIVE", CarAd.is_banned.is_(False))
    if min_price is not None:
        query = query.filter(CarAd.price >= min_price)
    if max_price is not None:
        query = query.filter(CarAd.price <= max_price)
    if vehicle_type_id is not None:
        query = query.filter(CarAd.vehicle_type_id == vehicle_type_id)
    if brand or model:
        query = query.join(CarDetails, CarDetails.ad_id == CarAd.id)
        if brand:
            query = query.filter(CarDetails.brand.ilike(brand))
        if model:
            query = query.filter(CarDetails.model.ilike(model))

    total = query.count()
    items = (
        query.order_by(CarAd.is_featured.desc(), CarAd.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return AdPage(items=[AdOut.model_validate(a) for a in items], total=total, page=page, limit=limit)


@router.get("/my-ads", response_model=List[AdOut])
def my_ads(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> List[CarAd]:
    return db.query(CarAd).filter(CarAd.seller_id == user.id).order_by(CarAd.created_at.desc()).all()


@router.get("/{ad_id}", response_model=AdDetailOut)
def get_car_ad(ad_id: int, db: Session = Depends(get_db)) -> AdDetailOut:
    ad = db.get(CarAd, ad_id)
    if not ad:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ad not found")
    ad.views_count = (ad.views_count or 0) + 1
    db.commit()
    db.refresh(ad)
    return _detail(ad)


@router.put("/{ad_id}", response_model=AdDetailOut)
def update_car_ad(
    ad_id: int, payload: AdUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> AdDetailOut:
    ad = db.get(CarAd, ad_id)
    if not ad:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ad not found")
    if ad.seller_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not own this ad")
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    for field, value in changes.items():
        setattr(ad, field, value)
    db.commit()
    db.refresh(ad)
    return _detail(ad)
