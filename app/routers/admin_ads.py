import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.ad import CarAd
from app.models.admin import Admin
from app.schemas.ad import AdOut, AdPage
from app.schemas.admin import AdStatusUpdate, BanRequest
from app.security.deps import require_admin
from app.services import ads


logger = logging.getLogger(__name__)

router = APIRouter()


def _get_ad(db: Session, ad_id: int) -> CarAd:
    ad = db.get(CarAd, ad_id)
    if not ad:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ad not found")
    return ad


@router.get("", response_model=AdPage)
def list_ads(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    search: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    _: Admin = Depends(require_admin),
    db: Session = Depends(get_db),
) -> AdPage:
    query = db.query(CarAd)
    if status_filter:
        query = query.filter(CarAd.status == status_filter)
    if search:
        query = query.filter(CarAd.title.ilike(f"%{search}%"))
    total = query.count()
    items = query.order_by(CarAd.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return AdPage(items=[AdOut.model_validate(a) for a in items], total=total, page=page, limit=limit)


@router.put("/{ad_id}/status", response_model=AdOut)
def update_ad_status(
    ad_id: int, payload: AdStatusUpdate, admin: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> CarAd:
    ad = _get_ad(db, ad_id)
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    for field, value in changes.items():
        setattr(ad, field, value)
    db.commit()
    db.refresh(ad)
    logger.info("Admin %s updated ad %s: %s", admin.id, ad.id, sorted(changes))
    return ad


@router.put("/{ad_id}/ban", response_model=AdOut)
def ban_ad(
    ad_id: int, payload: BanRequest, admin: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> CarAd:
    ad = _get_ad(db, ad_id)
    ads.ban_ad(ad, payload.duration_days, payload.reason)
    db.commit()
    db.refresh(ad)
    logger.info("Admin %s banned ad %s for %s day(s)", admin.id, ad.id, payload.duration_days)
    return ad


@router.put("/{ad_id}/unban", response_model=AdOut)
def unban_ad(ad_id: int, admin: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> CarAd:
    ad = _get_ad(db, ad_id)
    ads.lift_ad_ban(ad)
    db.commit()
    db.refresh(ad)
    logger.info("Admin %s unbanned ad %s", admin.id, ad.id)
    return ad
