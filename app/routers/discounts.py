import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.clock import to_aware_utc
from app.db.session import get_db
from app.models.admin import Admin
from app.models.discount import Discount
from app.models.pricing import PriceItem
from app.models.user import User
from app.models.vehicle import VehicleType
from app.schemas.auth import MessageResponse
from app.schemas.discount import DiscountCreate, DiscountOut, DiscountUpdate, QuoteOut, QuoteRequest
from app.security.deps import get_current_user, require_admin
from app.services import discounts as discount_service


logger = logging.getLogger(__name__)

router = APIRouter()


def _out(discount: Discount) -> DiscountOut:
    return DiscountOut(
        id=discount.id,
        name=discount.name,
        discount_type=discount.discount_type,
        value=discount.value,
        is_first_time_user=discount.is_first_time_user,
        min_bulk_ads=discount.min_bulk_ads,
        start_date=discount.start_date,
        end_date=discount.end_date,
        status=discount.status,
        offer_image=discount.offer_image,
        vehicle_type_ids=sorted(vt.id for vt in discount.vehicle_types),
        package_ids=sorted(p.id for p in discount.packages),
    )


def _load_scope(db: Session, model, ids: List[int], label: str) -> list:
    unique_ids = list(dict.fromkeys(ids))
    if not unique_ids:
        return []
    rows = db.query(model).filter(model.id.in_(unique_ids)).all()
    if len(rows) != len(unique_ids):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown {label} id(s)")
    return rows


def _check_window(discount: Discount) -> None:
    start, end = to_aware_utc(discount.start_date), to_aware_utc(discount.end_date)
    if start and end and start > end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start_date must be before end_date")
    if discount.discount_type == "PERCENTAGE" and discount.value > 100:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Percentage discount cannot exceed 100")


@router.get("/active", response_model=List[DiscountOut])
def active_discounts(db: Session = Depends(get_db)) -> List[DiscountOut]:
    return [_out(d) for d in discount_service.active_discounts(db)]


@router.get("", response_model=List[DiscountOut])
def list_discounts(_: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> List[DiscountOut]:
    return [_out(d) for d in db.query(Discount).order_by(Discount.id.desc()).all()]


@router.get("/{discount_id}", response_model=DiscountOut)
def get_discount(discount_id: int, db: Session = Depends(get_db)) -> DiscountOut:
    discount = db.get(Discount, discount_id)
    if not discount:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Discount not found")
    return _out(discount)


@router.post("", response_model=DiscountOut, status_code=status.HTTP_201_CREATED)
def create_discount(
    payload: DiscountCreate, admin: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> DiscountOut:
    data = payload.model_dump(exclude={"vehicle_type_ids", "package_ids"})
    discount = Discount(**data)
    _check_window(discount)
    discount.vehicle_types = _load_scope(db, VehicleType, payload.vehicle_type_ids, "vehicle type")
    discount.packages = _load_scope(db, PriceItem, payload.package_ids, "package")
    db.add(discount)
    db.commit()
    db.refresh(discount)
    logger.info("Admin %s created discount %s", admin.id, discount.id)
    return _out(discount)


@router.put("/{discount_id}", response_model=DiscountOut)
def update_discount(
    discount_id: int, payload: DiscountUpdate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> DiscountOut:
    discount = db.get(Discount, discount_id)
    if not discount:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Discount not found")
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    type_ids = changes.pop("vehicle_type_ids", None)
    package_ids = changes.pop("package_ids", None)
    for field, value in changes.items():
        setattr(discount, field, value)
    if type_ids is not None:
        discount.vehicle_types = _load_scope(db, VehicleType, type_ids, "vehicle type")
    if package_ids is not None:
        discount.packages = _load_scope(db, PriceItem, package_ids, "package")
    _check_window(discount)
    db.commit()
    db.refresh(discount)
    return _out(discount)


@router.delete("/{discount_id}", response_model=MessageResponse)
def delete_discount(discount_id: int, _: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> MessageResponse:
    if not db.get(Discount, discount_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Discount not found")
    db.query(Discount).filter(Discount.id == discount_id).delete(synchronize_session=False)
    db.commit()
    return MessageResponse(message="Discount deleted")


@router.post("/quote", response_model=QuoteOut)
def quote(payload: QuoteRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> QuoteOut:
    return QuoteOut(
        **discount_service.quote(
            db,
            user.id,
            payload.amount,
            vehicle_type_id=payload.vehicle_type_id,
            package_id=payload.package_id,
            ad_count=payload.ad_count,
        )
    )
