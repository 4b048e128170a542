import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.admin import Admin
from app.models.vehicle import (
    VehicleAttribute,
    VehicleBrand,
    VehicleCondition,
    VehicleModel,
    VehicleType,
)
from app.schemas.auth import MessageResponse
from app.schemas.vehicle import (
    AttributeCreate,
    AttributeOut,
    AttributeUpdate,
    BrandCreate,
    BrandOut,
    BrandUpdate,
    ConditionCreate,
    ConditionOut,
    ModelCreate,
    ModelOut,
    VehicleTypeCreate,
    VehicleTypeOut,
    VehicleTypeStatusUpdate,
    VehicleTypeUpdate,
)
from app.security.deps import require_admin


logger = logging.getLogger(__name__)

router = APIRouter()


def _get_or_404(db: Session, model, row_id: int, label: str):
    row = db.get(model, row_id)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    return row


def _commit_or_conflict(db: Session, message: str) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=message)


def _apply(row, changes: dict) -> None:
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    for field, value in changes.items():
        setattr(row, field, value)


# Vehicle types

@router.get("/types", response_model=List[VehicleTypeOut])
def list_types(active_only: bool = False, db: Session = Depends(get_db)) -> List[VehicleType]:
    query = db.query(VehicleType)
    if active_only:
        query = query.filter(VehicleType.status == "ACTIVE")
    return query.order_by(VehicleType.type_name).all()


@router.post("/types", response_model=VehicleTypeOut, status_code=status.HTTP_201_CREATED)
def create_type(
    payload: VehicleTypeCreate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> VehicleType:
    name = payload.type_name.strip()
    if db.query(VehicleType).filter(VehicleType.type_name.ilike(name)).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Vehicle type already exists")
    vehicle_type = VehicleType(type_name=name, expiry_days=payload.expiry_days, status=payload.status)
    db.add(vehicle_type)
    _commit_or_conflict(db, "Vehicle type already exists")
    db.refresh(vehicle_type)
    return vehicle_type


@router.put("/types/{type_id}", response_model=VehicleTypeOut)
def update_type(
    type_id: int, payload: VehicleTypeUpdate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> VehicleType:
    vehicle_type = _get_or_404(db, VehicleType, type_id, "Vehicle type")
    _apply(vehicle_type, payload.model_dump(exclude_unset=True))
    _commit_or_conflict(db, "Vehicle type already exists")
    db.refresh(vehicle_type)
    return vehicle_type


@router.put("/types/{type_id}/status", response_model=VehicleTypeOut)
def update_type_status(
    type_id: int, payload: VehicleTypeStatusUpdate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> VehicleType:
    vehicle_type = _get_or_404(db, VehicleType, type_id, "Vehicle type")
    vehicle_type.status = payload.status
    db.commit()
    db.refresh(vehicle_type)
    return vehicle_type


@router.delete("/types/{type_id}", response_model=MessageResponse)
def delete_type(type_id: int, admin: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> MessageResponse:
    _get_or_404(db, VehicleType, type_id, "Vehicle type")
    # attributes, brands, models, conditions and ads go with it via ON DELETE CASCADE
    db.query(VehicleType).filter(VehicleType.id == type_id).delete(synchronize_session=False)
    db.commit()
    logger.info("Admin %s deleted vehicle type %s", admin.id, type_id)
    return MessageResponse(message="Vehicle type deleted")


# Attributes

@router.get("/types/{type_id}/attributes", response_model=List[AttributeOut])
def list_attributes(type_id: int, db: Session = Depends(get_db)) -> List[VehicleAttribute]:
    return (
        db.query(VehicleAttribute)
        .filter(VehicleAttribute.vehicle_type_id == type_id)
        .order_by(VehicleAttribute.id)
        .all()
    )


@router.post("/attributes", response_model=AttributeOut, status_code=status.HTTP_201_CREATED)
def create_attribute(
    payload: AttributeCreate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> VehicleAttribute:
    _get_or_404(db, VehicleType, payload.vehicle_type_id, "Vehicle type")
    if payload.data_type == "DROPDOWN" and not payload.options:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Dropdown attributes need options")
    attribute = VehicleAttribute(**payload.model_dump())
    db.add(attribute)
    db.commit()
    db.refresh(attribute)
    return attribute


@router.put("/attributes/{attribute_id}", response_model=AttributeOut)
def update_attribute(
    attribute_id: int, payload: AttributeUpdate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> VehicleAttribute:
    attribute = _get_or_404(db, VehicleAttribute, attribute_id, "Attribute")
    _apply(attribute, payload.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(attribute)
    return attribute


# Brands

@router.get("/brands", response_model=List[BrandOut])
def list_brands(db: Session = Depends(get_db)) -> List[VehicleBrand]:
    return db.query(VehicleBrand).order_by(VehicleBrand.brand_name).all()


@router.get("/types/{type_id}/brands", response_model=List[BrandOut])
def list_brands_by_type(type_id: int, db: Session = Depends(get_db)) -> List[VehicleBrand]:
    return (
        db.query(VehicleBrand)
        .filter(VehicleBrand.vehicle_type_id == type_id)
        .order_by(VehicleBrand.brand_name)
        .all()
    )


@router.post("/brands", response_model=BrandOut, status_code=status.HTTP_201_CREATED)
def create_brand(payload: BrandCreate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> VehicleBrand:
    _get_or_404(db, VehicleType, payload.vehicle_type_id, "Vehicle type")
    brand = VehicleBrand(
        vehicle_type_id=payload.vehicle_type_id,
        brand_name=payload.brand_name.strip(),
        brand_image=payload.brand_image,
    )
    db.add(brand)
    _commit_or_conflict(db, "Brand already exists for this vehicle type")
    db.refresh(brand)
    return brand


@router.put("/brands/{brand_id}", response_model=BrandOut)
def update_brand(
    brand_id: int, payload: BrandUpdate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> VehicleBrand:
    brand = _get_or_404(db, VehicleBrand, brand_id, "Brand")
    _apply(brand, payload.model_dump(exclude_unset=True))
    _commit_or_conflict(db, "Brand already exists for this vehicle type")
    db.refresh(brand)
    return brand


# Models

@router.get("/types/{type_id}/models", response_model=List[ModelOut])
def list_models_by_type(type_id: int, db: Session = Depends(get_db)) -> List[VehicleModel]:
    return db.query(VehicleModel).filter(VehicleModel.vehicle_type_id == type_id).order_by(VehicleModel.model_name).all()


@router.get("/brands/{brand_id}/models", response_model=List[ModelOut])
def list_models_by_brand(brand_id: int, db: Session = Depends(get_db)) -> List[VehicleModel]:
    return db.query(VehicleModel).filter(VehicleModel.brand_id == brand_id).order_by(VehicleModel.model_name).all()


@router.post("/models", response_model=ModelOut, status_code=status.HTTP_201_CREATED)
def create_model(payload: ModelCreate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> VehicleModel:
    brand = _get_or_404(db, VehicleBrand, payload.brand_id, "Brand")
    model = VehicleModel(
        brand_id=brand.id, vehicle_type_id=brand.vehicle_type_id, model_name=payload.model_name.strip()
    )
    db.add(model)
    db.commit()
    db.refresh(model)
    return model


# Conditions

@router.get("/types/{type_id}/conditions", response_model=List[ConditionOut])
def list_conditions(type_id: int, db: Session = Depends(get_db)) -> List[VehicleCondition]:
    return db.query(VehicleCondition).filter(VehicleCondition.vehicle_type_id == type_id).all()


@router.post("/conditions", response_model=ConditionOut, status_code=status.HTTP_201_CREATED)
def create_condition(
    payload: ConditionCreate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> VehicleCondition:
    _get_or_404(db, VehicleType, payload.vehicle_type_id, "Vehicle type")
    condition = VehicleCondition(
        vehicle_type_id=payload.vehicle_type_id, condition_name=payload.condition_name.strip()
    )
    db.add(condition)
    db.commit()
    db.refresh(condition)
    return condition


@router.delete("/conditions/{condition_id}", response_model=MessageResponse)
def delete_condition(
    condition_id: int, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> MessageResponse:
    condition = _get_or_404(db, VehicleCondition, condition_id, "Condition")
    db.delete(condition)
    db.commit()
    return MessageResponse(message="Condition deleted")
