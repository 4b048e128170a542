from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field


class VehicleTypeCreate(BaseModel):
    type_name: str = Field(min_length=1, max_length=100)
    expiry_days: int = Field(default=30, ge=1)
    status: Literal["ACTIVE", "DISABLED"] = "ACTIVE"


class VehicleTypeUpdate(BaseModel):
    type_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    expiry_days: Optional[int] = Field(default=None, ge=1)


class VehicleTypeStatusUpdate(BaseModel):
    status: Literal["ACTIVE", "DISABLED"]


class VehicleTypeOut(BaseModel):
    id: int
    type_name: str
    status: str
    expiry_days: int

    class Config:
        from_attributes = True


class AttributeCreate(BaseModel):
    vehicle_type_id: int
    attribute_name: str = Field(min_length=1)
    data_type: Literal["NUMBER", "TEXT", "DROPDOWN", "BOOLEAN"] = "TEXT"
    unit: Optional[str] = None
    is_required: bool = False
    options: Optional[List[Any]] = None


class AttributeUpdate(BaseModel):
    attribute_name: Optional[str] = None
    data_type: Optional[Literal["NUMBER", "TEXT", "DROPDOWN", "BOOLEAN"]] = None
    unit: Optional[str] = None
    is_required: Optional[bool] = None
    options: Optional[List[Any]] = None


class AttributeOut(BaseModel):
    id: int
    vehicle_type_id: int
    attribute_name: str
    data_type: str
    unit: Optional[str] = None
    is_required: bool
    options: Optional[List[Any]] = None

    class Config:
        from_attributes = True


class BrandCreate(BaseModel):
    vehicle_type_id: int
    brand_name: str = Field(min_length=1)
    brand_image: Optional[str] = None


class BrandUpdate(BaseModel):
    brand_name: Optional[str] = None
    brand_image: Optional[str] = None


class BrandOut(BaseModel):
    id: int
    vehicle_type_id: int
    brand_name: str
    brand_image: Optional[str] = None

    class Config:
        from_attributes = True


class ModelCreate(BaseModel):
    brand_id: int
    model_name: str = Field(min_length=1)


class ModelOut(BaseModel):
    id: int
    brand_id: int
    vehicle_type_id: int
    model_name: str

    class Config:
        from_attributes = True


class ConditionCreate(BaseModel):
    vehicle_type_id: int
    condition_name: str = Field(min_length=1)


class ConditionOut(BaseModel):
    id: int
    vehicle_type_id: int
    condition_name: str

    class Config:
        from_attributes = True
