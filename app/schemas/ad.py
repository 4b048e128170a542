from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class CarDetailsIn(BaseModel):
    condition: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(default=None, ge=1900, le=2100)
    mileage: Optional[float] = Field(default=None, ge=0)
    engine_capacity: Optional[float] = Field(default=None, ge=0)
    fuel_type: Optional[str] = None
    transmission: Optional[str] = None
    body_type: Optional[str] = None


class CarDetailsOut(CarDetailsIn):
    class Config:
        from_attributes = True


class AttributeValueIn(BaseModel):
    attribute_id: int
    value: Optional[str] = None


class AttributeValueOut(BaseModel):
    attribute_id: int
    attribute_name: Optional[str] = None
    unit: Optional[str] = None
    value: Optional[str] = None


class AdImageOut(BaseModel):
    id: int
    image_url: str
    is_primary: bool

    class Config:
        from_attributes = True


class AdCreate(BaseModel):
    vehicle_type_id: int
    title: str = Field(min_length=3, max_length=200)
    price: Optional[float] = Field(default=None, ge=0)
    location: Optional[str] = None
    description: Optional[str] = None
    details: Optional[CarDetailsIn] = None
    attributes: List[AttributeValueIn] = []
    images: List[str] = []


class AdUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=3, max_length=200)
    price: Optional[float] = Field(default=None, ge=0)
    location: Optional[str] = None
    description: Optional[str] = None
    # Owners cannot publish directly; activation goes through a package or payment
    status: Optional[Literal["DRAFT", "PENDING", "SOLD"]] = None


class AdOut(BaseModel):
    id: int
    seller_id: int
    vehicle_type_id: Optional[int] = None
    title: str
    price: Optional[float] = None
    location: Optional[str] = None
    description: Optional[str] = None
    status: str
    is_featured: bool
    is_homepage_banner: bool
    is_popup_promotion: bool
    is_urgent: bool
    views_count: int
    expiry_date: Optional[datetime] = None
    is_banned: bool
    ban_expires_at: Optional[datetime] = None
    ban_reason: Optional[str] = None
    created_at: datetime
    details: Optional[CarDetailsOut] = None
    images: List[AdImageOut] = []

    class Config:
        from_attributes = True


class SellerContact(BaseModel):
    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None

    class Config:
        from_attributes = True


class AdDetailOut(AdOut):
    vehicle_type_name: Optional[str] = None
    attribute_values: List[AttributeValueOut] = []
    seller: Optional[SellerContact] = None


class AdPage(BaseModel):
    items: List[AdOut]
    total: int
    page: int
    limit: int
