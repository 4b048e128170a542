from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


ItemType = Literal["PACKAGE", "ADDON", "BOOST_PACKAGE", "BOOST_ITEM"]
RuleUnit = Literal["PER_AD", "PER_IMAGE", "PER_DAY", "PER_PACKAGE", "ONE_TIME"]


class PriceItemCreate(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1)
    description: Optional[str] = None
    item_type: ItemType
    status: Literal["ACTIVE", "INACTIVE"] = "ACTIVE"


class PriceItemUpdate(BaseModel):
    code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    name: Optional[str] = None
    description: Optional[str] = None
    item_type: Optional[ItemType] = None
    status: Optional[Literal["ACTIVE", "INACTIVE"]] = None


class PriceItemOut(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    item_type: str
    status: str

    class Config:
        from_attributes = True


class PricingRuleCreate(BaseModel):
    price_item_id: int
    vehicle_type_id: Optional[int] = None
    unit: RuleUnit = "PER_AD"
    price: float = Field(ge=0)
    min_qty: Optional[int] = Field(default=None, ge=0)
    max_qty: Optional[int] = Field(default=None, ge=0)
    extra_letter_price: float = Field(default=0, ge=0)
    description_limit: int = Field(default=500, ge=0)


class PricingRuleUpdate(BaseModel):
    vehicle_type_id: Optional[int] = None
    unit: Optional[RuleUnit] = None
    price: Optional[float] = Field(default=None, ge=0)
    min_qty: Optional[int] = Field(default=None, ge=0)
    max_qty: Optional[int] = Field(default=None, ge=0)
    extra_letter_price: Optional[float] = Field(default=None, ge=0)
    description_limit: Optional[int] = Field(default=None, ge=0)


class PricingRuleOut(BaseModel):
    id: int
    price_item_id: int
    vehicle_type_id: Optional[int] = None
    unit: str
    price: float
    min_qty: Optional[int] = None
    max_qty: Optional[int] = None
    extra_letter_price: float
    description_limit: int

    class Config:
        from_attributes = True


class FeatureUpsert(BaseModel):
    price_item_id: int
    feature_key: str = Field(min_length=1, max_length=50)
    feature_value: Optional[str] = None


class FeatureOut(BaseModel):
    id: int
    price_item_id: int
    feature_key: str
    feature_value: Optional[str] = None

    class Config:
        from_attributes = True


class IncludedItemCreate(BaseModel):
    package_id: int
    included_item_id: int
    vehicle_type_id: Optional[int] = None
    quantity: int = Field(default=1, ge=0)
    is_unlimited: bool = False


class IncludedItemOut(BaseModel):
    id: int
    package_id: int
    included_item_id: int
    vehicle_type_id: Optional[int] = None
    quantity: int
    is_unlimited: bool

    class Config:
        from_attributes = True


class AdLimitCreate(BaseModel):
    vehicle_type_id: int
    quantity: int = Field(default=0, ge=0)
    is_unlimited: bool = False


class AdLimitOut(BaseModel):
    id: int
    package_id: int
    vehicle_type_id: int
    quantity: int
    is_unlimited: bool

    class Config:
        from_attributes = True


class UnsubscribeRequest(BaseModel):
    subscription_id: Optional[int] = None


class SubscriptionOut(BaseModel):
    id: int
    user_id: int
    package_id: int
    payment_id: Optional[int] = None
    start_date: datetime
    end_date: datetime
    status: str
    package_name: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
