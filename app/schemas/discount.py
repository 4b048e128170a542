from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class DiscountCreate(BaseModel):
    name: str = Field(min_length=1)
    discount_type: Literal["PERCENTAGE", "FIXED"]
    value: float = Field(gt=0)
    is_first_time_user: bool = False
    min_bulk_ads: int = Field(default=0, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Literal["ACTIVE", "INACTIVE"] = "ACTIVE"
    offer_image: Optional[str] = None
    vehicle_type_ids: List[int] = []
    package_ids: List[int] = []


class DiscountUpdate(BaseModel):
    name: Optional[str] = None
    discount_type: Optional[Literal["PERCENTAGE", "FIXED"]] = None
    value: Optional[float] = Field(default=None, gt=0)
    is_first_time_user: Optional[bool] = None
    min_bulk_ads: Optional[int] = Field(default=None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[Literal["ACTIVE", "INACTIVE"]] = None
    offer_image: Optional[str] = None
    vehicle_type_ids: Optional[List[int]] = None
    package_ids: Optional[List[int]] = None


class DiscountOut(BaseModel):
    id: int
    name: str
    discount_type: str
    value: float
    is_first_time_user: bool
    min_bulk_ads: int
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: str
    offer_image: Optional[str] = None
    vehicle_type_ids: List[int] = []
    package_ids: List[int] = []


class QuoteRequest(BaseModel):
    amount: float = Field(ge=0)
    vehicle_type_id: Optional[int] = None
    package_id: Optional[int] = None
    ad_count: int = Field(default=1, ge=1)


class QuoteOut(BaseModel):
    original_amount: float
    discount_id: Optional[int] = None
    discount_name: Optional[str] = None
    discount_amount: float
    final_amount: float
