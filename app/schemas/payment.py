from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class GenerateHashRequest(BaseModel):
    order_id: str = Field(min_length=1)
    amount: float = Field(gt=0)
    currency: str = Field(min_length=3, max_length=3)
    merchant_id: Optional[str] = None


class HashResponse(BaseModel):
    hash: str
    merchant_id: str
    order_id: str
    amount: str
    currency: str


class InitiatePaymentRequest(BaseModel):
    order_id: Optional[str] = None
    amount: float = Field(gt=0)
    currency: Optional[str] = None
    items: Optional[str] = None
    package_id: Optional[int] = None
    ad_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    return_url: Optional[str] = None
    cancel_url: Optional[str] = None


class InitiatePaymentResponse(BaseModel):
    payment_id: int
    action_url: str
    fields: Dict[str, Any]


class PaymentOut(BaseModel):
    id: int
    order_id: str
    amount: float
    currency: str
    status: str
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    package_id: Optional[int] = None
    package_name: Optional[str] = None
    ad_id: Optional[int] = None
    created_at: datetime


class ActivateFreeAdRequest(BaseModel):
    ad_id: int
    package_id: int
