from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class BoostApplyRequest(BaseModel):
    ad_id: int
    package_id: int
    amount: Optional[float] = Field(default=None, ge=0)


class AdBoostOut(BaseModel):
    id: int
    ad_id: int
    package_id: int
    payment_id: Optional[int] = None
    start_date: datetime
    end_date: datetime
    status: str

    class Config:
        from_attributes = True
