from datetime import datetime
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field


FeedbackStatus = Literal["PENDING", "REVIEWED", "RESOLVED"]


class ReviewCreate(BaseModel):
    ad_id: int
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None


class ReviewOut(BaseModel):
    id: int
    ad_id: int
    user_id: int
    user_name: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    created_at: datetime


class ReviewStats(BaseModel):
    ad_id: int
    average: float
    count: int
    by_star: Dict[int, int]


class ReportCreate(BaseModel):
    ad_id: int
    reason: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None


class ReportOut(BaseModel):
    id: int
    ad_id: int
    reporter_id: int
    reason: str
    description: Optional[str] = None
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class ComplaintCreate(BaseModel):
    subject: str = Field(min_length=1, max_length=200)
    category: Optional[str] = None
    description: str = Field(min_length=1)


class ComplaintOut(BaseModel):
    id: int
    user_id: int
    subject: str
    category: Optional[str] = None
    description: str
    status: str
    admin_response: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class StatusUpdate(BaseModel):
    status: FeedbackStatus
    admin_response: Optional[str] = None


class FavoriteToggle(BaseModel):
    ad_id: int


class FavoriteState(BaseModel):
    is_favorite: bool


class AppReviewCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None


class AppReviewReply(BaseModel):
    reply: str = Field(min_length=1)


class AppReviewOut(BaseModel):
    id: int
    user_id: int
    user_name: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    reply: Optional[str] = None
    reply_at: Optional[datetime] = None
    created_at: datetime


class AppReviewStats(BaseModel):
    average: float
    count: int
    by_star: Dict[int, int]
