from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from app.schemas.user import UserOut


AdminRole = Literal["SUPER_ADMIN", "ADMIN", "MODERATOR"]


class AdminSignupRequest(BaseModel):
    name: Optional[str] = None
    email: EmailStr
    password: str = Field(min_length=6)
    role: Optional[AdminRole] = None


class AdminLoginRequest(BaseModel):
    email: EmailStr
    password: str


class AdminOut(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    role: AdminRole
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AdminTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    admin: AdminOut


class BanRequest(BaseModel):
    duration_days: int = Field(ge=1)
    reason: Optional[str] = None


class BlockRequest(BaseModel):
    reason: Optional[str] = None


class AdStatusUpdate(BaseModel):
    status: Optional[Literal["DRAFT", "PENDING", "ACTIVE", "SOLD", "EXPIRED", "REJECTED"]] = None
    is_featured: Optional[bool] = None
    expiry_date: Optional[datetime] = None


class StatsOut(BaseModel):
    total_ads: int
    active_ads: int
    expired_ads: int
    featured_ads: int
    vehicle_types: int
    brands: int
    users: int


class UserWithStats(UserOut):
    ban_expires_at: Optional[datetime] = None
    ban_reason: Optional[str] = None
    total_ads: int = 0
    posted_ads: int = 0
    drafted_ads: int = 0


class NotificationLogOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    subscription_id: Optional[int] = None
    notification_type: str
    recipient_email: Optional[str] = None
    subject: Optional[str] = None
    status: str
    error_message: Optional[str] = None
    sent_at: datetime

    class Config:
        from_attributes = True


class JobRunOut(BaseModel):
    job: str
    success: bool
    count: Optional[int] = None
