from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


AnnouncementStatus = Literal["ACTIVE", "INACTIVE"]


class AnnouncementCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: Optional[str] = None
    image_url: Optional[str] = None
    link: Optional[str] = None
    status: AnnouncementStatus = "ACTIVE"


class AnnouncementUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = None
    image_url: Optional[str] = None
    link: Optional[str] = None
    status: Optional[AnnouncementStatus] = None


class AnnouncementOut(BaseModel):
    id: int
    title: str
    content: Optional[str] = None
    image_url: Optional[str] = None
    link: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
