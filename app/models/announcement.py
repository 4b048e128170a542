from sqlalchemy import Column, Integer, String, DateTime, Text

from app.core.clock import utcnow
from app.db.session import Base


class Announcement(Base):
    __tablename__ = "announcements"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    link = Column(String(500), nullable=True)
    # ACTIVE | INACTIVE
    status = Column(String(20), nullable=False, default="ACTIVE", index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)
