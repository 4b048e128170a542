from sqlalchemy import Column, Integer, String, DateTime, func

from app.db.session import Base


class Admin(Base):
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    # SUPER_ADMIN | ADMIN | MODERATOR
    role = Column(String(20), nullable=False, default="MODERATOR", server_default="MODERATOR")
    # ACTIVE | DISABLED
    status = Column(String(20), nullable=False, default="ACTIVE", server_default="ACTIVE")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
