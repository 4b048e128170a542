from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey, func

from app.core.clock import utcnow
from app.db.session import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=True)
    # Social-only accounts may come without an email
    email = Column(String(255), unique=True, index=True, nullable=True)
    phone = Column(String(32), nullable=True, index=True)
    hashed_password = Column(String(255), nullable=True)
    # password | clerk | google | apple | facebook
    auth_provider = Column(String(20), nullable=False, server_default="password")
    clerk_user_id = Column(String(100), unique=True, nullable=True, index=True)
    role = Column(String(20), nullable=False, server_default="user")
    is_premium = Column(Boolean, nullable=False, default=False, server_default="0")
    avatar = Column(String(500), nullable=True)

    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    bio = Column(Text, nullable=True)
    profile_image = Column(String(500), nullable=True)

    # ACTIVE | BANNED | BLOCKED
    status = Column(String(20), nullable=False, default="ACTIVE", server_default="ACTIVE", index=True)
    ban_expires_at = Column(DateTime(timezone=True), nullable=True)
    ban_reason = Column(String(255), nullable=True)

    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # sha256 hex digest, the raw token is never stored
    token_hash = Column(String(64), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked = Column(Boolean, nullable=False, default=False, server_default="0")
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
