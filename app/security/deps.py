import logging
from typing import Any, Callable, Dict, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.clock import utcnow, to_aware_utc
from app.core.errors import api_error
from app.db.session import get_db
from app.models.admin import Admin
from app.models.user import User
from app.security.jwt_tokens import decode_access_token


logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

ADMIN_ROLES = ("SUPER_ADMIN", "ADMIN", "MODERATOR")


def _decode_bearer(credentials: Optional[HTTPAuthorizationCredentials]) -> Dict[str, Any]:
    if not credentials or not credentials.scheme.lower() == "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        payload = decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise api_error(
            status.HTTP_401_UNAUTHORIZED, "Access token expired. Please refresh your token.", "TOKEN_EXPIRED"
        )
    except jwt.PyJWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    if payload.get("type") != "access" or "sub" not in payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return payload


def ensure_user_may_act(user: User, db: Session) -> None:
    """Reject blocked and currently banned users; lift bans that have run out."""
    if user.status == "BLOCKED":
        raise api_error(
            status.HTTP_403_FORBIDDEN,
            "Your account has been permanently blocked by an administrator.",
            "USER_BLOCKED",
        )
    if user.status == "BANNED":
        expires_at = to_aware_utc(user.ban_expires_at)
        if expires_at is not None and expires_at > utcnow():
            raise api_error(
                status.HTTP_403_FORBIDDEN,
                f"Your account is temporarily banned until {expires_at.isoformat()}.",
                "USER_BANNED",
                ban_expires_at=expires_at.isoformat(),
                ban_reason=user.ban_reason,
            )
        logger.info("Ban on user %s has expired, restoring access", user.id)
        user.status = "ACTIVE"
        user.ban_expires_at = None
        user.ban_reason = None
        db.add(user)
        db.commit()
        db.refresh(user)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    payload = _decode_bearer(credentials)
    if payload.get("is_admin"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    user_id = int(payload["sub"])  # trust only after verification above
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    ensure_user_may_act(user, db)
    return user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    if not credentials:
        return None
    try:
        return get_current_user(credentials, db)
    except HTTPException:
        return None


def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Admin:
    payload = _decode_bearer(credentials)
    if not payload.get("is_admin"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin required")
    admin = db.query(Admin).filter(Admin.id == int(payload["sub"])).first()
    if not admin:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin not found")
    if admin.status != "ACTIVE":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin account is disabled")
    return admin


def require_admin_role(*roles: str) -> Callable[..., Admin]:
    allowed = roles or ADMIN_ROLES

    def _dependency(admin: Admin = Depends(get_current_admin)) -> Admin:
        if admin.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {' or '.join(allowed)}",
            )
        return admin

    return _dependency


require_admin = require_admin_role(*ADMIN_ROLES)
require_super_admin = require_admin_role("SUPER_ADMIN")
