"""Access/refresh token pairs backed by hashed refresh-token rows."""
import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

import jwt
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.clock import utcnow, to_aware_utc
from app.core.settings import settings
from app.models.user import RefreshToken, User
from app.security.jwt_tokens import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    hash_token,
)


logger = logging.getLogger(__name__)


def issue_token_pair(db: Session, user: User) -> Tuple[str, str]:
    """Mint a new pair and persist the refresh token hash. Caller commits."""
    access = create_access_token(subject=str(user.id), role=user.role)
    refresh = create_refresh_token(subject=str(user.id))
    db.add(
        RefreshToken(
            user_id=user.id,
            token_hash=hash_token(refresh),
            expires_at=utcnow() + timedelta(days=settings.refresh_token_expires_days),
        )
    )
    return access, refresh


def _invalid_refresh() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")


def rotate_refresh_token(db: Session, refresh_token: str) -> Tuple[User, str, str]:
    try:
        payload = decode_refresh_token(refresh_token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token expired")
    except jwt.PyJWTError:
        raise _invalid_refresh()

    if payload.get("type") != "refresh" or "sub" not in payload:
        raise _invalid_refresh()

    stored: Optional[RefreshToken] = (
        db.query(RefreshToken).filter(RefreshToken.token_hash == hash_token(refresh_token)).first()
    )
    if not stored or stored.revoked or str(stored.user_id) != str(payload["sub"]):
        raise _invalid_refresh()
    if to_aware_utc(stored.expires_at) <= utcnow():
        raise _invalid_refresh()

    user: Optional[User] = db.query(User).filter(User.id == stored.user_id).first()
    if not user:
        raise _invalid_refresh()

    stored.revoked = True
    stored.revoked_at = utcnow()
    db.add(stored)
    access, new_refresh = issue_token_pair(db, user)
    db.commit()
    return user, access, new_refresh


def revoke_refresh_token(db: Session, user_id: int, refresh_token: str) -> bool:
    stored: Optional[RefreshToken] = (
        db.query(RefreshToken)
        .filter(RefreshToken.token_hash == hash_token(refresh_token), RefreshToken.user_id == user_id)
        .first()
    )
    if not stored or stored.revoked:
        return False
    stored.revoked = True
    stored.revoked_at = utcnow()
    db.add(stored)
    db.commit()
    return True


def revoke_all_refresh_tokens(db: Session, user_id: int) -> int:
    count = (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
        .update({RefreshToken.revoked: True, RefreshToken.revoked_at: utcnow()}, synchronize_session=False)
    )
    db.commit()
    logger.info("Revoked %s refresh token(s) for user %s", count, user_id)
    return count


def purge_expired_refresh_tokens(db: Session, now: Optional[datetime] = None) -> int:
    now = now or utcnow()
    return (
        db.query(RefreshToken)
        .filter(RefreshToken.expires_at < now)
        .delete(synchronize_session=False)
    )
