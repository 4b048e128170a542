import datetime as dt
import hashlib
import uuid
from typing import Any, Dict, Optional

import jwt

from app.core.clock import utcnow
from app.core.settings import settings


def create_access_token(subject: str, role: Optional[str] = None) -> str:
    now = utcnow()
    expires = now + dt.timedelta(minutes=settings.access_token_expires_minutes)
    payload: Dict[str, Any] = {
        "sub": subject,
        "type": "access",
        "exp": expires,
        "iat": now,
    }
    if role is not None:
        payload["role"] = role
    return jwt.encode(payload, settings.access_token_secret, algorithm=settings.jwt_algorithm)


def create_admin_token(subject: str, role: str) -> str:
    now = utcnow()
    expires = now + dt.timedelta(hours=settings.admin_token_expires_hours)
    payload: Dict[str, Any] = {
        "sub": subject,
        "type": "access",
        "role": role,
        "is_admin": True,
        "exp": expires,
        "iat": now,
    }
    return jwt.encode(payload, settings.access_token_secret, algorithm=settings.jwt_algorithm)


def create_refresh_token(subject: str) -> str:
    now = utcnow()
    expires = now + dt.timedelta(days=settings.refresh_token_expires_days)
    payload: Dict[str, Any] = {
        "sub": subject,
        "type": "refresh",
        # two tokens minted in the same second must still hash differently
        "jti": uuid.uuid4().hex,
        "exp": expires,
        "iat": now,
    }
    return jwt.encode(payload, settings.refresh_token_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    return jwt.decode(token, settings.access_token_secret, algorithms=[settings.jwt_algorithm])


def decode_refresh_token(token: str) -> Dict[str, Any]:
    return jwt.decode(token, settings.refresh_token_secret, algorithms=[settings.jwt_algorithm])


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
