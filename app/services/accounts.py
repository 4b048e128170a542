import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.models.user import User


logger = logging.getLogger(__name__)


def _display_name(profile: Dict[str, Any]) -> Optional[str]:
    parts = [profile.get("first_name"), profile.get("last_name")]
    name = " ".join(p for p in parts if p).strip()
    return name or None


def _find_match(db: Session, profile: Dict[str, Any]) -> Optional[User]:
    user = db.query(User).filter(User.clerk_user_id == profile["clerk_user_id"]).first()
    if user:
        return user
    email = (profile.get("email") or "").lower() or None
    if email:
        user = db.query(User).filter(User.email == email).first()
        if user:
            return user
    if profile.get("phone"):
        return db.query(User).filter(User.phone == profile["phone"]).first()
    return None


def _email_taken(db: Session, email: str, user_id: int) -> bool:
    return db.query(User.id).filter(User.email == email, User.id != user_id).first() is not None


def sync_social_user(db: Session, profile: Dict[str, Any]) -> User:
    """Link a verified social profile to a local user, creating one if needed.

    Incoming values win when they are not null, except an email already
    owned by another user. Everything else on an existing account, the
    password hash included, is left alone.
    """
    incoming = {
        "name": _display_name(profile),
        "email": (profile.get("email") or "").lower() or None,
        "phone": profile.get("phone"),
        "avatar": profile.get("image_url"),
    }

    user = _find_match(db, profile)
    if user:
        if incoming["email"] and _email_taken(db, incoming["email"], user.id):
            logger.warning("Keeping stored email for user %s: incoming email belongs to another account", user.id)
            incoming["email"] = None
        user.clerk_user_id = profile["clerk_user_id"]
        user.auth_provider = profile.get("auth_provider") or "clerk"
        for field, value in incoming.items():
            if value is not None:
                setattr(user, field, value)
        logger.info("Merged social login into existing user %s", user.id)
    else:
        user = User(
            clerk_user_id=profile["clerk_user_id"],
            auth_provider=profile.get("auth_provider") or "clerk",
            **incoming,
        )
        db.add(user)
        db.flush()
        logger.info("Created user %s from social login", user.id)

    user.last_login = utcnow()
    db.add(user)
    return user
