import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.user import User
from app.schemas.auth import MessageResponse
from app.schemas.user import UserOut, UserUpdate
from app.security.deps import get_current_user


logger = logging.getLogger(__name__)

router = APIRouter()


def _ensure_self(user_id: int, user: User) -> None:
    if user.id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only manage your own account")


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> User:
    _ensure_self(user_id, user)
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    if changes.get("email"):
        changes["email"] = changes["email"].lower()
        taken = db.query(User).filter(User.email == changes["email"], User.id != user.id).first()
        if taken:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already in use")

    for field, value in changes.items():
        setattr(user, field, value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(user_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> MessageResponse:
    _ensure_self(user_id, user)
    db.query(User).filter(User.id == user.id).delete(synchronize_session=False)
    db.commit()
    logger.info("User %s deleted their account", user_id)
    return MessageResponse(message="Account deleted")
