from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.ad import CarAd
from app.models.feedback import Favorite
from app.models.user import User
from app.schemas.ad import AdOut
from app.schemas.feedback import FavoriteState, FavoriteToggle
from app.security.deps import get_current_user, get_optional_user


router = APIRouter()


@router.get("", response_model=List[AdOut])
def list_favorites(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> List[CarAd]:
    rows = db.query(Favorite).filter(Favorite.user_id == user.id).order_by(Favorite.created_at.desc()).all()
    return [row.ad for row in rows if row.ad]


@router.post("/toggle", response_model=FavoriteState)
def toggle_favorite(
    payload: FavoriteToggle, user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> FavoriteState:
    if not db.get(CarAd, payload.ad_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ad not found")
    existing = db.query(Favorite).filter(Favorite.user_id == user.id, Favorite.ad_id == payload.ad_id).first()
    if existing:
        db.delete(existing)
        db.commit()
        return FavoriteState(is_favorite=False)
    db.add(Favorite(user_id=user.id, ad_id=payload.ad_id))
    db.commit()
    return FavoriteState(is_favorite=True)


@router.get("/check/{ad_id}", response_model=FavoriteState)
def check_favorite(
    ad_id: int, user: Optional[User] = Depends(get_optional_user), db: Session = Depends(get_db)
) -> FavoriteState:
    if not user:
        return FavoriteState(is_favorite=False)
    found = db.query(Favorite.id).filter(Favorite.user_id == user.id, Favorite.ad_id == ad_id).first()
    return FavoriteState(is_favorite=found is not None)
