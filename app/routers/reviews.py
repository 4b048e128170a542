from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.ad import CarAd
from app.models.feedback import Review
from app.models.user import User
from app.schemas.feedback import ReviewCreate, ReviewOut, ReviewStats
from app.security.deps import get_current_user


router = APIRouter()


def _out(review: Review) -> ReviewOut:
    return ReviewOut(
        id=review.id,
        ad_id=review.ad_id,
        user_id=review.user_id,
        user_name=review.user.name if review.user else None,
        rating=review.rating,
        comment=review.comment,
        created_at=review.created_at,
    )


@router.post("", response_model=ReviewOut, status_code=status.HTTP_201_CREATED)
def add_review(payload: ReviewCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> ReviewOut:
    ad = db.get(CarAd, payload.ad_id)
    if not ad:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ad not found")
    if ad.seller_id == user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot review your own ad")
    existing = db.query(Review).filter(Review.ad_id == ad.id, Review.user_id == user.id).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You have already reviewed this ad")

    review = Review(ad_id=ad.id, user_id=user.id, rating=payload.rating, comment=payload.comment)
    db.add(review)
    db.commit()
    db.refresh(review)
    return _out(review)


@router.get("/ad/{ad_id}", response_model=List[ReviewOut])
def list_reviews(ad_id: int, db: Session = Depends(get_db)) -> List[ReviewOut]:
    rows = db.query(Review).filter(Review.ad_id == ad_id).order_by(Review.created_at.desc()).all()
    return [_out(r) for r in rows]


@router.get("/ad/{ad_id}/stats", response_model=ReviewStats)
def review_stats(ad_id: int, db: Session = Depends(get_db)) -> ReviewStats:
    counts = dict(
        db.query(Review.rating, func.count(Review.id)).filter(Review.ad_id == ad_id).group_by(Review.rating).all()
    )
    by_star = {star: counts.get(star, 0) for star in range(1, 6)}
    total = sum(by_star.values())
    average = round(sum(star * n for star, n in by_star.items()) / total, 2) if total else 0.0
    return ReviewStats(ad_id=ad_id, average=average, count=total, by_star=by_star)
