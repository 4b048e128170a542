"""Reviews of the marketplace app itself, one per user, with an optional admin reply."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.db.session import get_db
from app.models.admin import Admin
from app.models.feedback import AppReview
from app.models.user import User
from app.schemas.auth import MessageResponse
from app.schemas.feedback import AppReviewCreate, AppReviewOut, AppReviewReply, AppReviewStats
from app.security.deps import get_current_user, require_admin


logger = logging.getLogger(__name__)

router = APIRouter()


def _out(review: AppReview) -> AppReviewOut:
    return AppReviewOut(
        id=review.id,
        user_id=review.user_id,
        user_name=review.user.name if review.user else None,
        rating=review.rating,
        comment=review.comment,
        reply=review.reply,
        reply_at=review.reply_at,
        created_at=review.created_at,
    )


def _get_review(db: Session, review_id: int) -> AppReview:
    review = db.get(AppReview, review_id)
    if not review:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")
    return review


@router.get("", response_model=List[AppReviewOut])
def list_app_reviews(
    rating: Optional[int] = Query(default=None, ge=1, le=5), db: Session = Depends(get_db)
) -> List[AppReviewOut]:
    query = db.query(AppReview)
    if rating is not None:
        query = query.filter(AppReview.rating == rating)
    return [_out(r) for r in query.order_by(AppReview.created_at.desc(), AppReview.id.desc()).all()]


@router.get("/stats", response_model=AppReviewStats)
def app_review_stats(db: Session = Depends(get_db)) -> AppReviewStats:
    counts = dict(db.query(AppReview.rating, func.count(AppReview.id)).group_by(AppReview.rating).all())
    by_star = {star: counts.get(star, 0) for star in range(1, 6)}
    total = sum(by_star.values())
    average = round(sum(star * n for star, n in by_star.items()) / total, 1) if total else 0.0
    return AppReviewStats(average=average, count=total, by_star=by_star)


@router.post("", response_model=AppReviewOut, status_code=status.HTTP_201_CREATED)
def add_app_review(
    payload: AppReviewCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> AppReviewOut:
    if db.query(AppReview).filter(AppReview.user_id == user.id).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You have already reviewed the app")
    review = AppReview(user_id=user.id, rating=payload.rating, comment=payload.comment)
    db.add(review)
    db.commit()
    db.refresh(review)
    return _out(review)


@router.delete("/{review_id}", response_model=MessageResponse)
def delete_own_app_review(
    review_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> MessageResponse:
    review = _get_review(db, review_id)
    if review.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to delete this review")
    db.delete(review)
    db.commit()
    return MessageResponse(message="Review deleted")


@router.post("/{review_id}/reply", response_model=AppReviewOut)
def reply_to_app_review(
    review_id: int, payload: AppReviewReply, admin: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> AppReviewOut:
    review = _get_review(db, review_id)
    review.reply = payload.reply
    review.reply_at = utcnow()
    db.commit()
    db.refresh(review)
    logger.info("Admin %s replied to app review %s", admin.id, review.id)
    return _out(review)


@router.delete("/{review_id}/admin", response_model=MessageResponse)
def admin_delete_app_review(
    review_id: int, admin: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> MessageResponse:
    review = _get_review(db, review_id)
    db.delete(review)
    db.commit()
    logger.info("Admin %s deleted app review %s", admin.id, review_id)
    return MessageResponse(message="Review deleted")
