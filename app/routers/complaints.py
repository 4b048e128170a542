from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.admin import Admin
from app.models.feedback import Complaint
from app.models.user import User
from app.schemas.feedback import ComplaintCreate, ComplaintOut, StatusUpdate
from app.security.deps import get_current_user, require_admin


router = APIRouter()


@router.post("", response_model=ComplaintOut, status_code=status.HTTP_201_CREATED)
def create_complaint(
    payload: ComplaintCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> Complaint:
    complaint = Complaint(user_id=user.id, **payload.model_dump())
    db.add(complaint)
    db.commit()
    db.refresh(complaint)
    return complaint


@router.get("/mine", response_model=List[ComplaintOut])
def my_complaints(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> List[Complaint]:
    return db.query(Complaint).filter(Complaint.user_id == user.id).order_by(Complaint.created_at.desc()).all()


@router.get("", response_model=List[ComplaintOut])
def list_complaints(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    _: Admin = Depends(require_admin),
    db: Session = Depends(get_db),
) -> List[Complaint]:
    query = db.query(Complaint)
    if status_filter:
        query = query.filter(Complaint.status == status_filter)
    return query.order_by(Complaint.created_at.desc()).all()


@router.put("/{complaint_id}/status", response_model=ComplaintOut)
def update_complaint_status(
    complaint_id: int, payload: StatusUpdate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> Complaint:
    complaint = db.get(Complaint, complaint_id)
    if not complaint:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Complaint not found")
    complaint.status = payload.status
    if payload.admin_response is not None:
        complaint.admin_response = payload.admin_response
    db.commit()
    db.refresh(complaint)
    return complaint
