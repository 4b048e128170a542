from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.admin import Admin
from app.models.announcement import Announcement
from app.schemas.announcement import AnnouncementCreate, AnnouncementOut, AnnouncementUpdate
from app.schemas.auth import MessageResponse
from app.security.deps import require_admin


router = APIRouter()


def _get_announcement(db: Session, announcement_id: int) -> Announcement:
    announcement = db.get(Announcement, announcement_id)
    if not announcement:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    return announcement


@router.get("/active", response_model=List[AnnouncementOut])
def active_announcements(db: Session = Depends(get_db)) -> List[Announcement]:
    return (
        db.query(Announcement)
        .filter(Announcement.status == "ACTIVE")
        .order_by(Announcement.created_at.desc(), Announcement.id.desc())
        .all()
    )


@router.get("/{announcement_id}", response_model=AnnouncementOut)
def get_announcement(announcement_id: int, db: Session = Depends(get_db)) -> Announcement:
    return _get_announcement(db, announcement_id)


@router.get("", response_model=List[AnnouncementOut])
def list_announcements(_: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> List[Announcement]:
    return db.query(Announcement).order_by(Announcement.created_at.desc(), Announcement.id.desc()).all()


@router.post("", response_model=AnnouncementOut, status_code=status.HTTP_201_CREATED)
def create_announcement(
    payload: AnnouncementCreate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> Announcement:
    announcement = Announcement(**payload.model_dump())
    db.add(announcement)
    db.commit()
    db.refresh(announcement)
    return announcement


@router.put("/{announcement_id}", response_model=AnnouncementOut)
def update_announcement(
    announcement_id: int,
    payload: AnnouncementUpdate,
    _: Admin = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Announcement:
    announcement = _get_announcement(db, announcement_id)
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    for field, value in changes.items():
        setattr(announcement, field, value)
    db.commit()
    db.refresh(announcement)
    return announcement


@router.delete("/{announcement_id}", response_model=MessageResponse)
def delete_announcement(
    announcement_id: int, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> MessageResponse:
    db.delete(_get_announcement(db, announcement_id))
    db.commit()
    return MessageResponse(message="Announcement deleted")
