from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.ad import CarAd
from app.models.admin import Admin
from app.models.feedback import AdReport
from app.models.user import User
from app.schemas.feedback import ReportCreate, ReportOut, StatusUpdate
from app.security.deps import get_current_user, require_admin


router = APIRouter()


@router.post("", response_model=ReportOut, status_code=status.HTTP_201_CREATED)
def create_report(payload: ReportCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> AdReport:
    if not db.get(CarAd, payload.ad_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ad not found")
    report = AdReport(ad_id=payload.ad_id, reporter_id=user.id, reason=payload.reason, description=payload.description)
    db.add(report)
    db.commit()
    db.refresh(report)
    return report


@router.get("", response_model=List[ReportOut])
def list_reports(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    _: Admin = Depends(require_admin),
    db: Session = Depends(get_db),
) -> List[AdReport]:
    query = db.query(AdReport)
    if status_filter:
        query = query.filter(AdReport.status == status_filter)
    return query.order_by(AdReport.created_at.desc()).all()


@router.put("/{report_id}/status", response_model=ReportOut)
def update_report_status(
    report_id: int, payload: StatusUpdate, _: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> AdReport:
    report = db.get(AdReport, report_id)
    if not report:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")
    report.status = payload.status
    db.commit()
    db.refresh(report)
    return report
