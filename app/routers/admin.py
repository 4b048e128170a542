import logging
from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.db.session import get_db
from app.models.ad import CarAd
from app.models.admin import Admin
from app.models.notification import NotificationLog
from app.models.user import User
from app.models.vehicle import VehicleBrand, VehicleType
from app.schemas.admin import (
    AdminLoginRequest,
    AdminOut,
    AdminSignupRequest,
    AdminTokenResponse,
    BanRequest,
    BlockRequest,
    JobRunOut,
    NotificationLogOut,
    StatsOut,
    UserWithStats,
)
from app.security.deps import bearer_scheme, get_current_admin, require_admin, require_super_admin
from app.security.jwt_tokens import create_admin_token
from app.security.passwords import hash_password, verify_password
from app.services.scheduler import get_scheduler


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/signup", response_model=AdminOut, status_code=status.HTTP_201_CREATED)
def admin_signup(
    payload: AdminSignupRequest,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Admin:
    email = payload.email.lower()
    if db.query(Admin.id).first() is None:
        role = "SUPER_ADMIN"
    else:
        creator = get_current_admin(credentials, db)
        if creator.role != "SUPER_ADMIN":
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only a super admin can create admins")
        role = payload.role or "MODERATOR"

    if db.query(Admin).filter(Admin.email == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Admin email already registered")

    admin = Admin(name=payload.name, email=email, hashed_password=hash_password(payload.password), role=role)
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("Admin %s created with role %s", admin.id, admin.role)
    return admin


@router.post("/login", response_model=AdminTokenResponse)
def admin_login(payload: AdminLoginRequest, db: Session = Depends(get_db)) -> AdminTokenResponse:
    admin: Optional[Admin] = db.query(Admin).filter(Admin.email == payload.email.lower()).first()
    if not admin or not verify_password(payload.password, admin.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if admin.status != "ACTIVE":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin account is disabled")
    token = create_admin_token(subject=str(admin.id), role=admin.role)
    logger.info("Admin %s logged in", admin.id)
    return AdminTokenResponse(access_token=token, admin=AdminOut.model_validate(admin))


@router.get("/stats", response_model=StatsOut)
def stats(_: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> StatsOut:
    return StatsOut(
        total_ads=db.query(func.count(CarAd.id)).scalar(),
        active_ads=db.query(func.count(CarAd.id)).filter(CarAd.status == "ACTIVE").scalar(),
        expired_ads=db.query(func.count(CarAd.id)).filter(CarAd.status == "EXPIRED").scalar(),
        featured_ads=db.query(func.count(CarAd.id)).filter(CarAd.is_featured.is_(True)).scalar(),
        vehicle_types=db.query(func.count(VehicleType.id)).scalar(),
        brands=db.query(func.count(VehicleBrand.id)).scalar(),
        users=db.query(func.count(User.id)).scalar(),
    )


@router.get("/users", response_model=List[UserWithStats])
def users_with_stats(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    _: Admin = Depends(require_admin),
    db: Session = Depends(get_db),
) -> List[UserWithStats]:
    ad_stats = (
        db.query(
            CarAd.seller_id.label("seller_id"),
            func.count(CarAd.id).label("total"),
            func.sum(case((CarAd.status == "DRAFT", 0), else_=1)).label("posted"),
            func.sum(case((CarAd.status == "DRAFT", 1), else_=0)).label("drafted"),
        )
        .group_by(CarAd.seller_id)
        .subquery()
    )
    query = db.query(User, ad_stats.c.total, ad_stats.c.posted, ad_stats.c.drafted).outerjoin(
        ad_stats, ad_stats.c.seller_id == User.id
    )
    if status_filter:
        query = query.filter(User.status == status_filter)

    result = []
    for user, total, posted, drafted in query.order_by(User.id).all():
        row = UserWithStats.model_validate(user)
        row.total_ads = total or 0
        row.posted_ads = posted or 0
        row.drafted_ads = drafted or 0
        result.append(row)
    return result


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.put("/users/{user_id}/ban", response_model=UserWithStats)
def ban_user(
    user_id: int, payload: BanRequest, admin: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> User:
    user = _get_user(db, user_id)
    user.status = "BANNED"
    user.ban_expires_at = utcnow() + timedelta(days=payload.duration_days)
    user.ban_reason = payload.reason
    db.commit()
    db.refresh(user)
    logger.info("Admin %s banned user %s for %s day(s)", admin.id, user.id, payload.duration_days)
    return user


@router.put("/users/{user_id}/block", response_model=UserWithStats)
def block_user(
    user_id: int, payload: BlockRequest, admin: Admin = Depends(require_admin), db: Session = Depends(get_db)
) -> User:
    user = _get_user(db, user_id)
    user.status = "BLOCKED"
    user.ban_expires_at = None
    user.ban_reason = payload.reason
    db.commit()
    db.refresh(user)
    logger.info("Admin %s blocked user %s", admin.id, user.id)
    return user


@router.put("/users/{user_id}/unban", response_model=UserWithStats)
def unban_user(user_id: int, admin: Admin = Depends(require_admin), db: Session = Depends(get_db)) -> User:
    user = _get_user(db, user_id)
    user.status = "ACTIVE"
    user.ban_expires_at = None
    user.ban_reason = None
    db.commit()
    db.refresh(user)
    logger.info("Admin %s restored user %s", admin.id, user.id)
    return user


@router.get("/notifications", response_model=List[NotificationLogOut])
def notification_logs(
    notification_type: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=500),
    _: Admin = Depends(require_admin),
    db: Session = Depends(get_db),
) -> List[NotificationLog]:
    query = db.query(NotificationLog)
    if notification_type:
        query = query.filter(NotificationLog.notification_type == notification_type)
    return query.order_by(NotificationLog.sent_at.desc()).limit(limit).all()


@router.post("/jobs/{name}", response_model=JobRunOut)
def run_job(name: str, admin: Admin = Depends(require_super_admin)) -> JobRunOut:
    scheduler = get_scheduler()
    if name not in scheduler.jobs:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown job: {name}")
    logger.info("Admin %s triggered job %s", admin.id, name)
    count = scheduler.run_job(name)
    return JobRunOut(job=name, success=count is not None, count=count)
