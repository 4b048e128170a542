import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.settings import settings
from app.models.billing import UserSubscription
from app.models.notification import NotificationLog
from app.models.user import User
from app.services import mailer


logger = logging.getLogger(__name__)


def log_notification(
    db: Session,
    user: User,
    notification_type: str,
    subject: str,
    result: mailer.MailResult,
    subscription_id: Optional[int] = None,
) -> NotificationLog:
    entry = NotificationLog(
        user_id=user.id,
        subscription_id=subscription_id,
        notification_type=notification_type,
        recipient_email=user.email,
        subject=subject,
        status="SENT" if result.success else "FAILED",
        error_message=result.error,
    )
    db.add(entry)
    return entry


def _deliver(
    db: Session, user: User, notification_type: str, subject: str, body: str, subscription_id: Optional[int] = None
) -> bool:
    result = mailer.send_email(user.email, subject, body)
    log_notification(db, user, notification_type, subject, result, subscription_id)
    return result.success


def sent_today(db: Session, user_id: int, notification_type: str, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return (
        db.query(NotificationLog.id)
        .filter(
            NotificationLog.user_id == user_id,
            NotificationLog.notification_type == notification_type,
            NotificationLog.status == "SENT",
            NotificationLog.sent_at >= day_start,
        )
        .first()
        is not None
    )


def sent_for_subscription_within(
    db: Session, subscription_id: int, notification_type: str, days: int, now: Optional[datetime] = None
) -> bool:
    now = now or utcnow()
    return (
        db.query(NotificationLog.id)
        .filter(
            NotificationLog.subscription_id == subscription_id,
            NotificationLog.notification_type == notification_type,
            NotificationLog.status == "SENT",
            NotificationLog.sent_at >= now - timedelta(days=days),
        )
        .first()
        is not None
    )


def _greeting(user: User) -> str:
    return f"Hi {user.name or 'there'},"


def _date(value: datetime) -> str:
    return value.strftime("%Y-%m-%d")


def send_purchase_confirmation(db: Session, user: User, subscription: UserSubscription) -> bool:
    package_name = subscription.package.name if subscription.package else "your package"
    subject = f"Your {package_name} package is active"
    body = "\n".join(
        [
            _greeting(user),
            "",
            f"Thank you for purchasing the {package_name} package.",
            f"It is valid from {_date(subscription.start_date)} until {_date(subscription.end_date)}.",
            "",
            f"- {settings.app_name}",
        ]
    )
    return _deliver(db, user, "PURCHASE", subject, body, subscription.id)


def send_expiry_warning(db: Session, user: User, subscription: UserSubscription, days_left: int) -> bool:
    package_name = subscription.package.name if subscription.package else "your package"
    subject = f"Your {package_name} package expires in {days_left} days"
    body = "\n".join(
        [
            _greeting(user),
            "",
            f"Your {package_name} package expires on {_date(subscription.end_date)}.",
            "Renew it to keep posting ads without interruption.",
            "",
            f"- {settings.app_name}",
        ]
    )
    return _deliver(db, user, "EXPIRY_WARNING", subject, body, subscription.id)


def send_ad_limit_warning(db: Session, user: User, subscription: UserSubscription, limits) -> bool:
    package_name = subscription.package.name if subscription.package else "your package"
    subject = f"You are close to the ad limit of your {package_name} package"
    lines = [_greeting(user), "", "You have used most of the ads included in your package:"]
    for limit in limits:
        lines.append(f"  {limit['vehicle_type_name']}: {limit['used']} of {limit['quantity']} used")
    lines += ["", "Upgrade your package to keep posting.", "", f"- {settings.app_name}"]
    return _deliver(db, user, "AD_LIMIT_WARNING", subject, "\n".join(lines), subscription.id)


def send_password_reset_code(user: User, code: str) -> mailer.MailResult:
    minutes = max(1, settings.otp_ttl_seconds // 60)
    body = "\n".join(
        [
            _greeting(user),
            "",
            f"Your password reset code is {code}.",
            f"It expires in {minutes} minutes. If you did not ask for it, ignore this email.",
            "",
            f"- {settings.app_name}",
        ]
    )
    return mailer.send_email(user.email, "Your password reset code", body)
