import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.settings import settings
from app.models.billing import UserSubscription
from app.models.pricing import PackageFeature


logger = logging.getLogger(__name__)


def package_duration_days(db: Session, package_id: int) -> int:
    feature = (
        db.query(PackageFeature)
        .filter(PackageFeature.price_item_id == package_id, PackageFeature.feature_key == "DURATION_DAYS")
        .first()
    )
    if feature and feature.feature_value:
        try:
            days = int(feature.feature_value)
            if days > 0:
                return days
        except ValueError:
            logger.warning("Package %s has invalid DURATION_DAYS %r", package_id, feature.feature_value)
    return settings.package_default_duration_days


def create_subscription(
    db: Session,
    user_id: int,
    package_id: int,
    payment_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> UserSubscription:
    """Start a subscription now for the package's duration. Caller commits."""
    start = now or utcnow()
    subscription = UserSubscription(
        user_id=user_id,
        package_id=package_id,
        payment_id=payment_id,
        start_date=start,
        end_date=start + timedelta(days=package_duration_days(db, package_id)),
        status="ACTIVE",
    )
    db.add(subscription)
    db.flush()
    logger.info("Subscription %s created for user %s on package %s", subscription.id, user_id, package_id)
    return subscription


def cancel_subscriptions(db: Session, user_id: int, subscription_id: Optional[int] = None) -> int:
    query = db.query(UserSubscription).filter(
        UserSubscription.user_id == user_id, UserSubscription.status == "ACTIVE"
    )
    if subscription_id is not None:
        query = query.filter(UserSubscription.id == subscription_id)
    count = query.update({UserSubscription.status: "CANCELLED"}, synchronize_session=False)
    db.commit()
    logger.info("Cancelled %s subscription(s) for user %s", count, user_id)
    return count


def live_subscriptions(db: Session, now: Optional[datetime] = None) -> List[UserSubscription]:
    now = now or utcnow()
    return (
        db.query(UserSubscription)
        .filter(
            UserSubscription.status == "ACTIVE",
            UserSubscription.start_date <= now,
            UserSubscription.end_date >= now,
        )
        .all()
    )


def subscriptions_ending_on_day(db: Session, day: datetime) -> List[UserSubscription]:
    """ACTIVE subscriptions whose end date falls on the calendar day of ``day`` (UTC)."""
    start = day.replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1)
    return (
        db.query(UserSubscription)
        .filter(
            UserSubscription.status == "ACTIVE",
            UserSubscription.end_date >= start,
            UserSubscription.end_date < end,
        )
        .all()
    )


def expire_subscriptions(db: Session, now: Optional[datetime] = None) -> int:
    now = now or utcnow()
    return (
        db.query(UserSubscription)
        .filter(UserSubscription.status == "ACTIVE", UserSubscription.end_date < now)
        .update({UserSubscription.status: "EXPIRED"}, synchronize_session=False)
    )
