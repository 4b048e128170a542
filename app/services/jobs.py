"""Maintenance jobs run by the scheduler. Each takes a session and ``now`` and returns a count."""
import logging
from datetime import datetime, timedelta
from typing import List

from sqlalchemy.orm import Session

from app.core.settings import settings
from app.models.ad import CarAd
from app.models.user import User
from app.services import ads, boosts, notifications, sessions, subscriptions
from app.services.entitlements import build_entitlement
from app.services.scheduler import CronJob


logger = logging.getLogger(__name__)


def expire_ads(db: Session, now: datetime) -> int:
    count = (
        db.query(CarAd)
        .filter(CarAd.status == "ACTIVE", CarAd.expiry_date.isnot(None), CarAd.expiry_date < now)
        .update({CarAd.status: "EXPIRED"}, synchronize_session=False)
    )
    expired_subs = subscriptions.expire_subscriptions(db, now)
    logger.info("Expired %s ad(s) and %s subscription(s)", count, expired_subs)
    return count


def lift_expired_bans(db: Session, now: datetime) -> int:
    users = (
        db.query(User)
        .filter(User.status == "BANNED", User.ban_expires_at.isnot(None), User.ban_expires_at <= now)
        .update(
            {User.status: "ACTIVE", User.ban_expires_at: None, User.ban_reason: None},
            synchronize_session=False,
        )
    )
    lapsed_ads = (
        db.query(CarAd)
        .filter(CarAd.is_banned.is_(True), CarAd.ban_expires_at.isnot(None), CarAd.ban_expires_at <= now)
        .all()
    )
    for ad in lapsed_ads:
        ads.lift_ad_ban(ad, now)
    logger.info("Lifted bans on %s user(s) and %s ad(s)", users, len(lapsed_ads))
    return users + len(lapsed_ads)


def expire_boosts(db: Session, now: datetime) -> int:
    return boosts.expire_boosts(db, now)


def purge_refresh_tokens(db: Session, now: datetime) -> int:
    count = sessions.purge_expired_refresh_tokens(db, now)
    logger.info("Purged %s expired refresh token(s)", count)
    return count


def send_expiry_warnings(db: Session, now: datetime) -> int:
    days = settings.expiry_warning_days
    sent = 0
    for subscription in subscriptions.subscriptions_ending_on_day(db, now + timedelta(days=days)):
        user = subscription.user
        if not user or not user.email:
            continue
        if notifications.sent_today(db, user.id, "EXPIRY_WARNING", now):
            continue
        if notifications.send_expiry_warning(db, user, subscription, days):
            sent += 1
    logger.info("Sent %s expiry warning(s)", sent)
    return sent


def send_ad_limit_warnings(db: Session, now: datetime) -> int:
    threshold = settings.ad_limit_threshold
    sent = 0
    for subscription in subscriptions.live_subscriptions(db, now):
        user = subscription.user
        if not user or not user.email:
            continue
        entitlement = build_entitlement(db, subscription)
        near_limit = [
            lim
            for lim in entitlement["ad_limits"]
            if not lim["is_unlimited"] and lim["quantity"] > 0 and lim["used"] * 100 >= lim["quantity"] * threshold
        ]
        if not near_limit:
            continue
        if notifications.sent_for_subscription_within(db, subscription.id, "AD_LIMIT_WARNING", 7, now):
            continue
        if notifications.send_ad_limit_warning(db, user, subscription, near_limit):
            sent += 1
    logger.info("Sent %s ad limit warning(s)", sent)
    return sent


def default_jobs() -> List[CronJob]:
    return [
        CronJob("expire_ads", settings.ad_expiry_cron, expire_ads),
        CronJob("lift_expired_bans", settings.ban_expiry_cron, lift_expired_bans),
        CronJob("expire_boosts", settings.boost_expiry_cron, expire_boosts),
        CronJob("purge_refresh_tokens", settings.token_cleanup_cron, purge_refresh_tokens),
        CronJob("send_expiry_warnings", settings.expiry_warning_cron, send_expiry_warnings),
        CronJob("send_ad_limit_warnings", settings.ad_limit_warning_cron, send_ad_limit_warnings),
    ]
