"""PayHere checkout hashing, notify webhook handling and package-benefit activations."""
import hashlib
import hmac
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.settings import settings
from app.models.ad import CarAd
from app.models.billing import Payment
from app.models.pricing import PriceItem
from app.models.user import User
from app.services import notifications
from app.services.boosts import apply_boost_to_ad
from app.services.entitlements import find_active_subscription, build_entitlement, usage_order_id
from app.services.subscriptions import create_subscription


logger = logging.getLogger(__name__)

# PayHere status_code -> payment status
STATUS_CODES: Dict[str, str] = {
    "2": "SUCCESS",
    "0": "PENDING",
    "-1": "CANCELLED",
    "-2": "FAILED",
    "-3": "REFUNDED",
}


class PaymentConfigError(Exception):
    pass


def md5_upper(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest().upper()


def _merchant_secret() -> str:
    if not settings.payhere_merchant_secret:
        raise PaymentConfigError("Merchant secret not configured")
    return settings.payhere_merchant_secret


def format_amount(amount: float) -> str:
    return f"{float(amount):.2f}"


def checkout_hash(merchant_id: str, order_id: str, amount: float, currency: str) -> str:
    secret_hash = md5_upper(_merchant_secret())
    return md5_upper(f"{merchant_id}{order_id}{format_amount(amount)}{currency}{secret_hash}")


def notify_signature(merchant_id: str, order_id: str, amount: str, currency: str, status_code: str) -> str:
    # amount is hashed exactly as posted by the gateway
    secret_hash = md5_upper(_merchant_secret())
    return md5_upper(f"{merchant_id}{order_id}{amount}{currency}{status_code}{secret_hash}")


def checkout_fields(payment: Payment, user: User, extra: Dict[str, Any]) -> Dict[str, Any]:
    merchant_id = settings.payhere_merchant_id
    fields: Dict[str, Any] = {
        "merchant_id": merchant_id,
        "return_url": extra.get("return_url") or f"{settings.base_url}/payment/success",
        "cancel_url": extra.get("cancel_url") or f"{settings.base_url}/payment/cancel",
        "notify_url": settings.payhere_notify_url or f"{settings.base_url}/api/payment/notify",
        "order_id": payment.order_id,
        "items": extra.get("items") or (payment.package.name if payment.package else payment.order_id),
        "currency": payment.currency,
        "amount": format_amount(payment.amount),
        "first_name": extra.get("first_name") or (user.name or ""),
        "last_name": extra.get("last_name") or "",
        "email": extra.get("email") or (user.email or ""),
        "phone": extra.get("phone") or (user.phone or ""),
        "address": extra.get("address") or (user.address or ""),
        "city": extra.get("city") or (user.city or ""),
        "country": extra.get("country") or (user.country or "Sri Lanka"),
        "custom_1": str(user.id),
        "custom_2": str(payment.package_id or ""),
    }
    fields["hash"] = checkout_hash(merchant_id, payment.order_id, payment.amount, payment.currency)
    return fields


def _latest_payment(db: Session, order_id: str, user_id: Optional[int]) -> Optional[Payment]:
    query = db.query(Payment).filter(Payment.order_id == order_id)
    if user_id is not None:
        query = query.filter(Payment.user_id == user_id)
    return query.order_by(Payment.id.desc()).first()


def handle_notify(db: Session, form: Dict[str, str]) -> Payment:
    """Apply a verified gateway notification to its payment.

    Raises HTTPException for a bad signature (nothing is written) or an
    unknown order. Fulfilment happens only on the first move to SUCCESS.
    """
    expected = notify_signature(
        form.get("merchant_id", ""),
        form.get("order_id", ""),
        form.get("payhere_amount", ""),
        form.get("payhere_currency", ""),
        form.get("status_code", ""),
    )
    if not hmac.compare_digest(expected, (form.get("md5sig") or "").upper()):
        logger.warning("Rejected payment notification for order %s: signature mismatch", form.get("order_id"))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

    user_id: Optional[int] = None
    if (form.get("custom_1") or "").isdigit():
        user_id = int(form["custom_1"])
    payment = _latest_payment(db, form.get("order_id", ""), user_id)
    if not payment:
        logger.warning("Payment notification for unknown order %s", form.get("order_id"))
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")

    new_status = STATUS_CODES.get(str(form.get("status_code")), "FAILED")
    was_success = payment.status == "SUCCESS"
    payment.status = new_status
    payment.transaction_id = form.get("payment_id") or payment.transaction_id
    payment.payment_method = payment.payment_method or "PAYHERE"
    db.add(payment)

    if new_status == "SUCCESS" and not was_success:
        _fulfil(db, payment, form)

    db.commit()
    db.refresh(payment)
    logger.info("Payment %s for order %s is now %s", payment.id, payment.order_id, payment.status)
    return payment


def _fulfil(db: Session, payment: Payment, form: Dict[str, str]) -> None:
    package_id = payment.package_id
    if package_id is None and (form.get("custom_2") or "").isdigit():
        package_id = int(form["custom_2"])
        payment.package_id = package_id
    if package_id is None:
        return
    package = db.get(PriceItem, package_id)
    if not package:
        logger.warning("Payment %s references missing package %s", payment.id, package_id)
        return

    if package.item_type == "BOOST_PACKAGE" and payment.ad_id:
        ad = db.get(CarAd, payment.ad_id)
        if ad:
            apply_boost_to_ad(db, ad, package, payment_id=payment.id)
        return

    subscription = create_subscription(db, payment.user_id, package.id, payment_id=payment.id)
    user = db.get(User, payment.user_id)
    if user:
        notifications.send_purchase_confirmation(db, user, subscription)


def activate_free_ad(db: Session, user: User, ad_id: int, package_id: int) -> Dict[str, Any]:
    """Publish an ad against the caller's package quota."""
    ad = db.get(CarAd, ad_id)
    if not ad:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ad not found")
    if ad.seller_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not own this ad")
    if ad.status == "ACTIVE":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Ad is already active")

    subscription = find_active_subscription(db, user.id)
    if not subscription or subscription.package_id != package_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No active subscription for this package")

    vehicle_type = ad.vehicle_type
    if not vehicle_type:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Ad has no vehicle type")

    entitlement = build_entitlement(db, subscription)
    type_limit = next(
        (lim for lim in entitlement["ad_limits"] if lim["vehicle_type_id"] == vehicle_type.id), None
    )
    if type_limit is not None:
        remaining = type_limit["remaining"]
    elif entitlement["global_remaining"] is not None:
        remaining = entitlement["global_remaining"]
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Your package does not include {vehicle_type.type_name} ads",
        )
    if remaining <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Ad limit reached for your package")

    now = utcnow()
    payment = Payment(
        user_id=user.id,
        package_id=package_id,
        ad_id=ad.id,
        order_id=usage_order_id(vehicle_type.type_name),
        amount=0,
        currency=settings.default_currency,
        status="SUCCESS",
        payment_method="PACKAGE_BENEFIT",
    )
    db.add(payment)
    ad.status = "ACTIVE"
    ad.expiry_date = now + timedelta(days=vehicle_type.expiry_days or settings.ad_default_expiry_days)
    db.add(ad)
    db.commit()
    db.refresh(ad)
    logger.info("Ad %s activated from package %s for user %s", ad.id, package_id, user.id)

    left = remaining if remaining == settings.unlimited_sentinel else remaining - 1
    return {
        "message": "Ad activated",
        "ad_id": ad.id,
        "status": ad.status,
        "expiry_date": ad.expiry_date,
        "payment_id": payment.id,
        "remaining": left,
    }
