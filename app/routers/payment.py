import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Form, HTTPException, status
from sqlalchemy.orm import Session

from app.core.settings import settings
from app.db.session import get_db
from app.models.ad import CarAd
from app.models.billing import Payment
from app.models.pricing import PriceItem
from app.models.user import User
from app.schemas.auth import MessageResponse
from app.schemas.payment import (
    ActivateFreeAdRequest,
    GenerateHashRequest,
    HashResponse,
    InitiatePaymentRequest,
    InitiatePaymentResponse,
    PaymentOut,
)
from app.schemas.pricing import UnsubscribeRequest
from app.security.deps import get_current_user
from app.services import payments
from app.services.entitlements import find_active_subscription
from app.services.subscriptions import cancel_subscriptions


logger = logging.getLogger(__name__)

router = APIRouter()


def _config_error(exc: payments.PaymentConfigError) -> HTTPException:
    logger.error("Payment gateway misconfigured: %s", exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("/generate-hash", response_model=HashResponse)
def generate_hash(payload: GenerateHashRequest) -> HashResponse:
    merchant_id = payload.merchant_id or settings.payhere_merchant_id
    if not merchant_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="merchant_id is required")
    try:
        digest = payments.checkout_hash(merchant_id, payload.order_id, payload.amount, payload.currency)
    except payments.PaymentConfigError as exc:
        raise _config_error(exc)
    return HashResponse(
        hash=digest,
        merchant_id=merchant_id,
        order_id=payload.order_id,
        amount=payments.format_amount(payload.amount),
        currency=payload.currency,
    )


@router.post("/initiate", response_model=InitiatePaymentResponse, status_code=status.HTTP_201_CREATED)
def initiate_payment(
    payload: InitiatePaymentRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> InitiatePaymentResponse:
    if payload.package_id is not None and not db.get(PriceItem, payload.package_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Package not found")
    if payload.ad_id is not None:
        ad = db.get(CarAd, payload.ad_id)
        if not ad:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ad not found")
        if ad.seller_id != user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not own this ad")
    if not settings.payhere_merchant_id:
        raise _config_error(payments.PaymentConfigError("Merchant id not configured"))

    payment = Payment(
        user_id=user.id,
        package_id=payload.package_id,
        ad_id=payload.ad_id,
        order_id=payload.order_id or f"ORD-{uuid.uuid4().hex[:12].upper()}",
        amount=payload.amount,
        currency=payload.currency or settings.default_currency,
        status="PENDING",
        payment_method="PAYHERE",
    )
    db.add(payment)
    db.flush()
    try:
        fields = payments.checkout_fields(payment, user, payload.model_dump())
    except payments.PaymentConfigError as exc:
        db.rollback()
        raise _config_error(exc)
    db.commit()
    logger.info("Payment %s initiated by user %s for order %s", payment.id, user.id, payment.order_id)
    return InitiatePaymentResponse(payment_id=payment.id, action_url=settings.payhere_checkout_url, fields=fields)


@router.post("/notify")
def payment_notify(
    merchant_id: str = Form(""),
    order_id: str = Form(""),
    payment_id: Optional[str] = Form(None),
    payhere_amount: str = Form(""),
    payhere_currency: str = Form(""),
    status_code: str = Form(""),
    md5sig: str = Form(""),
    custom_1: Optional[str] = Form(None),
    custom_2: Optional[str] = Form(None),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    form = {
        "merchant_id": merchant_id,
        "order_id": order_id,
        "payment_id": payment_id,
        "payhere_amount": payhere_amount,
        "payhere_currency": payhere_currency,
        "status_code": status_code,
        "md5sig": md5sig,
        "custom_1": custom_1,
        "custom_2": custom_2,
    }
    try:
        payment = payments.handle_notify(db, form)
    except payments.PaymentConfigError as exc:
        raise _config_error(exc)
    return {"message": "Notification processed", "order_id": payment.order_id, "status": payment.status}


def _payment_out(payment: Payment) -> PaymentOut:
    return PaymentOut(
        id=payment.id,
        order_id=payment.order_id,
        amount=payment.amount,
        currency=payment.currency,
        status=payment.status,
        payment_method=payment.payment_method,
        transaction_id=payment.transaction_id,
        package_id=payment.package_id,
        package_name=payment.package.name if payment.package else None,
        ad_id=payment.ad_id,
        created_at=payment.created_at,
    )


@router.get("/my-payments", response_model=List[PaymentOut])
def my_payments(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> List[PaymentOut]:
    rows = (
        db.query(Payment)
        .filter(Payment.user_id == user.id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )
    return [_payment_out(p) for p in rows]


@router.get("/active-subscription")
def active_subscription(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> Optional[Dict[str, Any]]:
    subscription = find_active_subscription(db, user.id)
    if not subscription:
        return None
    return {
        "id": subscription.id,
        "package_id": subscription.package_id,
        "package_name": subscription.package.name if subscription.package else None,
        "start_date": subscription.start_date,
        "end_date": subscription.end_date,
        "status": subscription.status,
    }


@router.post("/unsubscribe", response_model=MessageResponse)
def unsubscribe(
    payload: Optional[UnsubscribeRequest] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    count = cancel_subscriptions(db, user.id, payload.subscription_id if payload else None)
    return MessageResponse(message=f"Cancelled {count} subscription(s)")


@router.post("/activate-free-ad")
def activate_free_ad(
    payload: ActivateFreeAdRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> Dict[str, Any]:
    return payments.activate_free_ad(db, user, payload.ad_id, payload.package_id)
