from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.db.session import Base


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    package_id = Column(Integer, ForeignKey("price_items.id", ondelete="SET NULL"), nullable=True, index=True)
    ad_id = Column(Integer, ForeignKey("car_ads.id", ondelete="SET NULL"), nullable=True)
    # Package benefit rows use "V-<vehicle type name>"; not unique
    order_id = Column(String(100), nullable=False, index=True)
    amount = Column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="LKR")
    # PENDING | SUCCESS | FAILED | CANCELLED | REFUNDED
    status = Column(String(20), nullable=False, default="PENDING", index=True)
    # PAYHERE | PACKAGE_BENEFIT | DIRECT_ACTIVATE
    payment_method = Column(String(30), nullable=True)
    transaction_id = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    package = relationship("PriceItem")


class UserSubscription(Base):
    __tablename__ = "user_subscriptions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # No ondelete: a purchased package cannot be deleted out from under its subscribers
    package_id = Column(Integer, ForeignKey("price_items.id"), nullable=False, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id", ondelete="SET NULL"), nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False, index=True)
    # ACTIVE | EXPIRED | CANCELLED
    status = Column(String(20), nullable=False, default="ACTIVE", index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User")
    package = relationship("PriceItem")
    payment = relationship("Payment")
