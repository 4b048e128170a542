from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey

from app.core.clock import utcnow
from app.db.session import Base


class NotificationLog(Base):
    __tablename__ = "notification_logs"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    subscription_id = Column(Integer, ForeignKey("user_subscriptions.id", ondelete="SET NULL"), nullable=True)
    # PURCHASE | EXPIRY_WARNING | AD_LIMIT_WARNING | PASSWORD_RESET
    notification_type = Column(String(30), nullable=False, index=True)
    recipient_email = Column(String(255), nullable=True)
    subject = Column(String(255), nullable=True)
    # SENT | FAILED
    status = Column(String(10), nullable=False)
    error_message = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
