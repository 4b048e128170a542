from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.db.session import Base


class AdBoost(Base):
    __tablename__ = "ad_boosts"

    id = Column(Integer, primary_key=True)
    ad_id = Column(Integer, ForeignKey("car_ads.id", ondelete="CASCADE"), nullable=False, index=True)
    package_id = Column(Integer, ForeignKey("price_items.id", ondelete="CASCADE"), nullable=False)
    payment_id = Column(Integer, ForeignKey("payments.id", ondelete="SET NULL"), nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False, index=True)
    # ACTIVE | EXPIRED
    status = Column(String(20), nullable=False, default="ACTIVE", index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    package = relationship("PriceItem")
