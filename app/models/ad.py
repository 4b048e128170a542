from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, Float, ForeignKey, Numeric
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.db.session import Base


class CarAd(Base):
    __tablename__ = "car_ads"

    id = Column(Integer, primary_key=True)
    seller_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.id", ondelete="CASCADE"), nullable=True, index=True)
    title = Column(String(200), nullable=False)
    price = Column(Numeric(14, 2, asdecimal=False), nullable=True, index=True)
    location = Column(String(200), nullable=True)
    description = Column(Text, nullable=True)
    # DRAFT | PENDING | ACTIVE | SOLD | EXPIRED | BANNED | REJECTED
    status = Column(String(20), nullable=False, default="DRAFT", index=True)

    is_featured = Column(Boolean, nullable=False, default=False)
    is_homepage_banner = Column(Boolean, nullable=False, default=False)
    is_popup_promotion = Column(Boolean, nullable=False, default=False)
    is_urgent = Column(Boolean, nullable=False, default=False)

    views_count = Column(Integer, nullable=False, default=0)
    expiry_date = Column(DateTime(timezone=True), nullable=True, index=True)

    is_banned = Column(Boolean, nullable=False, default=False)
    ban_expires_at = Column(DateTime(timezone=True), nullable=True)
    ban_reason = Column(String(255), nullable=True)
    # status restored when the ban is lifted
    status_before_ban = Column(String(20), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    details = relationship("CarDetails", uselist=False, cascade="all, delete-orphan", passive_deletes=True)
    images = relationship(
        "AdImage", order_by="AdImage.id", cascade="all, delete-orphan", passive_deletes=True
    )
    attribute_values = relationship("AdAttributeValue", cascade="all, delete-orphan", passive_deletes=True)
    vehicle_type = relationship("VehicleType")
    seller = relationship("User")


class CarDetails(Base):
    __tablename__ = "car_details"

    id = Column(Integer, primary_key=True)
    ad_id = Column(Integer, ForeignKey("car_ads.id", ondelete="CASCADE"), unique=True, nullable=False)
    condition = Column(String(50), nullable=True)
    brand = Column(String(100), nullable=True, index=True)
    model = Column(String(100), nullable=True, index=True)
    year = Column(Integer, nullable=True)
    mileage = Column(Float, nullable=True)
    engine_capacity = Column(Float, nullable=True)
    fuel_type = Column(String(30), nullable=True)
    transmission = Column(String(30), nullable=True)
    body_type = Column(String(50), nullable=True)


class AdAttributeValue(Base):
    __tablename__ = "ad_attribute_values"

    id = Column(Integer, primary_key=True)
    ad_id = Column(Integer, ForeignKey("car_ads.id", ondelete="CASCADE"), nullable=False, index=True)
    attribute_id = Column(Integer, ForeignKey("vehicle_attributes.id", ondelete="CASCADE"), nullable=False)
    # Stored as text regardless of the attribute's data type
    value = Column(Text, nullable=True)

    attribute = relationship("VehicleAttribute")


class AdImage(Base):
    __tablename__ = "ad_images"

    id = Column(Integer, primary_key=True)
    ad_id = Column(Integer, ForeignKey("car_ads.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String(500), nullable=False)
    is_primary = Column(Boolean, nullable=False, default=False)
