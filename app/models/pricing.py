from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey, Numeric, UniqueConstraint, func
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.db.session import Base


class PriceItem(Base):
    __tablename__ = "price_items"

    id = Column(Integer, primary_key=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    # PACKAGE | ADDON | BOOST_PACKAGE | BOOST_ITEM
    item_type = Column(String(20), nullable=False, index=True)
    # ACTIVE | INACTIVE
    status = Column(String(20), nullable=False, default="ACTIVE", server_default="ACTIVE")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)


class PricingRule(Base):
    __tablename__ = "pricing_rules"

    id = Column(Integer, primary_key=True)
    price_item_id = Column(Integer, ForeignKey("price_items.id", ondelete="CASCADE"), nullable=False, index=True)
    # Null means the rule applies to every vehicle type
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.id", ondelete="CASCADE"), nullable=True, index=True)
    # PER_AD | PER_IMAGE | PER_DAY | PER_PACKAGE | ONE_TIME
    unit = Column(String(20), nullable=False, default="PER_AD")
    price = Column(Numeric(14, 2, asdecimal=False), nullable=False)
    min_qty = Column(Integer, nullable=True)
    max_qty = Column(Integer, nullable=True)
    extra_letter_price = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    description_limit = Column(Integer, nullable=False, default=500)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class PackageFeature(Base):
    __tablename__ = "package_features"

    id = Column(Integer, primary_key=True)
    price_item_id = Column(Integer, ForeignKey("price_items.id", ondelete="CASCADE"), nullable=False, index=True)
    # e.g. DURATION_DAYS, FREE_ADS_LIMIT, IS_UNLIMITED_ADS
    feature_key = Column(String(50), nullable=False)
    feature_value = Column(String(255), nullable=True)

    __table_args__ = (UniqueConstraint("price_item_id", "feature_key", name="uq_package_feature_key"),)


class PackageIncludedItem(Base):
    __tablename__ = "package_included_items"

    id = Column(Integer, primary_key=True)
    package_id = Column(Integer, ForeignKey("price_items.id", ondelete="CASCADE"), nullable=False, index=True)
    included_item_id = Column(Integer, ForeignKey("price_items.id", ondelete="CASCADE"), nullable=False)
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    is_unlimited = Column(Boolean, nullable=False, default=False)

    included_item = relationship("PriceItem", foreign_keys=[included_item_id])


class PackageAdLimit(Base):
    __tablename__ = "package_ad_limits"

    id = Column(Integer, primary_key=True)
    package_id = Column(Integer, ForeignKey("price_items.id", ondelete="CASCADE"), nullable=False, index=True)
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    # Overrides quantity when set
    is_unlimited = Column(Boolean, nullable=False, default=False)

    vehicle_type = relationship("VehicleType")

    __table_args__ = (UniqueConstraint("package_id", "vehicle_type_id", name="uq_package_ad_limit"),)
