from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Numeric, func
from sqlalchemy.orm import relationship

from app.db.session import Base


class Discount(Base):
    __tablename__ = "discounts"

    id = Column(Integer, primary_key=True)
    name = Column(String(150), nullable=False)
    # PERCENTAGE | FIXED
    discount_type = Column(String(20), nullable=False)
    value = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    is_first_time_user = Column(Boolean, nullable=False, default=False)
    min_bulk_ads = Column(Integer, nullable=False, default=0)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    # ACTIVE | INACTIVE
    status = Column(String(20), nullable=False, default="ACTIVE", index=True)
    offer_image = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    vehicle_types = relationship("VehicleType", secondary="discount_vehicle_types")
    packages = relationship("PriceItem", secondary="discount_packages")


class DiscountVehicleType(Base):
    __tablename__ = "discount_vehicle_types"

    discount_id = Column(Integer, ForeignKey("discounts.id", ondelete="CASCADE"), primary_key=True)
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.id", ondelete="CASCADE"), primary_key=True)


class DiscountPackage(Base):
    __tablename__ = "discount_packages"

    discount_id = Column(Integer, ForeignKey("discounts.id", ondelete="CASCADE"), primary_key=True)
    package_id = Column(Integer, ForeignKey("price_items.id", ondelete="CASCADE"), primary_key=True)
