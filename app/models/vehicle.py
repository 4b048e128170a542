from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint, func
from sqlalchemy.orm import relationship

from app.db.session import Base


class VehicleType(Base):
    __tablename__ = "vehicle_types"

    id = Column(Integer, primary_key=True)
    type_name = Column(String(100), unique=True, nullable=False, index=True)
    # ACTIVE | DISABLED
    status = Column(String(20), nullable=False, default="ACTIVE", server_default="ACTIVE")
    # Lifetime of an ad of this type once activated
    expiry_days = Column(Integer, nullable=False, default=30, server_default="30")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class VehicleAttribute(Base):
    __tablename__ = "vehicle_attributes"

    id = Column(Integer, primary_key=True)
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.id", ondelete="CASCADE"), nullable=False, index=True)
    attribute_name = Column(String(100), nullable=False)
    # NUMBER | TEXT | DROPDOWN | BOOLEAN
    data_type = Column(String(20), nullable=False, default="TEXT")
    unit = Column(String(30), nullable=True)
    is_required = Column(Boolean, nullable=False, default=False)
    options = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class VehicleBrand(Base):
    __tablename__ = "vehicle_brands"

    id = Column(Integer, primary_key=True)
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.id", ondelete="CASCADE"), nullable=False, index=True)
    brand_name = Column(String(100), nullable=False)
    brand_image = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (UniqueConstraint("vehicle_type_id", "brand_name", name="uq_brand_per_type"),)


class VehicleModel(Base):
    __tablename__ = "vehicle_models"

    id = Column(Integer, primary_key=True)
    brand_id = Column(Integer, ForeignKey("vehicle_brands.id", ondelete="CASCADE"), nullable=False, index=True)
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.id", ondelete="CASCADE"), nullable=False, index=True)
    model_name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    brand = relationship("VehicleBrand")


class VehicleCondition(Base):
    __tablename__ = "vehicle_conditions"

    id = Column(Integer, primary_key=True)
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.id", ondelete="CASCADE"), nullable=False, index=True)
    condition_name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
