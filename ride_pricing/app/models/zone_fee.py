"""
Zone fee and pricing zone database models.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
from ride_pricing.app.db.session import Base


class PricingZone(Base):
    """
    Pricing zone lookup.

    Owned by the geography service; read here only to label fee lines.
    """
    __tablename__ = "pricing_zones"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    city_id = Column(Integer, nullable=True, index=True)
    name = Column(String(200), nullable=False)

    def __repr__(self):
        return f"<PricingZone(id={self.id}, name='{self.name}')>"


class ZoneFee(Base):
    """
    Zone fee model.

    Extra charge tied to a pricing zone (airport pickup, toll, ...).
    Percentage fees apply to the pre-multiplier base+distance+time amount.
    """
    __tablename__ = "zone_fees"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    version_id = Column(Integer, ForeignKey('pricing_config_versions.id'), nullable=False, index=True)
    zone_id = Column(Integer, nullable=False, index=True)
    ride_type_id = Column(Integer, nullable=True, index=True)

    fee_type = Column(String(50), nullable=False)  # pickup_fee, dropoff_fee, toll, airport_fee ...
    amount = Column(Float, nullable=False)
    is_percentage = Column(Boolean, default=False, nullable=False)
    applies_pickup = Column(Boolean, default=True, nullable=False)
    applies_dropoff = Column(Boolean, default=False, nullable=False)

    # {"days": [1, 2, 3, 4, 5], "start_time": "07:00", "end_time": "10:00"}
    schedule = Column(JSON, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<ZoneFee(id={self.id}, zone={self.zone_id}, type='{self.fee_type}', amount={self.amount})>"
