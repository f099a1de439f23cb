"""
Pricing Config database model.

One row of the geographic override hierarchy. Every pricing field is
nullable: NULL means "inherit from a less specific row".
"""

from sqlalchemy import Column, Integer, Float, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
from ride_pricing.app.db.session import Base


class PricingConfig(Base):
    """
    Pricing config model.

    Scope is given by the (country, region, city, zone) ids; all NULL is the
    global row. ride_type_id NULL applies to every ride type.
    """
    __tablename__ = "pricing_configs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    version_id = Column(Integer, ForeignKey('pricing_config_versions.id'), nullable=False, index=True)

    # Scope
    country_id = Column(Integer, nullable=True, index=True)
    region_id = Column(Integer, nullable=True, index=True)
    city_id = Column(Integer, nullable=True, index=True)
    zone_id = Column(Integer, nullable=True, index=True)
    ride_type_id = Column(Integer, nullable=True, index=True)

    # Core pricing
    base_fare = Column(Float, nullable=True)
    per_km_rate = Column(Float, nullable=True)
    per_minute_rate = Column(Float, nullable=True)
    minimum_fare = Column(Float, nullable=True)
    booking_fee = Column(Float, nullable=True)

    # Commission (percent, 20.0 == 20%)
    platform_commission_pct = Column(Float, nullable=True)
    driver_incentive_pct = Column(Float, nullable=True)

    # Surge limits
    surge_min_multiplier = Column(Float, nullable=True)
    surge_max_multiplier = Column(Float, nullable=True)

    # Tax
    tax_rate_pct = Column(Float, nullable=True)
    tax_inclusive = Column(Boolean, nullable=True)

    # [{"after_minutes": 2, "fee": 5.0, "fee_type": "fixed"}, ...]
    cancellation_fees = Column(JSON, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return (
            f"<PricingConfig(id={self.id}, version={self.version_id}, country={self.country_id}, "
            f"region={self.region_id}, city={self.city_id}, zone={self.zone_id}, ride_type={self.ride_type_id})>"
        )
