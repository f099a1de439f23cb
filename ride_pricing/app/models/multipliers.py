"""
Pricing multiplier database models.

Time, weather and event multipliers plus demand/supply surge thresholds.
All rows belong to a pricing config version.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, JSON, Enum
from sqlalchemy.sql import func
from ride_pricing.app.db.session import Base
from ride_pricing.app.models.pricing_enums import WeatherCondition, EventType


class TimeMultiplier(Base):
    """
    Time-of-day multiplier.

    Windows are local clock times "HH:MM" and may wrap midnight
    (start_time > end_time). days_of_week uses 0=Sunday .. 6=Saturday.
    """
    __tablename__ = "time_multipliers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    version_id = Column(Integer, ForeignKey('pricing_config_versions.id'), nullable=False, index=True)

    country_id = Column(Integer, nullable=True, index=True)
    region_id = Column(Integer, nullable=True, index=True)
    city_id = Column(Integer, nullable=True, index=True)

    name = Column(String(100), nullable=False)
    days_of_week = Column(JSON, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    multiplier = Column(Float, nullable=False)
    priority = Column(Integer, default=0, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<TimeMultiplier(id={self.id}, name='{self.name}', {self.start_time}-{self.end_time}, x{self.multiplier})>"


class WeatherMultiplier(Base):
    """Weather condition multiplier."""
    __tablename__ = "weather_multipliers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    version_id = Column(Integer, ForeignKey('pricing_config_versions.id'), nullable=False, index=True)

    country_id = Column(Integer, nullable=True, index=True)
    region_id = Column(Integer, nullable=True, index=True)
    city_id = Column(Integer, nullable=True, index=True)

    weather_condition = Column(Enum(WeatherCondition), nullable=False, index=True)
    multiplier = Column(Float, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<WeatherMultiplier(id={self.id}, condition='{self.weather_condition.value}', x{self.multiplier})>"


class EventMultiplier(Base):
    """
    Event multiplier.

    Active from starts_at - pre_event_minutes to ends_at + post_event_minutes
    for the event's zone or city.
    """
    __tablename__ = "event_multipliers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    version_id = Column(Integer, ForeignKey('pricing_config_versions.id'), nullable=False, index=True)

    zone_id = Column(Integer, nullable=True, index=True)
    city_id = Column(Integer, nullable=True, index=True)

    event_name = Column(String(200), nullable=False)
    event_type = Column(Enum(EventType), default=EventType.OTHER, nullable=False)
    starts_at = Column(DateTime(timezone=True), nullable=False)
    ends_at = Column(DateTime(timezone=True), nullable=False)
    pre_event_minutes = Column(Integer, default=0, nullable=False)
    post_event_minutes = Column(Integer, default=0, nullable=False)
    multiplier = Column(Float, nullable=False)
    expected_demand_increase = Column(Integer, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<EventMultiplier(id={self.id}, name='{self.event_name}', x{self.multiplier})>"


class SurgeThreshold(Base):
    """
    Surge band.

    Maps the demand/supply ratio interval [min, max) to a multiplier.
    A NULL max is unbounded.
    """
    __tablename__ = "surge_thresholds"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    version_id = Column(Integer, ForeignKey('pricing_config_versions.id'), nullable=False, index=True)

    country_id = Column(Integer, nullable=True, index=True)
    region_id = Column(Integer, nullable=True, index=True)
    city_id = Column(Integer, nullable=True, index=True)

    demand_supply_ratio_min = Column(Float, nullable=False)
    demand_supply_ratio_max = Column(Float, nullable=True)
    multiplier = Column(Float, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return (
            f"<SurgeThreshold(id={self.id}, ratio=[{self.demand_supply_ratio_min}, "
            f"{self.demand_supply_ratio_max}), x{self.multiplier})>"
        )
