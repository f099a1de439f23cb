"""
Pricing administration schemas.

Create/update/response models for versions and every row kind that hangs
off a version.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from ride_pricing.app.models.pricing_enums import VersionStatus, WeatherCondition, EventType
from ride_pricing.app.schemas.pricing import CancellationFeeTier, FeeSchedule, CLOCK_PATTERN


# Versions

class VersionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    effective_from: Optional[datetime] = None
    effective_until: Optional[datetime] = None


class VersionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    effective_from: Optional[datetime] = None
    effective_until: Optional[datetime] = None


class VersionResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    status: VersionStatus
    effective_from: Optional[datetime]
    effective_until: Optional[datetime]
    cloned_from_id: Optional[int]
    activated_at: Optional[datetime]
    archived_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


# Pricing configs

class PricingConfigBase(BaseModel):
    base_fare: Optional[float] = Field(None, ge=0)
    per_km_rate: Optional[float] = Field(None, ge=0)
    per_minute_rate: Optional[float] = Field(None, ge=0)
    minimum_fare: Optional[float] = Field(None, ge=0)
    booking_fee: Optional[float] = Field(None, ge=0)
    platform_commission_pct: Optional[float] = Field(None, ge=0, le=100)
    driver_incentive_pct: Optional[float] = Field(None, ge=0, le=100)
    surge_min_multiplier: Optional[float] = Field(None, gt=0)
    surge_max_multiplier: Optional[float] = Field(None, gt=0)
    tax_rate_pct: Optional[float] = Field(None, ge=0, le=100)
    tax_inclusive: Optional[bool] = None
    cancellation_fees: Optional[List[CancellationFeeTier]] = None


class PricingConfigCreate(PricingConfigBase):
    country_id: Optional[int] = None
    region_id: Optional[int] = None
    city_id: Optional[int] = None
    zone_id: Optional[int] = None
    ride_type_id: Optional[int] = None


class PricingConfigUpdate(PricingConfigBase):
    is_active: Optional[bool] = None


class PricingConfigResponse(PricingConfigCreate):
    id: int
    version_id: int
    is_active: bool

    class Config:
        from_attributes = True


# Time multipliers

class TimeMultiplierCreate(BaseModel):
    country_id: Optional[int] = None
    region_id: Optional[int] = None
    city_id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=100)
    days_of_week: List[int] = Field(..., min_length=1)
    start_time: str = Field(..., pattern=CLOCK_PATTERN)
    end_time: str = Field(..., pattern=CLOCK_PATTERN)
    multiplier: float = Field(..., gt=0)
    priority: int = 0


class TimeMultiplierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    days_of_week: Optional[List[int]] = Field(None, min_length=1)
    start_time: Optional[str] = Field(None, pattern=CLOCK_PATTERN)
    end_time: Optional[str] = Field(None, pattern=CLOCK_PATTERN)
    multiplier: Optional[float] = Field(None, gt=0)
    priority: Optional[int] = None
    is_active: Optional[bool] = None


class TimeMultiplierResponse(TimeMultiplierCreate):
    id: int
    version_id: int
    is_active: bool

    class Config:
        from_attributes = True


# Weather multipliers

class WeatherMultiplierCreate(BaseModel):
    country_id: Optional[int] = None
    region_id: Optional[int] = None
    city_id: Optional[int] = None
    weather_condition: WeatherCondition
    multiplier: float = Field(..., gt=0)


class WeatherMultiplierUpdate(BaseModel):
    weather_condition: Optional[WeatherCondition] = None
    multiplier: Optional[float] = Field(None, gt=0)
    is_active: Optional[bool] = None


class WeatherMultiplierResponse(WeatherMultiplierCreate):
    id: int
    version_id: int
    is_active: bool

    class Config:
        from_attributes = True


# Event multipliers

class EventMultiplierCreate(BaseModel):
    zone_id: Optional[int] = None
    city_id: Optional[int] = None
    event_name: str = Field(..., min_length=1, max_length=200)
    event_type: EventType = EventType.OTHER
    starts_at: datetime
    ends_at: datetime
    pre_event_minutes: int = Field(0, ge=0)
    post_event_minutes: int = Field(0, ge=0)
    multiplier: float = Field(..., gt=0)
    expected_demand_increase: Optional[int] = None


class EventMultiplierUpdate(BaseModel):
    event_name: Optional[str] = Field(None, min_length=1, max_length=200)
    event_type: Optional[EventType] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    pre_event_minutes: Optional[int] = Field(None, ge=0)
    post_event_minutes: Optional[int] = Field(None, ge=0)
    multiplier: Optional[float] = Field(None, gt=0)
    expected_demand_increase: Optional[int] = None
    is_active: Optional[bool] = None


class EventMultiplierResponse(EventMultiplierCreate):
    id: int
    version_id: int
    is_active: bool

    class Config:
        from_attributes = True


# Zone fees

class ZoneFeeCreate(BaseModel):
    zone_id: int
    ride_type_id: Optional[int] = None
    fee_type: str = Field(..., min_length=1, max_length=50)
    amount: float = Field(..., ge=0)
    is_percentage: bool = False
    applies_pickup: bool = True
    applies_dropoff: bool = False
    schedule: Optional[FeeSchedule] = None


class ZoneFeeUpdate(BaseModel):
    fee_type: Optional[str] = Field(None, min_length=1, max_length=50)
    amount: Optional[float] = Field(None, ge=0)
    is_percentage: Optional[bool] = None
    applies_pickup: Optional[bool] = None
    applies_dropoff: Optional[bool] = None
    schedule: Optional[FeeSchedule] = None
    is_active: Optional[bool] = None


class ZoneFeeResponse(ZoneFeeCreate):
    id: int
    version_id: int
    is_active: bool

    class Config:
        from_attributes = True


# Surge thresholds

class SurgeThresholdCreate(BaseModel):
    country_id: Optional[int] = None
    region_id: Optional[int] = None
    city_id: Optional[int] = None
    demand_supply_ratio_min: float = Field(..., ge=0)
    demand_supply_ratio_max: Optional[float] = Field(None, gt=0)
    multiplier: float = Field(..., gt=0)


class SurgeThresholdUpdate(BaseModel):
    demand_supply_ratio_min: Optional[float] = Field(None, ge=0)
    demand_supply_ratio_max: Optional[float] = Field(None, gt=0)
    multiplier: Optional[float] = Field(None, gt=0)
    is_active: Optional[bool] = None


class SurgeThresholdResponse(SurgeThresholdCreate):
    id: int
    version_id: int
    is_active: bool

    class Config:
        from_attributes = True
