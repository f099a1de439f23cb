"""
Pricing Schemas.

Resolved pricing snapshot, fare calculation output and the request/response
models of the public pricing API.
"""

from pydantic import BaseModel, Field, conint
from datetime import datetime
from typing import Optional, List
from ride_pricing.app.models.pricing_enums import CancellationFeeType, WeatherCondition

CLOCK_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class CancellationFeeTier(BaseModel):
    """One tier of a cancellation fee schedule."""
    after_minutes: int = Field(..., ge=0)
    fee: float = Field(..., ge=0)
    fee_type: CancellationFeeType = CancellationFeeType.FIXED


class FeeSchedule(BaseModel):
    """When a zone fee applies. days uses 0=Sunday .. 6=Saturday."""
    days: List[conint(ge=0, le=6)] = Field(default_factory=list)
    start_time: str = Field(..., pattern=CLOCK_PATTERN)
    end_time: str = Field(..., pattern=CLOCK_PATTERN)


class ResolvedPricing(BaseModel):
    """Fully populated pricing parameters for one location, ride type and version."""
    # Provenance
    version_id: int
    country_id: Optional[int] = None
    region_id: Optional[int] = None
    city_id: Optional[int] = None
    zone_id: Optional[int] = None
    ride_type_id: Optional[int] = None

    base_fare: float
    per_km_rate: float
    per_minute_rate: float
    minimum_fare: float
    booking_fee: float
    platform_commission_pct: float
    driver_incentive_pct: float
    surge_min_multiplier: float
    surge_max_multiplier: float
    tax_rate_pct: float
    tax_inclusive: bool
    cancellation_fees: List[CancellationFeeTier]

    # Rows that contributed, most specific first
    inheritance_chain: List[str] = Field(default_factory=list)

    class Config:
        frozen = True


class ZoneFeeBreakdown(BaseModel):
    """A zone fee applied to a fare."""
    zone_id: int
    zone_name: str
    fee_type: str
    amount: float

    class Config:
        frozen = True


class FareCalculation(BaseModel):
    """Immutable, itemized result of a fare computation."""
    # Input
    distance_km: float
    duration_min: int
    currency: str

    # Base calculation
    base_fare: float
    distance_charge: float
    time_charge: float
    booking_fee: float

    # Zone fees
    zone_fees_total: float
    zone_fees_breakdown: List[ZoneFeeBreakdown] = Field(default_factory=list)

    # Multipliers
    time_multiplier: float
    weather_multiplier: float
    event_multiplier: float
    surge_multiplier: float
    total_multiplier: float

    # Final calculation
    pre_multiplier_subtotal: float
    subtotal: float
    minimum_fare: float
    minimum_fare_applied: bool
    tax_rate_pct: float
    tax_inclusive: bool
    tax_amount: float
    total_fare: float

    # Commission split
    platform_commission_pct: float
    platform_commission: float
    driver_earnings: float

    # Metadata
    pricing_version_id: int
    was_negotiated: bool = False
    negotiated_fare: Optional[float] = None

    class Config:
        frozen = True


class EstimateRequest(BaseModel):
    """Fare estimate request."""
    pickup_latitude: float = Field(..., ge=-90, le=90)
    pickup_longitude: float = Field(..., ge=-180, le=180)
    dropoff_latitude: float = Field(..., ge=-90, le=90)
    dropoff_longitude: float = Field(..., ge=-180, le=180)
    ride_type_id: Optional[int] = None
    requested_at: Optional[datetime] = None
    weather_condition: Optional[WeatherCondition] = None
    demand_supply_ratio: Optional[float] = Field(None, ge=0)


class EstimateResponse(BaseModel):
    """Fare estimate response."""
    currency: str
    estimated_fare: float
    minimum_fare: float
    surge_multiplier: float
    distance_km: float
    estimated_minutes: int
    fare_breakdown: FareCalculation
    formatted_fare: str


class ValidatePriceRequest(EstimateRequest):
    """Negotiated price check."""
    negotiated_price: float = Field(..., gt=0)


class ValidatePriceResponse(BaseModel):
    valid: bool
    negotiated_price: float
    estimated_price: float
    variance_pct: float


class CancellationFeeRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    minutes_since_request: float = Field(..., ge=0)
    estimated_fare: float = Field(..., gt=0)
    ride_type_id: Optional[int] = None


class CancellationFeeResponse(BaseModel):
    cancellation_fee: float
    minutes_since_request: float


class SurgeInfoResponse(BaseModel):
    """Surge resolved for a location and demand/supply ratio."""
    demand_supply_ratio: Optional[float]
    raw_multiplier: float
    surge_multiplier: float
    surge_min_multiplier: float
    surge_max_multiplier: float
    is_surge_active: bool
    pricing_version_id: int
