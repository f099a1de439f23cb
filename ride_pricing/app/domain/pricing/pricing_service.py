"""
Pricing Service.

Entry point for the ride-facing operations: fare estimates, negotiated
price checks, cancellation fees and surge lookups. Orchestrates the
geography collaborator, the resolver, the multiplier and zone fee lookups
and the fare calculator. Every computation reads a single active version.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ride_pricing.app.schemas.pricing import (
    EstimateRequest, FareCalculation, ResolvedPricing, SurgeInfoResponse
)
from ride_pricing.app.models.pricing_version import PricingConfigVersion
from ride_pricing.app.domain.pricing.config_store import ConfigStore
from ride_pricing.app.domain.pricing.pricing_resolver import PricingResolver
from ride_pricing.app.domain.pricing.multipliers import (
    resolve_multipliers, SurgeMultiplierResolver, NEUTRAL_MULTIPLIER
)
from ride_pricing.app.domain.pricing.zone_fees import ZoneFeeResolver
from ride_pricing.app.domain.pricing.fare_calculator import FareCalculator
from ride_pricing.app.domain.pricing.windows import as_utc, to_local
from ride_pricing.app.services.cache import PricingCache
from ride_pricing.app.services.currency import Currency
from ride_pricing.app.services.geography import (
    GeographyResolver, ResolvedLocation, haversine_distance, estimate_duration_minutes
)

logger = logging.getLogger("ride_pricing.pricing")


class PricingService:

    def __init__(
        self,
        geography: GeographyResolver,
        currency: Currency,
        cache: Optional[PricingCache] = None
    ):
        self.geography = geography
        self.currency = currency
        self.cache = cache
        self.calculator = FareCalculator(currency)

    async def _resolve_pricing(
        self,
        db: AsyncSession,
        location: ResolvedLocation,
        ride_type_id: Optional[int] = None,
        version: Optional[PricingConfigVersion] = None
    ) -> ResolvedPricing:
        return await PricingResolver.resolve(
            db, location, ride_type_id=ride_type_id, version=version, cache=self.cache
        )

    async def get_pricing(
        self,
        db: AsyncSession,
        latitude: float,
        longitude: float,
        ride_type_id: Optional[int] = None
    ) -> ResolvedPricing:
        """Resolved pricing in effect at a point."""
        location = await self.geography.resolve_location(latitude, longitude)
        return await self._resolve_pricing(db, location, ride_type_id)

    async def estimate(self, db: AsyncSession, request: EstimateRequest) -> FareCalculation:
        """
        Price a trip between two points.

        Raises:
            ConfigurationError: No active pricing version.
            GeographyError: A point could not be resolved.
        """
        # Fail before calling out to geography when nothing is priced
        version = await ConfigStore.get_active_version(db)

        moment = as_utc(request.requested_at or datetime.now(timezone.utc))

        pickup = await self.geography.resolve_location(request.pickup_latitude, request.pickup_longitude)
        dropoff = await self.geography.resolve_location(request.dropoff_latitude, request.dropoff_longitude)
        local_moment = to_local(moment, pickup.timezone)

        pricing = await self._resolve_pricing(db, pickup, request.ride_type_id, version=version)

        multipliers = await resolve_multipliers(
            db,
            pricing,
            pickup,
            moment,
            local_moment,
            weather_condition=request.weather_condition,
            demand_supply_ratio=request.demand_supply_ratio
        )

        zone_fees = await ZoneFeeResolver.resolve(
            db, version.id, pickup.zone_id, dropoff.zone_id, request.ride_type_id, local_moment
        )
        zone_names = await ZoneFeeResolver.zone_names(db, [fee.zone_id for fee in zone_fees])

        distance_km = self.currency.round(
            haversine_distance(
                request.pickup_latitude, request.pickup_longitude,
                request.dropoff_latitude, request.dropoff_longitude
            ),
            decimal_places=3
        )
        duration_min = estimate_duration_minutes(distance_km)

        fare = self.calculator.calculate(
            pricing,
            distance_km,
            duration_min,
            multipliers=multipliers,
            zone_fees=zone_fees,
            zone_names=zone_names
        )

        logger.info(
            "Fare estimated",
            extra={
                "version_id": version.id,
                "city_id": pickup.city_id,
                "zone_id": pickup.zone_id,
                "ride_type_id": request.ride_type_id,
                "distance_km": distance_km,
                "duration_min": duration_min,
                "total_multiplier": fare.total_multiplier,
                "surge_raw": multipliers.surge_raw,
                "total_fare": fare.total_fare,
            }
        )
        return fare

    async def validate_negotiated_price(
        self,
        db: AsyncSession,
        request: EstimateRequest,
        price: float
    ) -> FareCalculation:
        """
        Estimate the trip and accept the price if it sits in the band.

        Raises:
            PriceOutOfRangeError: With the allowed band.
        """
        fare = await self.estimate(db, request)
        return self.calculator.validate_negotiated_price(fare, price)

    async def cancellation_fee(
        self,
        db: AsyncSession,
        latitude: float,
        longitude: float,
        minutes_since_request: float,
        estimated_fare: float,
        ride_type_id: Optional[int] = None
    ) -> float:
        location = await self.geography.resolve_location(latitude, longitude)
        pricing = await self._resolve_pricing(db, location, ride_type_id)
        return self.calculator.cancellation_fee(pricing, minutes_since_request, estimated_fare)

    async def get_surge_info(
        self,
        db: AsyncSession,
        latitude: float,
        longitude: float,
        demand_supply_ratio: Optional[float] = None
    ) -> SurgeInfoResponse:
        """Surge band and clamped multiplier for a point."""
        version = await ConfigStore.get_active_version(db)
        location = await self.geography.resolve_location(latitude, longitude)
        pricing = await self._resolve_pricing(db, location, version=version)

        raw = await SurgeMultiplierResolver.resolve_raw(db, version.id, location, demand_supply_ratio)
        surge = SurgeMultiplierResolver.clamp(raw, pricing)

        return SurgeInfoResponse(
            demand_supply_ratio=demand_supply_ratio,
            raw_multiplier=raw,
            surge_multiplier=surge,
            surge_min_multiplier=pricing.surge_min_multiplier,
            surge_max_multiplier=pricing.surge_max_multiplier,
            is_surge_active=surge > NEUTRAL_MULTIPLIER,
            pricing_version_id=version.id,
        )
