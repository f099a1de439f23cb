"""
Pricing Resolver.

Cascades the geographic override hierarchy into one ResolvedPricing.
Rows are scanned most specific first and each field independently keeps
the first non-null value, so a zone row that leaves a field NULL still
inherits it from its city, region, country or global row. Fields nobody
sets fall back to DEFAULT_PRICING.
"""

import copy
import logging
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from ride_pricing.app.models.pricing_config import PricingConfig
from ride_pricing.app.models.pricing_version import PricingConfigVersion
from ride_pricing.app.schemas.pricing import ResolvedPricing
from ride_pricing.app.domain.pricing.config_store import ConfigStore
from ride_pricing.app.domain.pricing.scope import sort_by_specificity, scope_label
from ride_pricing.app.services.cache import PricingCache
from ride_pricing.app.services.geography import ResolvedLocation

logger = logging.getLogger("ride_pricing.pricing")

DEFAULT_PRICING = {
    "base_fare": 3.00,
    "per_km_rate": 1.50,
    "per_minute_rate": 0.25,
    "minimum_fare": 5.00,
    "booking_fee": 1.00,
    "platform_commission_pct": 20.00,
    "driver_incentive_pct": 0.00,
    "surge_min_multiplier": 1.00,
    "surge_max_multiplier": 5.00,
    "tax_rate_pct": 0.00,
    "tax_inclusive": False,
    "cancellation_fees": [
        {"after_minutes": 0, "fee": 0.0, "fee_type": "fixed"},
        {"after_minutes": 2, "fee": 5.0, "fee_type": "fixed"},
        {"after_minutes": 5, "fee": 10.0, "fee_type": "fixed"},
    ],
}

PRICING_FIELDS = tuple(DEFAULT_PRICING.keys())

# Merged as one value; an empty schedule counts as unset
ATOMIC_FIELDS = ("cancellation_fees",)


def _is_unset(field: str, value) -> bool:
    if value is None:
        return True
    return field in ATOMIC_FIELDS and len(value) == 0


class PricingResolver:

    @staticmethod
    def merge(
        configs: Sequence[PricingConfig],
        version_id: int,
        location: ResolvedLocation,
        ride_type_id: Optional[int] = None
    ) -> ResolvedPricing:
        """
        Merge config rows into a fully populated ResolvedPricing.

        Rows are re-sorted by specificity here; callers' ordering is not
        trusted.
        """
        values = {}
        chain = []

        for config in sort_by_specificity(configs):
            contributed = False
            for field in PRICING_FIELDS:
                if field in values:
                    continue
                value = getattr(config, field)
                if _is_unset(field, value):
                    continue
                values[field] = copy.deepcopy(value)
                contributed = True
            if contributed:
                chain.append(scope_label(config))

        missing = [field for field in PRICING_FIELDS if field not in values]
        for field in missing:
            values[field] = copy.deepcopy(DEFAULT_PRICING[field])
        if missing:
            chain.append("defaults")

        if values["surge_min_multiplier"] > values["surge_max_multiplier"]:
            logger.warning(
                "Resolved surge bounds are inverted",
                extra={
                    "version_id": version_id,
                    "surge_min": values["surge_min_multiplier"],
                    "surge_max": values["surge_max_multiplier"],
                }
            )

        return ResolvedPricing(
            version_id=version_id,
            country_id=location.country_id,
            region_id=location.region_id,
            city_id=location.city_id,
            zone_id=location.zone_id,
            ride_type_id=ride_type_id,
            inheritance_chain=chain,
            **values
        )

    @staticmethod
    async def resolve(
        db: AsyncSession,
        location: ResolvedLocation,
        ride_type_id: Optional[int] = None,
        version: Optional[PricingConfigVersion] = None,
        cache: Optional[PricingCache] = None
    ) -> ResolvedPricing:
        """
        Resolve pricing for a location and ride type under the active version.

        Raises:
            ConfigurationError: If no version is active.
        """
        if version is None:
            version = await ConfigStore.get_active_version(db)

        if cache:
            cached = await cache.get(version.id, location, ride_type_id)
            if cached:
                return cached

        configs = await ConfigStore.fetch_configs(db, version.id, location, ride_type_id)
        pricing = PricingResolver.merge(configs, version.id, location, ride_type_id)

        logger.debug(
            "Pricing resolved",
            extra={
                "version_id": version.id,
                "city_id": location.city_id,
                "zone_id": location.zone_id,
                "ride_type_id": ride_type_id,
                "inheritance_chain": pricing.inheritance_chain,
            }
        )

        if cache:
            await cache.set(location, ride_type_id, pricing)

        return pricing
