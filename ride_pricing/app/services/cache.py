"""
Resolved pricing cache.

Optional Redis cache for ResolvedPricing snapshots. Keys embed a cache
generation that is bumped on every version activation, so entries written
under a previous active version are never read again and simply expire.
"""

import logging
from typing import Optional

from ride_pricing.app.core.config import settings
from ride_pricing.app.schemas.pricing import ResolvedPricing
from ride_pricing.app.services.geography import ResolvedLocation

logger = logging.getLogger("ride_pricing.cache")

GENERATION_KEY = "pricing:cache:generation"


class PricingCache:

    def __init__(self, redis, ttl_seconds: int = None):
        self.redis = redis
        self.ttl_seconds = ttl_seconds or settings.pricing_cache_ttl_seconds

    async def _generation(self) -> str:
        value = await self.redis.get(GENERATION_KEY)
        return str(value) if value is not None else "0"

    async def _key(self, version_id: int, location: ResolvedLocation, ride_type_id: Optional[int]) -> str:
        generation = await self._generation()
        parts = [
            location.country_id, location.region_id, location.city_id,
            location.zone_id, ride_type_id
        ]
        scope = ":".join("-" if p is None else str(p) for p in parts)
        return f"pricing:resolved:{generation}:{version_id}:{scope}"

    async def get(
        self,
        version_id: int,
        location: ResolvedLocation,
        ride_type_id: Optional[int]
    ) -> Optional[ResolvedPricing]:
        key = await self._key(version_id, location, ride_type_id)
        raw = await self.redis.get(key)
        if raw is None:
            return None
        return ResolvedPricing.model_validate_json(raw)

    async def set(
        self,
        location: ResolvedLocation,
        ride_type_id: Optional[int],
        pricing: ResolvedPricing
    ) -> None:
        key = await self._key(pricing.version_id, location, ride_type_id)
        await self.redis.set(key, pricing.model_dump_json(), ex=self.ttl_seconds)

    async def invalidate(self) -> None:
        """Start a new generation; called whenever the active version changes."""
        generation = await self.redis.incr(GENERATION_KEY)
        logger.info("Pricing cache invalidated", extra={"generation": generation})
