"""
Service dependencies for FastAPI.

Wires the pricing service to its collaborators (geography, currency and
the optional Redis cache) so routes and tests can override each one.
"""

from fastapi import Depends

from ride_pricing.app.core.config import settings
from ride_pricing.app.core.redis_client import get_redis
from ride_pricing.app.domain.pricing.pricing_service import PricingService
from ride_pricing.app.services.cache import PricingCache
from ride_pricing.app.services.currency import Currency, get_currency
from ride_pricing.app.services.geography import GeographyResolver, get_geography_resolver


async def get_pricing_cache(redis=Depends(get_redis)):
    """Resolved-pricing cache, or None when caching is disabled."""
    if not settings.pricing_cache_enabled:
        return None
    return PricingCache(redis)


async def get_pricing_service(
    geography: GeographyResolver = Depends(get_geography_resolver),
    currency: Currency = Depends(get_currency),
    cache=Depends(get_pricing_cache)
) -> PricingService:
    return PricingService(geography=geography, currency=currency, cache=cache)
