"""
Redis client initialization and connection management.

Backs the optional resolved-pricing cache.
"""

import redis.asyncio as redis
from ride_pricing.app.core.config import settings


redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """
    Get Redis client instance.

    Used as a FastAPI dependency.
    """
    return redis_client

