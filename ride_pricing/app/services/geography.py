"""
Geography collaborator.

Point resolution (lat/lng -> country/region/city/zone ids and timezone) is
owned by the geography service. This module defines the interface the
pricing engine consumes, the HTTP adapter used in production and the
great-circle distance helper used for estimates.
"""

import math
import logging
from dataclasses import dataclass
from typing import Optional, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx

from ride_pricing.app.core.config import settings
from ride_pricing.app.core.exceptions import GeographyError

logger = logging.getLogger("ride_pricing.geography")


@dataclass(frozen=True)
class ResolvedLocation:
    """Administrative ids for a point, broadest first."""
    country_id: Optional[int] = None
    region_id: Optional[int] = None
    city_id: Optional[int] = None
    zone_id: Optional[int] = None
    timezone: Optional[str] = None


class GeographyResolver(Protocol):
    async def resolve_location(self, latitude: float, longitude: float) -> ResolvedLocation:
        ...


class GeographyClient:
    """
    HTTP adapter for the geography service.

    Expects GET {base_url}/v1/geo/resolve?lat=..&lng=.. to answer with
    {"country_id", "region_id", "city_id", "zone_id", "timezone"}.
    """

    def __init__(self, base_url: str = None, timeout: float = None):
        self.base_url = (base_url or settings.geography_service_url).rstrip("/")
        self.timeout = timeout or settings.geography_timeout_seconds

    async def resolve_location(self, latitude: float, longitude: float) -> ResolvedLocation:
        url = f"{self.base_url}/v1/geo/resolve"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, params={"lat": latitude, "lng": longitude})
                response.raise_for_status()
            data = response.json()
            location = ResolvedLocation(
                country_id=data.get("country_id"),
                region_id=data.get("region_id"),
                city_id=data.get("city_id"),
                zone_id=data.get("zone_id"),
                timezone=data.get("timezone") or settings.default_timezone,
            )
        # ValueError covers non-JSON bodies; AttributeError a JSON body that is not an object
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.warning(
                "Geography lookup failed",
                extra={"lat": latitude, "lng": longitude, "error": str(e)}
            )
            raise GeographyError(details={"lat": latitude, "lng": longitude}) from e

        to_zone(location.timezone)
        return location


def to_zone(tz_name: str) -> ZoneInfo:
    """
    Look up a timezone reported for a location.

    Raises:
        GeographyError: The name is not in the tz database.
    """
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.warning("Unknown location timezone", extra={"timezone": tz_name})
        raise GeographyError("Unknown location timezone", details={"timezone": tz_name}) from e


def get_geography_resolver() -> GeographyResolver:
    """FastAPI dependency returning the geography adapter."""
    return GeographyClient()


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in kilometers
    """
    # Radius of Earth in kilometers
    R = 6371.0

    lat1_rad = math.radians(lat1)
    lon1_rad = math.radians(lon1)
    lat2_rad = math.radians(lat2)
    lon2_rad = math.radians(lon2)

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = math.sin(dlat / 2)**2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def estimate_duration_minutes(distance_km: float, average_speed_kmh: float = None) -> int:
    """Whole minutes to cover distance_km at the configured average speed."""
    speed = average_speed_kmh or settings.average_speed_kmh
    return int(math.ceil(distance_km / speed * 60))
