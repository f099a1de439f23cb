"""
Multiplier Resolvers.

Four independent lookups (time, weather, event, surge), each producing a
single multiplier. A lookup that finds nothing resolves to the neutral
multiplier 1.0; misses are never errors.

Each resolver has a pure `select` step working on already-fetched rows
and an async `resolve` step that fetches rows for a version and location.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_

from ride_pricing.app.models.multipliers import (
    TimeMultiplier, WeatherMultiplier, EventMultiplier, SurgeThreshold
)
from ride_pricing.app.models.pricing_enums import WeatherCondition
from ride_pricing.app.schemas.pricing import ResolvedPricing
from ride_pricing.app.domain.pricing.scope import scope_clause, specificity_of, sort_by_specificity
from ride_pricing.app.domain.pricing.windows import clock_window_contains, day_of_week, buffered_window_contains
from ride_pricing.app.services.geography import ResolvedLocation

logger = logging.getLogger("ride_pricing.pricing")

NEUTRAL_MULTIPLIER = 1.0

# Multiplier tables are scoped down to city level only
MULTIPLIER_LEVELS = ("country_id", "region_id", "city_id")


@dataclass(frozen=True)
class MultiplierStack:
    time: float = NEUTRAL_MULTIPLIER
    weather: float = NEUTRAL_MULTIPLIER
    event: float = NEUTRAL_MULTIPLIER
    surge_raw: float = NEUTRAL_MULTIPLIER
    surge: float = NEUTRAL_MULTIPLIER  # clamped

    @property
    def total(self) -> float:
        return self.time * self.weather * self.event * self.surge


class TimeMultiplierResolver:

    @staticmethod
    def select(rows: Sequence[TimeMultiplier], local_moment: datetime) -> Optional[TimeMultiplier]:
        """
        Pick the multiplier covering the local day and clock time.

        Only the most specific scope with a match is considered; within it
        the highest priority wins.
        """
        dow = day_of_week(local_moment)
        matching = [
            row for row in rows
            if row.is_active
            and dow in (row.days_of_week or [])
            and clock_window_contains(row.start_time, row.end_time, local_moment.time())
        ]
        if not matching:
            return None

        top = max(specificity_of(row) for row in matching)
        candidates = [row for row in matching if specificity_of(row) == top]
        return max(candidates, key=lambda row: (row.priority or 0, -(row.id or 0)))

    @staticmethod
    async def resolve(
        db: AsyncSession,
        version_id: int,
        location: ResolvedLocation,
        local_moment: datetime
    ) -> float:
        result = await db.execute(
            select(TimeMultiplier).where(
                TimeMultiplier.version_id == version_id,
                TimeMultiplier.is_active == True,
                scope_clause(TimeMultiplier, location, MULTIPLIER_LEVELS)
            )
        )
        match = TimeMultiplierResolver.select(result.scalars().all(), local_moment)
        return match.multiplier if match else NEUTRAL_MULTIPLIER


class WeatherMultiplierResolver:

    @staticmethod
    def select(
        rows: Sequence[WeatherMultiplier],
        condition: Optional[WeatherCondition]
    ) -> Optional[WeatherMultiplier]:
        if condition is None:
            return None
        condition = WeatherCondition(condition)
        for row in sort_by_specificity(rows):
            if row.is_active and WeatherCondition(row.weather_condition) == condition:
                return row
        return None

    @staticmethod
    async def resolve(
        db: AsyncSession,
        version_id: int,
        location: ResolvedLocation,
        condition: Optional[WeatherCondition]
    ) -> float:
        if condition is None:
            return NEUTRAL_MULTIPLIER

        result = await db.execute(
            select(WeatherMultiplier).where(
                WeatherMultiplier.version_id == version_id,
                WeatherMultiplier.is_active == True,
                WeatherMultiplier.weather_condition == WeatherCondition(condition),
                scope_clause(WeatherMultiplier, location, MULTIPLIER_LEVELS)
            )
        )
        match = WeatherMultiplierResolver.select(result.scalars().all(), condition)
        return match.multiplier if match else NEUTRAL_MULTIPLIER


class EventMultiplierResolver:

    @staticmethod
    def select(
        rows: Sequence[EventMultiplier],
        location: ResolvedLocation,
        moment: datetime
    ) -> Optional[EventMultiplier]:
        """
        Highest multiplier among events running at the location.

        Overlapping events do not stack.
        """
        running = [
            row for row in rows
            if row.is_active
            and (
                (row.zone_id is not None and row.zone_id == location.zone_id)
                or (row.city_id is not None and row.city_id == location.city_id)
            )
            and buffered_window_contains(
                row.starts_at, row.ends_at,
                row.pre_event_minutes, row.post_event_minutes,
                moment
            )
        ]
        if not running:
            return None
        return max(running, key=lambda row: (row.multiplier, -(row.id or 0)))

    @staticmethod
    async def resolve(
        db: AsyncSession,
        version_id: int,
        location: ResolvedLocation,
        moment: datetime
    ) -> float:
        place_clauses = []
        if location.city_id is not None:
            place_clauses.append(EventMultiplier.city_id == location.city_id)
        if location.zone_id is not None:
            place_clauses.append(EventMultiplier.zone_id == location.zone_id)
        if not place_clauses:
            return NEUTRAL_MULTIPLIER

        result = await db.execute(
            select(EventMultiplier).where(
                EventMultiplier.version_id == version_id,
                EventMultiplier.is_active == True,
                or_(*place_clauses)
            )
        )
        match = EventMultiplierResolver.select(result.scalars().all(), location, moment)
        if match:
            logger.info(
                "Event multiplier applied",
                extra={"event_id": match.id, "event_name": match.event_name, "multiplier": match.multiplier}
            )
        return match.multiplier if match else NEUTRAL_MULTIPLIER


class SurgeMultiplierResolver:

    @staticmethod
    def select(rows: Sequence[SurgeThreshold], ratio: Optional[float]) -> Optional[SurgeThreshold]:
        """
        First band containing the ratio, scanning the most specific scope
        first and lower bands first within a scope.

        Bands are half-open: [ratio_min, ratio_max); a NULL max is unbounded.
        """
        if ratio is None:
            return None

        ordered = sorted(
            (row for row in rows if row.is_active),
            key=lambda row: (-specificity_of(row), row.demand_supply_ratio_min, row.id or 0)
        )
        for row in ordered:
            if ratio < row.demand_supply_ratio_min:
                continue
            if row.demand_supply_ratio_max is None or ratio < row.demand_supply_ratio_max:
                return row
        return None

    @staticmethod
    def clamp(raw: float, pricing: ResolvedPricing) -> float:
        return max(pricing.surge_min_multiplier, min(raw, pricing.surge_max_multiplier))

    @staticmethod
    async def resolve_raw(
        db: AsyncSession,
        version_id: int,
        location: ResolvedLocation,
        ratio: Optional[float]
    ) -> float:
        """Unclamped band multiplier."""
        if ratio is None:
            return NEUTRAL_MULTIPLIER

        result = await db.execute(
            select(SurgeThreshold).where(
                SurgeThreshold.version_id == version_id,
                SurgeThreshold.is_active == True,
                scope_clause(SurgeThreshold, location, MULTIPLIER_LEVELS)
            )
        )
        band = SurgeMultiplierResolver.select(result.scalars().all(), ratio)
        return band.multiplier if band else NEUTRAL_MULTIPLIER


async def resolve_multipliers(
    db: AsyncSession,
    pricing: ResolvedPricing,
    location: ResolvedLocation,
    moment: datetime,
    local_moment: datetime,
    weather_condition: Optional[WeatherCondition] = None,
    demand_supply_ratio: Optional[float] = None
) -> MultiplierStack:
    """Run every multiplier lookup for the pricing's version and location."""
    version_id = pricing.version_id

    time_multiplier = await TimeMultiplierResolver.resolve(db, version_id, location, local_moment)
    weather_multiplier = await WeatherMultiplierResolver.resolve(db, version_id, location, weather_condition)
    event_multiplier = await EventMultiplierResolver.resolve(db, version_id, location, moment)
    surge_raw = await SurgeMultiplierResolver.resolve_raw(db, version_id, location, demand_supply_ratio)

    return MultiplierStack(
        time=time_multiplier,
        weather=weather_multiplier,
        event=event_multiplier,
        surge_raw=surge_raw,
        surge=SurgeMultiplierResolver.clamp(surge_raw, pricing),
    )
