"""
Pricing Config Store.

Read access to the active version and to the PricingConfig rows that take
part in resolving a location.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_

from ride_pricing.app.core.exceptions import ConfigurationError
from ride_pricing.app.models.pricing_enums import VersionStatus
from ride_pricing.app.models.pricing_version import PricingConfigVersion
from ride_pricing.app.models.pricing_config import PricingConfig
from ride_pricing.app.domain.pricing.scope import scope_clause, sort_by_specificity
from ride_pricing.app.services.geography import ResolvedLocation

logger = logging.getLogger("ride_pricing.pricing")


class ConfigStore:

    @staticmethod
    async def get_active_version(db: AsyncSession, now: Optional[datetime] = None) -> PricingConfigVersion:
        """
        Find the active, currently effective pricing version.

        Raises:
            ConfigurationError: If no version is active right now.
        """
        now = now or datetime.now(timezone.utc)

        query = select(PricingConfigVersion).where(
            PricingConfigVersion.status == VersionStatus.ACTIVE,
            or_(PricingConfigVersion.effective_from.is_(None), PricingConfigVersion.effective_from <= now),
            or_(PricingConfigVersion.effective_until.is_(None), PricingConfigVersion.effective_until > now)
        ).order_by(PricingConfigVersion.effective_from.desc().nulls_last()).limit(1)

        result = await db.execute(query)
        version = result.scalar_one_or_none()

        if not version:
            logger.error("No active pricing version", extra={"at": now.isoformat()})
            raise ConfigurationError("No active pricing version found. Cannot price rides.")

        return version

    @staticmethod
    async def fetch_configs(
        db: AsyncSession,
        version_id: int,
        location: ResolvedLocation,
        ride_type_id: Optional[int] = None
    ) -> List[PricingConfig]:
        """
        Fetch every config row that applies to the location and ride type.

        Returns rows ordered most specific first (zone > city > region >
        country > global), ride-type-specific before generic within a level.
        """
        if ride_type_id is None:
            ride_type_clause = PricingConfig.ride_type_id.is_(None)
        else:
            ride_type_clause = or_(
                PricingConfig.ride_type_id.is_(None),
                PricingConfig.ride_type_id == ride_type_id
            )

        query = select(PricingConfig).where(
            PricingConfig.version_id == version_id,
            PricingConfig.is_active == True,
            scope_clause(PricingConfig, location),
            ride_type_clause
        )

        result = await db.execute(query)
        return sort_by_specificity(result.scalars().all())
