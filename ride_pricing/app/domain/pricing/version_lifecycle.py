"""
Pricing Version Lifecycle.

Governs DRAFT -> ACTIVE -> ARCHIVED transitions.

Activation archives the previously active version and activates the new
one in a single transaction, so readers never observe zero or two active
versions. The partial unique index on status='ACTIVE' backs this at the
storage level.
"""

import copy
import logging
from datetime import datetime, timezone
from typing import Optional, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError

from ride_pricing.app.core.exceptions import (
    ActivationConflictError, NotFoundError, StaleVersionError, ValidationError
)
from ride_pricing.app.models.pricing_enums import VersionStatus
from ride_pricing.app.models.pricing_version import PricingConfigVersion
from ride_pricing.app.models.pricing_config import PricingConfig
from ride_pricing.app.models.multipliers import (
    TimeMultiplier, WeatherMultiplier, EventMultiplier, SurgeThreshold
)
from ride_pricing.app.models.zone_fee import ZoneFee
from ride_pricing.app.schemas.pricing_admin import VersionCreate, VersionUpdate, VersionResponse
from ride_pricing.app.domain.pricing.config_store import ConfigStore
from ride_pricing.app.services.audit import AuditAction, AuditRecorder, LoggingAuditRecorder
from ride_pricing.app.services.cache import PricingCache

logger = logging.getLogger("ride_pricing.pricing")

ENTITY_TYPE = "pricing_config_version"

# Every table whose rows belong to a version
VERSIONED_MODELS = (
    PricingConfig, TimeMultiplier, WeatherMultiplier, EventMultiplier, ZoneFee, SurgeThreshold
)

# Columns regenerated for cloned rows
CLONE_SKIP_COLUMNS = {"id", "version_id", "created_at", "updated_at"}


def _snapshot(version: PricingConfigVersion) -> dict:
    return VersionResponse.model_validate(version).model_dump(mode="json")


def _validate_window(effective_from: Optional[datetime], effective_until: Optional[datetime]):
    if effective_from and effective_until and effective_until <= effective_from:
        raise ValidationError(
            "effective_until must be after effective_from",
            details={
                "effective_from": effective_from.isoformat(),
                "effective_until": effective_until.isoformat()
            }
        )


class VersionLifecycleManager:

    def __init__(self, audit: Optional[AuditRecorder] = None, cache: Optional[PricingCache] = None):
        self.audit = audit or LoggingAuditRecorder()
        self.cache = cache

    @staticmethod
    def ensure_draft(version: PricingConfigVersion) -> None:
        """
        Raises:
            StaleVersionError: If the version is not a draft.
        """
        if version.status != VersionStatus.DRAFT:
            raise StaleVersionError(version.id, VersionStatus(version.status).value)

    async def get_version(self, db: AsyncSession, version_id: int) -> PricingConfigVersion:
        version = await db.get(PricingConfigVersion, version_id)
        if not version:
            raise NotFoundError("Pricing version", version_id)
        return version

    async def get_active_version(self, db: AsyncSession) -> PricingConfigVersion:
        return await ConfigStore.get_active_version(db)

    async def list_versions(
        self,
        db: AsyncSession,
        status: Optional[VersionStatus] = None,
        page: int = 1,
        page_size: int = 50
    ) -> Tuple[List[PricingConfigVersion], int]:
        """Versions, newest first, with the total count for pagination."""
        if page < 1 or page_size < 1:
            raise ValidationError(
                "page and page_size must be at least 1",
                details={"page": page, "page_size": page_size}
            )

        count_query = select(func.count(PricingConfigVersion.id))
        query = select(PricingConfigVersion)
        if status:
            count_query = count_query.where(PricingConfigVersion.status == status)
            query = query.where(PricingConfigVersion.status == status)

        total = (await db.execute(count_query)).scalar()

        offset = (page - 1) * page_size
        result = await db.execute(
            query.order_by(PricingConfigVersion.id.desc()).offset(offset).limit(page_size)
        )
        return result.scalars().all(), total

    async def create_version(
        self,
        db: AsyncSession,
        data: VersionCreate,
        actor_id: Optional[int] = None
    ) -> PricingConfigVersion:
        _validate_window(data.effective_from, data.effective_until)

        version = PricingConfigVersion(
            name=data.name,
            description=data.description,
            status=VersionStatus.DRAFT,
            effective_from=data.effective_from,
            effective_until=data.effective_until,
            created_by=actor_id
        )
        db.add(version)
        await db.commit()
        await db.refresh(version)

        await self.audit.record(
            action=AuditAction.VERSION_CREATED,
            entity_type=ENTITY_TYPE,
            entity_id=version.id,
            actor_id=actor_id,
            after=_snapshot(version)
        )
        return version

    async def update_version(
        self,
        db: AsyncSession,
        version_id: int,
        data: VersionUpdate,
        actor_id: Optional[int] = None
    ) -> PricingConfigVersion:
        version = await self.get_version(db, version_id)
        self.ensure_draft(version)

        update_data = data.model_dump(exclude_unset=True)
        _validate_window(
            update_data.get("effective_from", version.effective_from),
            update_data.get("effective_until", version.effective_until)
        )

        before = _snapshot(version)
        for field, value in update_data.items():
            setattr(version, field, value)

        await db.commit()
        await db.refresh(version)

        await self.audit.record(
            action=AuditAction.VERSION_UPDATED,
            entity_type=ENTITY_TYPE,
            entity_id=version.id,
            actor_id=actor_id,
            before=before,
            after=_snapshot(version)
        )
        return version

    async def activate_version(
        self,
        db: AsyncSession,
        version_id: int,
        actor_id: Optional[int] = None
    ) -> PricingConfigVersion:
        """
        Make a draft the single active version.

        The previously active version (if any) is archived in the same
        transaction.

        Raises:
            NotFoundError: Unknown version.
            StaleVersionError: Version is not a draft.
            ValidationError: Version's effective window already ended.
        """
        version = await self.get_version(db, version_id)
        self.ensure_draft(version)

        now = datetime.now(timezone.utc)
        if version.effective_until is not None:
            until = version.effective_until
            if until.tzinfo is None:
                until = until.replace(tzinfo=timezone.utc)
            if until <= now:
                raise ValidationError(
                    "Cannot activate a version whose effective window has ended",
                    details={"version_id": version.id, "effective_until": until.isoformat()}
                )

        before = _snapshot(version)

        try:
            previous_ids = (await db.execute(
                select(PricingConfigVersion.id).where(PricingConfigVersion.status == VersionStatus.ACTIVE)
            )).scalars().all()

            # Deactivate first so the single-active index never sees two rows
            await db.execute(
                update(PricingConfigVersion)
                .where(PricingConfigVersion.status == VersionStatus.ACTIVE)
                .values(status=VersionStatus.ARCHIVED, archived_at=now)
            )

            version.status = VersionStatus.ACTIVE
            version.activated_at = now
            version.activated_by = actor_id

            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.warning("Pricing version activation lost a race", extra={"version_id": version_id})
            raise ActivationConflictError(version_id) from e
        except Exception:
            await db.rollback()
            logger.exception("Pricing version activation failed", extra={"version_id": version_id})
            raise

        await db.refresh(version)

        logger.info(
            "Pricing version activated",
            extra={"version_id": version.id, "archived_version_ids": list(previous_ids), "actor_id": actor_id}
        )

        if self.cache:
            await self.cache.invalidate()

        for previous_id in previous_ids:
            await self.audit.record(
                action=AuditAction.VERSION_ARCHIVED,
                entity_type=ENTITY_TYPE,
                entity_id=previous_id,
                actor_id=actor_id,
                reason=f"superseded by version {version.id}"
            )
        await self.audit.record(
            action=AuditAction.VERSION_ACTIVATED,
            entity_type=ENTITY_TYPE,
            entity_id=version.id,
            actor_id=actor_id,
            before=before,
            after=_snapshot(version)
        )
        return version

    async def archive_version(
        self,
        db: AsyncSession,
        version_id: int,
        actor_id: Optional[int] = None
    ) -> PricingConfigVersion:
        """
        Archive a draft or active version.

        Archiving the active version leaves no active version; pricing
        requests then fail with ConfigurationError until another version
        is activated.
        """
        version = await self.get_version(db, version_id)
        if version.status == VersionStatus.ARCHIVED:
            raise StaleVersionError(version.id, VersionStatus.ARCHIVED.value)

        was_active = version.status == VersionStatus.ACTIVE
        before = _snapshot(version)

        version.status = VersionStatus.ARCHIVED
        version.archived_at = datetime.now(timezone.utc)
        await db.commit()
        await db.refresh(version)

        if was_active:
            logger.warning("Active pricing version archived", extra={"version_id": version.id})
            if self.cache:
                await self.cache.invalidate()

        await self.audit.record(
            action=AuditAction.VERSION_ARCHIVED,
            entity_type=ENTITY_TYPE,
            entity_id=version.id,
            actor_id=actor_id,
            before=before,
            after=_snapshot(version)
        )
        return version

    async def clone_version(
        self,
        db: AsyncSession,
        source_id: int,
        name: str,
        actor_id: Optional[int] = None,
        description: Optional[str] = None
    ) -> PricingConfigVersion:
        """
        Copy a version and every row that belongs to it into a new draft.

        This is how an active (immutable) version gets edited.
        """
        source = await self.get_version(db, source_id)

        clone = PricingConfigVersion(
            name=name,
            description=description if description is not None else source.description,
            status=VersionStatus.DRAFT,
            cloned_from_id=source.id,
            created_by=actor_id
        )
        db.add(clone)
        await db.flush()

        copied = {}
        for model in VERSIONED_MODELS:
            result = await db.execute(select(model).where(model.version_id == source.id))
            rows = result.scalars().all()
            for row in rows:
                values = {
                    column.name: copy.deepcopy(getattr(row, column.name))
                    for column in model.__table__.columns
                    if column.name not in CLONE_SKIP_COLUMNS
                }
                db.add(model(version_id=clone.id, **values))
            copied[model.__tablename__] = len(rows)

        await db.commit()
        await db.refresh(clone)

        logger.info(
            "Pricing version cloned",
            extra={"source_version_id": source.id, "version_id": clone.id, "rows": copied}
        )

        await self.audit.record(
            action=AuditAction.VERSION_CLONED,
            entity_type=ENTITY_TYPE,
            entity_id=clone.id,
            actor_id=actor_id,
            after=_snapshot(clone),
            reason=f"cloned from version {source.id}"
        )
        return clone
