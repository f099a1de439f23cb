"""
Pricing Administration Service.

CRUD for the rows that hang off a pricing version: configs, time, weather
and event multipliers, zone fees and surge thresholds. Rows may only be
written while their version is a DRAFT; active and archived versions are
immutable. Every mutation is audited with before/after snapshots.
"""

import logging
from dataclasses import dataclass
from typing import Optional, List, Callable, Type, Any, Dict

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ride_pricing.app.core.exceptions import NotFoundError, ValidationError
from ride_pricing.app.models.pricing_config import PricingConfig
from ride_pricing.app.models.multipliers import (
    TimeMultiplier, WeatherMultiplier, EventMultiplier, SurgeThreshold
)
from ride_pricing.app.models.zone_fee import ZoneFee
from ride_pricing.app.schemas.pricing_admin import (
    PricingConfigResponse, TimeMultiplierResponse, WeatherMultiplierResponse,
    EventMultiplierResponse, ZoneFeeResponse, SurgeThresholdResponse
)
from ride_pricing.app.domain.pricing.version_lifecycle import VersionLifecycleManager
from ride_pricing.app.domain.pricing.windows import parse_clock, as_utc
from ride_pricing.app.services.audit import AuditAction, AuditRecorder, LoggingAuditRecorder

logger = logging.getLogger("ride_pricing.admin")


def _validate_pricing_config(values: Dict[str, Any]) -> None:
    low = values.get("surge_min_multiplier")
    high = values.get("surge_max_multiplier")
    if low is not None and high is not None and low > high:
        raise ValidationError(
            "surge_min_multiplier cannot exceed surge_max_multiplier",
            details={"surge_min_multiplier": low, "surge_max_multiplier": high}
        )


def _validate_time_multiplier(values: Dict[str, Any]) -> None:
    days = values.get("days_of_week") or []
    invalid = [day for day in days if not 0 <= day <= 6]
    if invalid:
        raise ValidationError(
            "days_of_week must hold values 0 (Sunday) to 6 (Saturday)",
            details={"invalid_days": invalid}
        )
    for field in ("start_time", "end_time"):
        try:
            parse_clock(values[field])
        except ValueError:
            raise ValidationError(f"{field} must be HH:MM", details={field: values[field]})


def _validate_event_multiplier(values: Dict[str, Any]) -> None:
    if values.get("zone_id") is None and values.get("city_id") is None:
        raise ValidationError("An event must be scoped to a zone or a city")
    if as_utc(values["ends_at"]) < as_utc(values["starts_at"]):
        raise ValidationError(
            "ends_at must not be before starts_at",
            details={"starts_at": str(values["starts_at"]), "ends_at": str(values["ends_at"])}
        )


def _validate_zone_fee(values: Dict[str, Any]) -> None:
    if not values.get("applies_pickup") and not values.get("applies_dropoff"):
        raise ValidationError("A zone fee must apply at pickup, dropoff or both")


def _validate_surge_threshold(values: Dict[str, Any]) -> None:
    low = values["demand_supply_ratio_min"]
    high = values.get("demand_supply_ratio_max")
    if high is not None and high <= low:
        raise ValidationError(
            "demand_supply_ratio_max must be greater than demand_supply_ratio_min",
            details={"demand_supply_ratio_min": low, "demand_supply_ratio_max": high}
        )


@dataclass(frozen=True)
class EntityKind:
    name: str
    response_schema: Type[BaseModel]
    validator: Callable[[Dict[str, Any]], None]


ENTITY_KINDS = {
    PricingConfig: EntityKind("pricing_config", PricingConfigResponse, _validate_pricing_config),
    TimeMultiplier: EntityKind("time_multiplier", TimeMultiplierResponse, _validate_time_multiplier),
    WeatherMultiplier: EntityKind("weather_multiplier", WeatherMultiplierResponse, lambda values: None),
    EventMultiplier: EntityKind("event_multiplier", EventMultiplierResponse, _validate_event_multiplier),
    ZoneFee: EntityKind("zone_fee", ZoneFeeResponse, _validate_zone_fee),
    SurgeThreshold: EntityKind("surge_threshold", SurgeThresholdResponse, _validate_surge_threshold),
}


def _kind(model) -> EntityKind:
    try:
        return ENTITY_KINDS[model]
    except KeyError:
        raise ValueError(f"{model.__name__} is not a versioned pricing entity")


def _snapshot(model, row) -> dict:
    return _kind(model).response_schema.model_validate(row).model_dump(mode="json")


def _column_values(data: BaseModel, exclude_unset: bool = False) -> Dict[str, Any]:
    """
    Schema values ready for assignment to a model.

    Nested models (cancellation tiers, fee schedules) are stored in JSON
    columns, so only those are dumped in JSON mode.
    """
    values = data.model_dump(exclude_unset=exclude_unset)
    for field, value in data.model_dump(mode="json", exclude_unset=exclude_unset).items():
        if isinstance(value, (list, dict)):
            values[field] = value
    return values


class PricingAdminService:

    def __init__(self, audit: Optional[AuditRecorder] = None):
        self.audit = audit or LoggingAuditRecorder()
        self.versions = VersionLifecycleManager(audit=self.audit)

    async def _draft_version(self, db: AsyncSession, version_id: int):
        version = await self.versions.get_version(db, version_id)
        VersionLifecycleManager.ensure_draft(version)
        return version

    async def get(self, db: AsyncSession, model, entity_id: int):
        kind = _kind(model)
        row = await db.get(model, entity_id)
        if not row:
            raise NotFoundError(kind.name.replace("_", " ").capitalize(), entity_id)
        return row

    async def list(self, db: AsyncSession, model, version_id: int) -> List[Any]:
        await self.versions.get_version(db, version_id)
        result = await db.execute(
            select(model).where(model.version_id == version_id).order_by(model.id)
        )
        return result.scalars().all()

    async def create(
        self,
        db: AsyncSession,
        model,
        version_id: int,
        data: BaseModel,
        actor_id: Optional[int] = None
    ):
        """
        Add a row to a draft version.

        Raises:
            NotFoundError: Unknown version.
            StaleVersionError: Version is not a draft.
            ValidationError: Row fails a domain rule.
        """
        kind = _kind(model)
        await self._draft_version(db, version_id)

        values = _column_values(data)
        kind.validator(values)

        row = model(version_id=version_id, **values)
        db.add(row)
        await db.commit()
        await db.refresh(row)

        logger.info(
            "Pricing entity created",
            extra={"entity_type": kind.name, "entity_id": row.id, "version_id": version_id}
        )
        await self.audit.record(
            action=AuditAction.ENTITY_CREATED,
            entity_type=kind.name,
            entity_id=row.id,
            actor_id=actor_id,
            after=_snapshot(model, row)
        )
        return row

    async def update(
        self,
        db: AsyncSession,
        model,
        entity_id: int,
        data: BaseModel,
        actor_id: Optional[int] = None
    ):
        kind = _kind(model)
        row = await self.get(db, model, entity_id)
        await self._draft_version(db, row.version_id)

        changes = _column_values(data, exclude_unset=True)
        # Validate the row as it would look after the update
        merged = {column.name: getattr(row, column.name) for column in model.__table__.columns}
        merged.update(changes)
        kind.validator(merged)

        before = _snapshot(model, row)
        for field, value in changes.items():
            setattr(row, field, value)

        await db.commit()
        await db.refresh(row)

        await self.audit.record(
            action=AuditAction.ENTITY_UPDATED,
            entity_type=kind.name,
            entity_id=row.id,
            actor_id=actor_id,
            before=before,
            after=_snapshot(model, row)
        )
        return row

    async def delete(
        self,
        db: AsyncSession,
        model,
        entity_id: int,
        actor_id: Optional[int] = None
    ) -> None:
        kind = _kind(model)
        row = await self.get(db, model, entity_id)
        await self._draft_version(db, row.version_id)

        before = _snapshot(model, row)
        await db.delete(row)
        await db.commit()

        await self.audit.record(
            action=AuditAction.ENTITY_DELETED,
            entity_type=kind.name,
            entity_id=entity_id,
            actor_id=actor_id,
            before=before
        )
