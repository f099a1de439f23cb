"""
Pricing administration tests.

Draft-only writes, domain validation and audit trail.
"""

import pytest
from datetime import datetime, timezone, timedelta
from pydantic import ValidationError as SchemaValidationError

from ride_pricing.app.core.exceptions import NotFoundError, StaleVersionError, ValidationError
from ride_pricing.app.models.pricing_enums import VersionStatus, WeatherCondition
from ride_pricing.app.models.pricing_config import PricingConfig
from ride_pricing.app.models.multipliers import (
    TimeMultiplier, WeatherMultiplier, EventMultiplier, SurgeThreshold
)
from ride_pricing.app.models.zone_fee import ZoneFee
from ride_pricing.app.schemas.pricing import CancellationFeeTier, FeeSchedule
from ride_pricing.app.schemas.pricing_admin import (
    PricingConfigCreate, PricingConfigUpdate, TimeMultiplierCreate, WeatherMultiplierCreate,
    EventMultiplierCreate, EventMultiplierUpdate, ZoneFeeCreate, SurgeThresholdCreate
)
from ride_pricing.app.domain.pricing.pricing_admin import PricingAdminService
from ride_pricing.app.services.audit import AuditAction

from conftest import create_version, CITY_ID, ZONE_ID


@pytest.fixture
def admin(audit):
    return PricingAdminService(audit=audit)


@pytest.mark.asyncio
async def test_create_config_in_draft(db_session, admin, audit, draft_version):
    data = PricingConfigCreate(
        city_id=CITY_ID,
        base_fare=4.0,
        cancellation_fees=[CancellationFeeTier(after_minutes=2, fee=3.0)]
    )

    config = await admin.create(db_session, PricingConfig, draft_version.id, data, actor_id=9)

    assert config.version_id == draft_version.id
    assert config.base_fare == 4.0
    assert config.per_km_rate is None
    assert config.cancellation_fees == [{"after_minutes": 2, "fee": 3.0, "fee_type": "fixed"}]

    entry = audit.entries[-1]
    assert entry["action"] == AuditAction.ENTITY_CREATED
    assert entry["entity_type"] == "pricing_config"
    assert entry["entity_id"] == config.id
    assert entry["actor_id"] == 9
    assert entry["after"]["base_fare"] == 4.0


@pytest.mark.asyncio
async def test_writes_against_active_version_are_rejected(db_session, admin, active_version):
    with pytest.raises(StaleVersionError):
        await admin.create(db_session, PricingConfig, active_version.id, PricingConfigCreate(base_fare=1.0))


@pytest.mark.asyncio
async def test_update_and_delete_rejected_once_archived(db_session, admin):
    version = await create_version(db_session, name="old")
    config = await admin.create(db_session, PricingConfig, version.id, PricingConfigCreate(base_fare=1.0))

    version.status = VersionStatus.ARCHIVED
    await db_session.commit()

    with pytest.raises(StaleVersionError):
        await admin.update(db_session, PricingConfig, config.id, PricingConfigUpdate(base_fare=2.0))
    with pytest.raises(StaleVersionError):
        await admin.delete(db_session, PricingConfig, config.id)


@pytest.mark.asyncio
async def test_update_records_before_and_after(db_session, admin, audit, draft_version):
    config = await admin.create(db_session, PricingConfig, draft_version.id, PricingConfigCreate(base_fare=1.0))

    updated = await admin.update(db_session, PricingConfig, config.id, PricingConfigUpdate(per_km_rate=2.2))

    assert updated.per_km_rate == 2.2
    assert updated.base_fare == 1.0
    entry = audit.entries[-1]
    assert entry["action"] == AuditAction.ENTITY_UPDATED
    assert entry["before"]["per_km_rate"] is None
    assert entry["after"]["per_km_rate"] == 2.2


@pytest.mark.asyncio
async def test_delete(db_session, admin, audit, draft_version):
    fee = await admin.create(
        db_session, ZoneFee, draft_version.id,
        ZoneFeeCreate(zone_id=ZONE_ID, fee_type="toll", amount=2.0,
                      schedule=FeeSchedule(days=[1, 2], start_time="07:00", end_time="09:00"))
    )
    assert fee.schedule == {"days": [1, 2], "start_time": "07:00", "end_time": "09:00"}

    await admin.delete(db_session, ZoneFee, fee.id)

    with pytest.raises(NotFoundError):
        await admin.get(db_session, ZoneFee, fee.id)
    assert audit.entries[-1]["action"] == AuditAction.ENTITY_DELETED
    assert audit.entries[-1]["before"]["fee_type"] == "toll"


@pytest.mark.asyncio
async def test_unknown_version_and_entity(db_session, admin):
    with pytest.raises(NotFoundError):
        await admin.create(db_session, PricingConfig, 999, PricingConfigCreate(base_fare=1.0))
    with pytest.raises(NotFoundError):
        await admin.update(db_session, SurgeThreshold, 999, PricingConfigUpdate())


@pytest.mark.asyncio
async def test_list_rows_of_version(db_session, admin, draft_version):
    await admin.create(db_session, WeatherMultiplier, draft_version.id,
                       WeatherMultiplierCreate(weather_condition=WeatherCondition.RAIN, multiplier=1.2))
    await admin.create(db_session, WeatherMultiplier, draft_version.id,
                       WeatherMultiplierCreate(weather_condition=WeatherCondition.SNOW, multiplier=1.5))

    rows = await admin.list(db_session, WeatherMultiplier, draft_version.id)

    assert [row.weather_condition for row in rows] == [WeatherCondition.RAIN, WeatherCondition.SNOW]


@pytest.mark.asyncio
async def test_surge_bounds_validated(db_session, admin, draft_version):
    with pytest.raises(ValidationError):
        await admin.create(db_session, PricingConfig, draft_version.id,
                           PricingConfigCreate(surge_min_multiplier=3.0, surge_max_multiplier=2.0))


@pytest.mark.asyncio
async def test_surge_band_validated(db_session, admin, draft_version):
    with pytest.raises(ValidationError):
        await admin.create(db_session, SurgeThreshold, draft_version.id,
                           SurgeThresholdCreate(demand_supply_ratio_min=2.0, demand_supply_ratio_max=1.5,
                                                multiplier=1.5))


@pytest.mark.asyncio
async def test_time_multiplier_days_validated(db_session, admin, draft_version):
    with pytest.raises(ValidationError):
        await admin.create(db_session, TimeMultiplier, draft_version.id,
                           TimeMultiplierCreate(name="bad", days_of_week=[1, 7],
                                                start_time="07:00", end_time="09:00", multiplier=1.2))


@pytest.mark.asyncio
async def test_event_window_validated(db_session, admin, draft_version):
    starts_at = datetime(2024, 7, 4, 18, 0, tzinfo=timezone.utc)

    with pytest.raises(ValidationError):
        await admin.create(db_session, EventMultiplier, draft_version.id,
                           EventMultiplierCreate(city_id=CITY_ID, event_name="Fireworks",
                                                 starts_at=starts_at, ends_at=starts_at - timedelta(hours=1),
                                                 multiplier=1.5))
    with pytest.raises(ValidationError):
        await admin.create(db_session, EventMultiplier, draft_version.id,
                           EventMultiplierCreate(event_name="Nowhere", starts_at=starts_at,
                                                 ends_at=starts_at + timedelta(hours=1), multiplier=1.5))


@pytest.mark.asyncio
async def test_event_update_checks_stored_window(db_session, admin, draft_version):
    starts_at = datetime(2024, 7, 4, 18, 0, tzinfo=timezone.utc)
    event = await admin.create(db_session, EventMultiplier, draft_version.id,
                               EventMultiplierCreate(city_id=CITY_ID, event_name="Fireworks",
                                                     starts_at=starts_at, ends_at=starts_at + timedelta(hours=3),
                                                     multiplier=1.5))

    with pytest.raises(ValidationError):
        await admin.update(db_session, EventMultiplier, event.id,
                           EventMultiplierUpdate(ends_at=starts_at - timedelta(minutes=5)))


@pytest.mark.asyncio
async def test_zone_fee_needs_pickup_or_dropoff(db_session, admin, draft_version):
    with pytest.raises(ValidationError):
        await admin.create(db_session, ZoneFee, draft_version.id,
                           ZoneFeeCreate(zone_id=ZONE_ID, fee_type="toll", amount=1.0,
                                         applies_pickup=False, applies_dropoff=False))


@pytest.mark.parametrize("days", [[7], [-1, 2]])
def test_zone_fee_schedule_days_validated(days):
    with pytest.raises(SchemaValidationError):
        ZoneFeeCreate(zone_id=ZONE_ID, fee_type="toll", amount=2.0,
                      schedule={"days": days, "start_time": "07:00", "end_time": "09:00"})
