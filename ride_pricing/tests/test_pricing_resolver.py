"""
Pricing resolution tests.

Cascading overrides across the geographic hierarchy, defaults, and the
active version lookup.
"""

import pytest

from ride_pricing.app.core.exceptions import ConfigurationError
from ride_pricing.app.models.pricing_enums import VersionStatus
from ride_pricing.app.models.pricing_config import PricingConfig
from ride_pricing.app.domain.pricing.config_store import ConfigStore
from ride_pricing.app.domain.pricing.pricing_resolver import (
    PricingResolver, DEFAULT_PRICING, PRICING_FIELDS
)
from ride_pricing.app.domain.pricing.scope import specificity_of, scope_label
from ride_pricing.app.services.geography import ResolvedLocation

from conftest import create_version, COUNTRY_ID, REGION_ID, CITY_ID, OTHER_CITY_ID, ZONE_ID

LOCATION = ResolvedLocation(COUNTRY_ID, REGION_ID, CITY_ID, ZONE_ID, "UTC")


def make_config(id, **fields):
    """Transient config row; every pricing field defaults to NULL."""
    values = {field: None for field in PRICING_FIELDS}
    values.update(
        id=id, version_id=1, country_id=None, region_id=None, city_id=None,
        zone_id=None, ride_type_id=None, is_active=True
    )
    values.update(fields)
    return PricingConfig(**values)


def test_scope_specificity():
    assert specificity_of(make_config(1)) == 0
    assert specificity_of(make_config(2, country_id=COUNTRY_ID)) == 1
    assert specificity_of(make_config(3, country_id=COUNTRY_ID, region_id=REGION_ID)) == 2
    assert specificity_of(make_config(4, city_id=CITY_ID)) == 3
    assert specificity_of(make_config(5, city_id=CITY_ID, zone_id=ZONE_ID)) == 4
    assert scope_label(make_config(6, zone_id=ZONE_ID, ride_type_id=2)) == f"zone:{ZONE_ID}/ride_type:2"


BROADER_LEVELS = {
    "global": dict(base_fare=1.5, per_km_rate=0.9),
    "country": dict(country_id=COUNTRY_ID, base_fare=2.0, per_km_rate=1.0),
    "region": dict(country_id=COUNTRY_ID, region_id=REGION_ID, base_fare=2.5, per_km_rate=1.1),
    "city": dict(country_id=COUNTRY_ID, region_id=REGION_ID, city_id=CITY_ID, base_fare=3.5, per_km_rate=1.2),
}


@pytest.mark.parametrize("levels", [
    ("global", "country", "region", "city"),
    ("country",),
    ("region",),
    ("city",),
    ("global",),
    ("country", "region"),
    ("country", "city"),
    ("global", "region"),
    (),
])
def test_zone_field_wins_over_broader_levels(levels):
    configs = [make_config(i, **BROADER_LEVELS[level]) for i, level in enumerate(levels, start=1)]
    configs.append(make_config(99, country_id=COUNTRY_ID, city_id=CITY_ID, zone_id=ZONE_ID, base_fare=4.0))

    pricing = PricingResolver.merge(configs, 1, LOCATION)

    assert pricing.base_fare == 4.0
    assert pricing.inheritance_chain[0] == f"zone:{ZONE_ID}"
    # The zone row leaves per_km_rate to the most specific broader level
    if levels:
        assert pricing.per_km_rate == BROADER_LEVELS[levels[-1]]["per_km_rate"]
    else:
        assert pricing.per_km_rate == PricingResolver.merge([], 1, LOCATION).per_km_rate


def test_merge_ignores_input_order():
    zone = make_config(4, zone_id=ZONE_ID, base_fare=4.0)
    country = make_config(1, country_id=COUNTRY_ID, base_fare=2.0)

    assert PricingResolver.merge([country, zone], 1, LOCATION).base_fare == 4.0
    assert PricingResolver.merge([zone, country], 1, LOCATION).base_fare == 4.0


def test_null_fields_inherit_per_field():
    configs = [
        make_config(1, base_fare=3.0, per_km_rate=1.2, tax_rate_pct=8.0),
        make_config(2, city_id=CITY_ID, per_km_rate=2.0),
        make_config(3, zone_id=ZONE_ID, minimum_fare=9.0),
    ]

    pricing = PricingResolver.merge(configs, 1, LOCATION)

    assert pricing.minimum_fare == 9.0
    assert pricing.per_km_rate == 2.0
    assert pricing.base_fare == 3.0
    assert pricing.tax_rate_pct == 8.0
    assert pricing.inheritance_chain == [f"zone:{ZONE_ID}", f"city:{CITY_ID}", "global", "defaults"]


def test_no_configs_resolves_to_defaults_exactly():
    pricing = PricingResolver.merge([], 7, LOCATION)

    resolved = pricing.model_dump(mode="json", include=set(PRICING_FIELDS))
    assert resolved == DEFAULT_PRICING
    assert pricing.inheritance_chain == ["defaults"]
    assert pricing.version_id == 7
    assert pricing.zone_id == ZONE_ID


def test_ride_type_row_wins_within_level():
    configs = [
        make_config(1, city_id=CITY_ID, base_fare=3.0),
        make_config(2, city_id=CITY_ID, ride_type_id=5, base_fare=6.0),
    ]

    assert PricingResolver.merge(configs, 1, LOCATION, ride_type_id=5).base_fare == 6.0


def test_empty_cancellation_schedule_inherits():
    configs = [
        make_config(1, cancellation_fees=[{"after_minutes": 3, "fee": 4.0, "fee_type": "fixed"}]),
        make_config(2, zone_id=ZONE_ID, cancellation_fees=[]),
    ]

    pricing = PricingResolver.merge(configs, 1, LOCATION)

    assert len(pricing.cancellation_fees) == 1
    assert pricing.cancellation_fees[0].after_minutes == 3


def test_merge_does_not_alias_row_values():
    tiers = [{"after_minutes": 1, "fee": 2.0, "fee_type": "fixed"}]
    pricing = PricingResolver.merge([make_config(1, cancellation_fees=tiers)], 1, LOCATION)

    tiers.append({"after_minutes": 9, "fee": 9.0, "fee_type": "fixed"})

    assert len(pricing.cancellation_fees) == 1


@pytest.mark.asyncio
async def test_no_active_version_raises(db_session):
    await create_version(db_session, name="draft only")

    with pytest.raises(ConfigurationError) as exc:
        await ConfigStore.get_active_version(db_session)

    assert exc.value.status_code == 503
    assert exc.value.error_code == "ERR_PRICING_CONFIG"


@pytest.mark.asyncio
async def test_resolve_reads_only_matching_scopes(db_session, active_version):
    db_session.add_all([
        PricingConfig(version_id=active_version.id, base_fare=2.0, booking_fee=0.5),
        PricingConfig(version_id=active_version.id, country_id=COUNTRY_ID, region_id=REGION_ID,
                      city_id=CITY_ID, per_km_rate=1.8),
        PricingConfig(version_id=active_version.id, country_id=COUNTRY_ID, city_id=OTHER_CITY_ID,
                      per_km_rate=9.9, base_fare=9.9),
        PricingConfig(version_id=active_version.id, country_id=COUNTRY_ID, region_id=REGION_ID,
                      city_id=CITY_ID, zone_id=ZONE_ID, base_fare=4.5),
        PricingConfig(version_id=active_version.id, country_id=COUNTRY_ID, region_id=REGION_ID,
                      city_id=CITY_ID, zone_id=ZONE_ID, base_fare=99.0, is_active=False),
    ])
    await db_session.commit()

    pricing = await PricingResolver.resolve(db_session, LOCATION)

    assert pricing.version_id == active_version.id
    assert pricing.base_fare == 4.5
    assert pricing.per_km_rate == 1.8
    assert pricing.booking_fee == 0.5
    assert pricing.per_minute_rate == DEFAULT_PRICING["per_minute_rate"]


@pytest.mark.asyncio
async def test_resolve_ignores_other_versions(db_session, active_version):
    draft = await create_version(db_session, name="next")
    db_session.add_all([
        PricingConfig(version_id=active_version.id, base_fare=3.3),
        PricingConfig(version_id=draft.id, base_fare=7.7),
    ])
    await db_session.commit()

    pricing = await PricingResolver.resolve(db_session, LOCATION)

    assert pricing.base_fare == 3.3


@pytest.mark.asyncio
async def test_generic_request_skips_ride_type_rows(db_session, active_version):
    db_session.add_all([
        PricingConfig(version_id=active_version.id, city_id=CITY_ID, base_fare=3.0),
        PricingConfig(version_id=active_version.id, city_id=CITY_ID, ride_type_id=2, base_fare=8.0),
    ])
    await db_session.commit()

    generic = await PricingResolver.resolve(db_session, LOCATION)
    premium = await PricingResolver.resolve(db_session, LOCATION, ride_type_id=2)

    assert generic.base_fare == 3.0
    assert premium.base_fare == 8.0
