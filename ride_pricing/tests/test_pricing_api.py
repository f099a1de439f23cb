"""
Pricing API tests.

Exercise the HTTP surface end to end against the in-memory database and
the static geography stub.
"""

import logging

import pytest

from ride_pricing.app.models.pricing_enums import WeatherCondition
from ride_pricing.app.models.pricing_config import PricingConfig
from ride_pricing.app.models.multipliers import WeatherMultiplier, SurgeThreshold
from ride_pricing.app.models.zone_fee import ZoneFee, PricingZone
from ride_pricing.app.services.geography import ResolvedLocation

from conftest import (
    COUNTRY_ID, CITY_ID, ZONE_ID, AIRPORT_ZONE_ID, DOWNTOWN, AIRPORT, MIDTOWN
)


def trip(pickup=DOWNTOWN, dropoff=AIRPORT, **extra):
    body = {
        "pickup_latitude": pickup[0],
        "pickup_longitude": pickup[1],
        "dropoff_latitude": dropoff[0],
        "dropoff_longitude": dropoff[1],
        "requested_at": "2024-03-06T12:00:00Z",
    }
    body.update(extra)
    return body


@pytest.fixture
async def priced_city(db_session, active_version):
    db_session.add_all([
        PricingConfig(version_id=active_version.id, base_fare=2.5, tax_rate_pct=0.0),
        PricingConfig(version_id=active_version.id, country_id=COUNTRY_ID, per_km_rate=1.2),
        PricingConfig(version_id=active_version.id, city_id=CITY_ID, per_minute_rate=0.3,
                      surge_max_multiplier=2.0),
        PricingConfig(version_id=active_version.id, city_id=CITY_ID, zone_id=ZONE_ID, base_fare=3.5),
        WeatherMultiplier(version_id=active_version.id, city_id=CITY_ID,
                          weather_condition=WeatherCondition.RAIN, multiplier=1.2),
        SurgeThreshold(version_id=active_version.id, demand_supply_ratio_min=0.0,
                       demand_supply_ratio_max=1.5, multiplier=1.0),
        SurgeThreshold(version_id=active_version.id, demand_supply_ratio_min=1.5,
                       demand_supply_ratio_max=None, multiplier=3.0),
        PricingZone(id=AIRPORT_ZONE_ID, city_id=CITY_ID, name="JFK Airport"),
        ZoneFee(version_id=active_version.id, zone_id=AIRPORT_ZONE_ID, fee_type="airport_fee",
                amount=5.0, applies_pickup=True, applies_dropoff=True),
    ])
    await db_session.commit()
    return active_version


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health", headers={"X-Correlation-ID": "abc-123"})

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Correlation-ID"] == "abc-123"
    assert "X-Process-Time" in response.headers


@pytest.mark.asyncio
async def test_estimate(client, priced_city):
    response = await client.post("/v1/pricing/estimate", json=trip(
        weather_condition="rain", demand_supply_ratio=2.4
    ))

    assert response.status_code == 200
    data = response.json()
    fare = data["fare_breakdown"]

    assert fare["base_fare"] == 3.5
    assert fare["pricing_version_id"] == priced_city.id
    assert fare["weather_multiplier"] == 1.2
    # Raw band 3.0 clamped by the city's surge cap
    assert fare["surge_multiplier"] == 2.0
    assert fare["total_multiplier"] == pytest.approx(2.4)
    assert fare["zone_fees_total"] == 5.0
    assert fare["zone_fees_breakdown"] == [
        {"zone_id": AIRPORT_ZONE_ID, "zone_name": "JFK Airport", "fee_type": "airport_fee", "amount": 5.0}
    ]
    assert data["estimated_fare"] == fare["total_fare"]
    assert data["surge_multiplier"] == 2.0
    assert data["distance_km"] > 0
    assert data["estimated_minutes"] == fare["duration_min"]
    assert data["formatted_fare"].startswith("$")
    assert fare["distance_charge"] == pytest.approx(fare["distance_km"] * 1.2, abs=0.01)


@pytest.mark.asyncio
async def test_estimate_without_active_version(client, geography):
    response = await client.post("/v1/pricing/estimate", json=trip())

    assert response.status_code == 503
    assert response.json()["error_code"] == "ERR_PRICING_CONFIG"
    assert geography.calls == []


@pytest.mark.asyncio
async def test_estimate_rejects_bad_coordinates(client, priced_city):
    response = await client.post("/v1/pricing/estimate", json=trip(pickup=(123.0, 0.0)))

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_validate_price_in_band(client, priced_city):
    estimate = (await client.post("/v1/pricing/estimate", json=trip())).json()
    total = estimate["estimated_fare"]

    response = await client.post("/v1/pricing/validate", json=trip(negotiated_price=total))

    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["estimated_price"] == total
    assert data["variance_pct"] == 0.0


@pytest.mark.asyncio
async def test_validate_price_out_of_band(client, priced_city):
    response = await client.post("/v1/pricing/validate", json=trip(negotiated_price=1.0))

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "ERR_PRICE_RANGE"
    details = body["details"]
    assert details["min_price"] == pytest.approx(details["estimated_fare"] * 0.7, abs=0.01)
    assert details["max_price"] == pytest.approx(details["estimated_fare"] * 1.5, abs=0.01)


@pytest.mark.asyncio
async def test_resolved_config(client, priced_city):
    response = await client.get("/v1/pricing/config", params={
        "latitude": DOWNTOWN[0], "longitude": DOWNTOWN[1]
    })

    assert response.status_code == 200
    data = response.json()
    assert data["base_fare"] == 3.5
    assert data["per_km_rate"] == 1.2
    assert data["per_minute_rate"] == 0.3
    assert data["zone_id"] == ZONE_ID
    assert data["inheritance_chain"][0] == f"zone:{ZONE_ID}"
    assert data["inheritance_chain"][-1] == "defaults"


@pytest.mark.asyncio
async def test_resolved_config_outside_zone(client, priced_city):
    response = await client.get("/v1/pricing/config", params={
        "latitude": MIDTOWN[0], "longitude": MIDTOWN[1]
    })

    assert response.json()["base_fare"] == 2.5


@pytest.mark.asyncio
async def test_cancellation_fee(client, priced_city):
    response = await client.post("/v1/pricing/cancellation-fee", json={
        "latitude": DOWNTOWN[0],
        "longitude": DOWNTOWN[1],
        "minutes_since_request": 3,
        "estimated_fare": 25.0,
    })

    assert response.status_code == 200
    assert response.json()["cancellation_fee"] == 5.0


@pytest.mark.asyncio
async def test_surge_info(client, priced_city):
    response = await client.get("/v1/pricing/surge", params={
        "latitude": DOWNTOWN[0], "longitude": DOWNTOWN[1], "demand_supply_ratio": 1.8
    })

    assert response.status_code == 200
    data = response.json()
    assert data["raw_multiplier"] == 3.0
    assert data["surge_multiplier"] == 2.0
    assert data["surge_max_multiplier"] == 2.0
    assert data["is_surge_active"] is True


@pytest.mark.asyncio
async def test_surge_info_without_ratio(client, priced_city):
    response = await client.get("/v1/pricing/surge", params={
        "latitude": DOWNTOWN[0], "longitude": DOWNTOWN[1]
    })

    data = response.json()
    assert data["surge_multiplier"] == 1.0
    assert data["is_surge_active"] is False


@pytest.mark.asyncio
async def test_estimate_with_unknown_pickup_timezone(client, priced_city, geography):
    geography.locations[DOWNTOWN] = ResolvedLocation(COUNTRY_ID, None, CITY_ID, ZONE_ID, "Mars/Olympus")

    response = await client.post("/v1/pricing/estimate", json=trip())

    assert response.status_code == 502
    body = response.json()
    assert body["error_code"] == "ERR_GEOGRAPHY"
    assert body["details"]["timezone"] == "Mars/Olympus"


@pytest.mark.asyncio
async def test_pricing_version_is_traced(client, priced_city, caplog):
    caplog.set_level(logging.INFO, logger="ride_pricing")

    response = await client.post("/v1/pricing/estimate", json=trip(),
                                 headers={"X-Correlation-ID": "trace-1"})

    assert response.headers["X-Pricing-Version"] == str(priced_city.id)
    served = [r for r in caplog.records if r.getMessage() == "Pricing request served"]
    assert served[-1].pricing_version_id == priced_city.id
    assert served[-1].correlation_id == "trace-1"


@pytest.mark.asyncio
async def test_health_carries_no_pricing_version(client):
    response = await client.get("/health")

    assert "X-Pricing-Version" not in response.headers
