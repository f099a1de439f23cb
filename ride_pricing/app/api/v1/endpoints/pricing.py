"""
Pricing API Endpoints.

Fare estimates, surge lookups, negotiated price checks, resolved pricing
and cancellation fees.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ride_pricing.app.db.session import get_db
from ride_pricing.app.core.dependencies import get_pricing_service
from ride_pricing.app.domain.pricing.pricing_service import PricingService
from ride_pricing.app.schemas.pricing import (
    EstimateRequest, EstimateResponse, ValidatePriceRequest, ValidatePriceResponse,
    CancellationFeeRequest, CancellationFeeResponse, SurgeInfoResponse, ResolvedPricing
)

router = APIRouter(prefix="/pricing", tags=["Pricing"])


@router.post("/estimate", response_model=EstimateResponse)
async def estimate_fare(
    request: EstimateRequest,
    http_request: Request,
    service: PricingService = Depends(get_pricing_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Estimate the fare for a trip.

    Returns the itemized fare breakdown under the active pricing version.
    """
    fare = await service.estimate(db, request)
    http_request.state.pricing_version_id = fare.pricing_version_id

    return EstimateResponse(
        currency=fare.currency,
        estimated_fare=fare.total_fare,
        minimum_fare=fare.minimum_fare,
        surge_multiplier=fare.surge_multiplier,
        distance_km=fare.distance_km,
        estimated_minutes=fare.duration_min,
        fare_breakdown=fare,
        formatted_fare=service.currency.format_amount(fare.total_fare),
    )


@router.get("/surge", response_model=SurgeInfoResponse)
async def get_surge(
    http_request: Request,
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    demand_supply_ratio: Optional[float] = Query(None, ge=0),
    service: PricingService = Depends(get_pricing_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the surge multiplier in effect at a point.
    """
    surge = await service.get_surge_info(db, latitude, longitude, demand_supply_ratio)
    http_request.state.pricing_version_id = surge.pricing_version_id
    return surge


@router.post("/validate", response_model=ValidatePriceResponse)
async def validate_price(
    request: ValidatePriceRequest,
    http_request: Request,
    service: PricingService = Depends(get_pricing_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Validate a negotiated price against the estimate.

    Prices outside the allowed band are rejected with ERR_PRICE_RANGE and
    the band in the error details.
    """
    fare = await service.validate_negotiated_price(db, request, request.negotiated_price)
    http_request.state.pricing_version_id = fare.pricing_version_id

    variance_pct = 0.0
    if fare.total_fare:
        variance_pct = (fare.negotiated_fare - fare.total_fare) / fare.total_fare * 100

    return ValidatePriceResponse(
        valid=True,
        negotiated_price=fare.negotiated_fare,
        estimated_price=fare.total_fare,
        variance_pct=round(variance_pct, 2),
    )


@router.get("/config", response_model=ResolvedPricing)
async def get_pricing_config(
    http_request: Request,
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    ride_type_id: Optional[int] = Query(None),
    service: PricingService = Depends(get_pricing_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the resolved pricing for a point and ride type.

    inheritance_chain lists the scopes that contributed, most specific first.
    """
    pricing = await service.get_pricing(db, latitude, longitude, ride_type_id)
    http_request.state.pricing_version_id = pricing.version_id
    return pricing


@router.post("/cancellation-fee", response_model=CancellationFeeResponse)
async def get_cancellation_fee(
    request: CancellationFeeRequest,
    service: PricingService = Depends(get_pricing_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Calculate the fee for cancelling a ride.
    """
    fee = await service.cancellation_fee(
        db,
        request.latitude,
        request.longitude,
        request.minutes_since_request,
        request.estimated_fare,
        request.ride_type_id
    )
    return CancellationFeeResponse(
        cancellation_fee=fee,
        minutes_since_request=request.minutes_since_request,
    )
