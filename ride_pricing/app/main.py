"""
FastAPI Application Entry Point.

This is the main application file for the Ride Pricing service.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from ride_pricing.app.core.config import settings
from ride_pricing.app.api.v1.router import router as api_v1_router
from ride_pricing.app.db.session import engine, Base
from ride_pricing.app.core.observability import ObservabilityMiddleware
from ride_pricing.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from ride_pricing.app.models.pricing_version import PricingConfigVersion
from ride_pricing.app.models.pricing_config import PricingConfig
from ride_pricing.app.models.multipliers import (
    TimeMultiplier, WeatherMultiplier, EventMultiplier, SurgeThreshold
)
from ride_pricing.app.models.zone_fee import PricingZone, ZoneFee

logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates the pricing tables on startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Pricing resolution and fare calculation for ride hailing",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to the Ride Pricing API",
        "docs": "/docs",
        "health": "/health",
    }
