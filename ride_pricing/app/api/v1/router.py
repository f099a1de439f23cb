"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from ride_pricing.app.api.v1.endpoints import pricing

router = APIRouter()

# Pricing endpoints
router.include_router(pricing.router)
