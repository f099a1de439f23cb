"""
Custom exceptions and error handlers for consistent error responses.

Provides the pricing error taxonomy and global exception handlers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger("ride_pricing")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(AppException):
    """Raised when pricing cannot be resolved at all (no active version)."""

    def __init__(self, message: str = "No active pricing version", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PRICING_CONFIG",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details
        )


class NotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class ValidationError(AppException):
    """Raised for malformed pricing input that passed schema validation."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details
        )


class PriceOutOfRangeError(AppException):
    """Raised when a negotiated price falls outside the allowed variance band."""

    def __init__(self, price: float, min_price: float, max_price: float, estimated_fare: float):
        self.price = price
        self.min_price = min_price
        self.max_price = max_price
        self.estimated_fare = estimated_fare
        super().__init__(
            message=f"Price {price} is outside the allowed range [{min_price}, {max_price}]",
            error_code="ERR_PRICE_RANGE",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={
                "price": price,
                "min_price": min_price,
                "max_price": max_price,
                "estimated_fare": estimated_fare
            }
        )


class StaleVersionError(AppException):
    """Raised when a mutation targets a pricing version that is no longer a draft."""

    def __init__(self, version_id: int, version_status: str):
        super().__init__(
            message=f"Pricing version {version_id} is {version_status}; only draft versions can be modified",
            error_code="ERR_STALE_VERSION",
            status_code=status.HTTP_409_CONFLICT,
            details={"version_id": version_id, "status": version_status}
        )


class ActivationConflictError(AppException):
    """Raised when a concurrent activation won the single active slot."""

    def __init__(self, version_id: int):
        super().__init__(
            message=f"Pricing version {version_id} was not activated; another activation completed first",
            error_code="ERR_ACTIVATION_CONFLICT",
            status_code=status.HTTP_409_CONFLICT,
            details={"version_id": version_id}
        )


class GeographyError(AppException):
    """Raised when the geography service cannot resolve a point."""

    def __init__(self, message: str = "Failed to resolve location", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_GEOGRAPHY",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details=details
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        404: "ERR_NOT_FOUND",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": exc.errors()
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception(
        "Unhandled exception",
        extra={"exception_type": type(exc).__name__, "path": request.url.path}
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
