"""
Observability Middleware.

Tags every request with a correlation id and emits one structured log line
per request. Pricing endpoints leave the pricing version they computed
against in request.state, and it is echoed in the X-Pricing-Version header
and the log line so a quoted fare can be traced back to its configuration.
"""

import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("ride_pricing")

CORRELATION_HEADER = "X-Correlation-ID"
PRICING_VERSION_HEADER = "X-Pricing-Version"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers["X-Process-Time"] = f"{elapsed_ms:.2f}"

        log_data = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(elapsed_ms, 2),
            "client_ip": request.client.host if request.client else "unknown",
        }

        pricing_version_id = getattr(request.state, "pricing_version_id", None)
        if pricing_version_id is not None:
            response.headers[PRICING_VERSION_HEADER] = str(pricing_version_id)
            log_data["pricing_version_id"] = pricing_version_id

        if response.status_code >= 500:
            logger.error("Pricing request failed", extra=log_data)
        elif response.status_code >= 400:
            logger.warning("Pricing request rejected", extra=log_data)
        else:
            logger.info("Pricing request served", extra=log_data)

        return response
