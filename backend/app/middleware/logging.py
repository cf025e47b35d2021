"""
IoT Tech Backend — Request Logging Middleware
===============================================

What:  One access-log line per request: method, path, status, duration,
       request ID, client IP.
How:   Times the downstream call and logs on the `iottech.access` logger at a
       level chosen from the status class (5xx ERROR, 4xx WARNING, else INFO).

Not logged: request bodies, uploaded file contents, health probes, and
static image hits under /uploads.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("iottech.access")

SKIPPED_PREFIXES = ("/health", "/uploads/")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs structured information about each HTTP request and response.

    Typical durations:
        - GET /api/devices: <5ms (static data)
        - GET /api/casestudies: 5-50ms (file snapshot or database query)
        - POST /api/casestudies with image: dominated by upload size
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path.startswith(SKIPPED_PREFIXES):
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
