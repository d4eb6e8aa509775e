"""
VoiceNotes — Request Logging Middleware
=========================================

What:  One access-log line per request: method, path, status, duration, id.
Why:   Uvicorn's access log has no request id and no duration.

Privacy:
    ✅ Log: method, path, status, duration, client IP, request ID
    ❌ Don't log: bodies (passwords, note content), Authorization header
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from voicenotes.middleware.request_id import request_id_var

logger = logging.getLogger("voicenotes.access")

# Probes run every few seconds and would drown everything else
QUIET_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Level follows the status class: 5xx → ERROR, 4xx → WARNING, else INFO.
    A 401 or 404 on a note route is routine and stays at WARNING.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
