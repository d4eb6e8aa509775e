"""
VoiceNotes — Request ID Middleware
====================================

What:  Gives every request a short correlation id and echoes it back.
Why:   Error bodies carry the id, so a failure toast on the client can be
       matched to the server log lines of the same request.
How:   Uses the client's X-Request-ID header when present, otherwise an
       8-char UUID prefix; stores it in a ContextVar for loggers and handlers.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Client-supplied ids are truncated; they end up in log lines
        rid = request.headers.get("X-Request-ID", "")[:64] or uuid.uuid4().hex[:8]
        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = rid
        return response
