"""
VoiceNotes — Credential Endpoint Rate Limiting
================================================

What:  Per-IP sliding window limit on POST /api/auth/signup and /api/auth/login.
Why:   Those are the only endpoints reachable without a credential and the
       only place a password can be guessed. Note routes are already gated
       by the bearer credential and are not limited here.
How:   Each IP keeps a deque of request timestamps; timestamps older than
       the window are dropped, and a request is rejected when the remaining
       count has reached the limit.

    Why sliding window (not fixed window):
        A fixed window lets a client burst 2× the limit across a boundary.

Scope:
    In-memory, so the limit is per worker process. A multi-worker deployment
    needs a shared store (e.g. Redis) behind the same SlidingWindowLimiter API.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from voicenotes.config import settings
from voicenotes.exceptions import RateLimitExceededError
from voicenotes.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

CREDENTIAL_PATHS = frozenset({"/api/auth/signup", "/api/auth/login"})


class SlidingWindowLimiter:
    """
    Counts hits per key over the last `window` seconds.

    `clock` is injectable so tests can move time without sleeping.
    """

    def __init__(
        self,
        max_requests: int,
        window: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)

    def hit(self, key: str) -> None:
        """
        Record one request for `key`.

        Raises:
            RateLimitExceededError: `key` already used its allowance; the
                request is NOT recorded.
        """
        now = self._clock()
        hits = self._hits[key]
        while hits and hits[0] <= now - self.window:
            hits.popleft()

        if len(hits) >= self.max_requests:
            retry_after = int(hits[0] + self.window - now) + 1
            raise RateLimitExceededError(
                retry_after=retry_after,
                context={"key": key, "count": len(hits)},
            )

        hits.append(now)
        if len(self._hits) > 10_000:
            self._forget_idle(now)

    def _forget_idle(self, now: float) -> None:
        idle = [k for k, hits in self._hits.items() if not hits or hits[-1] <= now - self.window]
        for key in idle:
            del self._hits[key]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies a SlidingWindowLimiter to the credential endpoints.

    Responds directly with 429 (exception handlers registered on the app do
    not see exceptions raised from middleware).
    """

    def __init__(
        self,
        app,
        limiter: Optional[SlidingWindowLimiter] = None,
        paths: Iterable[str] = CREDENTIAL_PATHS,
    ):
        super().__init__(app)
        self.limiter = limiter or SlidingWindowLimiter(
            max_requests=settings.auth_rate_limit_requests,
            window=settings.auth_rate_limit_window,
        )
        self.paths = frozenset(paths)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method != "POST" or request.url.path not in self.paths:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        try:
            self.limiter.hit(client_ip)
        except RateLimitExceededError as exc:
            logger.warning(
                "Credential rate limit exceeded for %s on %s", client_ip, request.url.path
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": {"retry_after": exc.retry_after},
                    "requestId": request_id_var.get(""),
                },
                headers={"Retry-After": str(exc.retry_after)},
            )

        return await call_next(request)
