"""
UXBOX Backend - Rate Limiting Middleware
=========================================

What:  Per-client sliding window rate limiter.
How:   Keeps the request timestamps of each client in memory; a request is
       rejected with 429 when the client already made `rate_limit_requests`
       requests within the last `rate_limit_window` seconds.

Client key:
    "user:<id>" when the gateway's user header is present, otherwise
    "ip:<address>". Users behind one NAT do not share a budget.

In-memory state is per process. Multi-worker deployments get one budget
per worker.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from uxbox.config import settings
from uxbox.exceptions import RateLimitExceededError
from uxbox.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Excluded paths: /health and the API docs.

    Response on rate limit:
        HTTP 429 with a Retry-After header and the standard error body,
        request_id included (RequestIDMiddleware runs outside this one).
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}
    CLEANUP_EVERY = 1000

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._seen = 0

    @staticmethod
    def client_key(request: Request) -> str:
        user = request.headers.get(settings.auth_user_header)
        if user:
            return f"user:{user.strip()}"
        host = request.client.host if request.client else "unknown"
        return f"ip:{host}"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        key = self.client_key(request)
        now = time.time()
        window_start = now - settings.rate_limit_window

        timestamps = [ts for ts in self._requests[key] if ts > window_start]
        self._requests[key] = timestamps

        if len(timestamps) >= settings.rate_limit_requests:
            retry_after = int(timestamps[0] + settings.rate_limit_window - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds window",
                key,
                len(timestamps),
                settings.rate_limit_window,
            )
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "request_id": request_id_var.get(""),
                    "details": {"retry_after": retry_after},
                },
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)

        self._seen += 1
        if self._seen % self.CLEANUP_EVERY == 0:
            self._cleanup_inactive_clients(window_start)

        return await call_next(request)

    def _cleanup_inactive_clients(self, window_start: float) -> None:
        """Drop clients with no request inside the current window."""
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for key in inactive:
            del self._requests[key]

        if inactive:
            logger.debug("Cleaned up %d inactive rate limit entries", len(inactive))
