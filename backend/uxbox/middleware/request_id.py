"""
UXBOX Backend - Request ID Middleware
======================================

What:  Assigns a correlation ID to each request and echoes it in the response.
How:   Reuses a client-supplied X-Request-ID (bounded length) or generates a
       short UUID, stores it in a ContextVar for loggers and the dispatcher,
       and sets it on request.state for route handlers.
When:  Runs before the access logger, so every log line of a request and
       every message forwarded to the services layer share the same ID.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local storage for the current request ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

MAX_REQUEST_ID_LENGTH = 64


def new_request_id() -> str:
    return str(uuid.uuid4())[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Use the client's X-Request-ID header when present and sane
        2. Otherwise generate a new 8-character ID
        3. Store in the ContextVar and on request.state
        4. Add to response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "").strip()
        if not rid or len(rid) > MAX_REQUEST_ID_LENGTH:
            rid = new_request_id()

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
