"""
UXBOX Backend - Custom Exception Hierarchy
===========================================

What:  Application-specific exceptions for the pages API.
How:   Each exception carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the matching status code.
Who:   Raised by the validator, the identity dependency, middleware and
       dispatchers; caught by the global handlers.

Exception Hierarchy:
    UxboxError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── DispatchError            → status reported by the services layer
    ├── ServiceUnavailableError  → 503 Service Unavailable
    └── CircuitBreakerOpenError  → 503 Service Unavailable

Routes never catch any of these. A dispatch failure travels unchanged from
the dispatcher to the handler in main.py.
"""

from typing import Any, Dict, List, Optional


class UxboxError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; only some handlers return it)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(UxboxError):
    """
    Raised when request parameters fail validation or coercion.

    When:    A required path/query/body field is missing, or a value cannot
             be coerced (e.g. `max=abc`, a malformed UUID).
    HTTP:    400 Bad Request, raised before the dispatcher is invoked.

    `errors` enumerates every failing field:
        [{"location": "query", "field": "project", "message": "field is required"}]
    """

    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[List[Dict[str, str]]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.errors = list(errors or [])
        ctx = context or {}
        if self.errors:
            ctx["errors"] = self.errors
        super().__init__(message=message, context=ctx)

    @property
    def fields(self) -> List[str]:
        return [e["field"] for e in self.errors]


class AuthenticationError(UxboxError):
    """
    Raised when the request carries no usable user identity.

    HTTP: 401 Unauthorized. Authentication itself happens upstream; this
    service only refuses to dispatch without an identity to inject.
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DispatchError(UxboxError):
    """
    Raised when the services layer rejects a message.

    What:    Opaque failure from the external services layer (version
             conflict, missing page, permission denied, ...).
    HTTP:    The status code the services layer responded with. The route
             layer does not interpret the cause; it relays the status.

    Attributes:
        status_code:  HTTP status to relay (500 when the upstream gave none)
        error:        Machine-readable code reported upstream, if any
        payload:      Raw upstream error body
    """

    def __init__(
        self,
        message: str = "The request could not be completed",
        status_code: int = 500,
        error: Optional[str] = None,
        payload: Any = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["status_code"] = status_code
        if error:
            ctx["error"] = error
        super().__init__(message=message, context=ctx)
        self.status_code = status_code
        self.error = error
        self.payload = payload


class ServiceUnavailableError(UxboxError):
    """
    Raised when the services layer cannot be reached.

    When:    Connection refused, timeouts, or other transport errors, after
             the retry policy (queries only) is exhausted.
    HTTP:    503 Service Unavailable, with Retry-After when known.
    """

    def __init__(
        self,
        message: str = "The services layer is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(UxboxError):
    """
    Raised when the dispatcher circuit breaker is OPEN.

    How circuit breaker works:
        CLOSED (normal) → transport failures increment counter
        → threshold reached → OPEN (reject all dispatches)
        → recovery timeout elapsed → HALF-OPEN (allow one test call)
        → test succeeds → CLOSED, test fails → OPEN again
    """

    def __init__(
        self,
        recovery_time: int = 30,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "The services layer is temporarily unavailable due to repeated failures. "
            f"Retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class RateLimitExceededError(UxboxError):
    """
    Raised when a client exceeds the request rate limit.

    HTTP: 429 Too Many Requests, with a Retry-After header.
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
