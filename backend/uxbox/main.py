"""
UXBOX Backend - FastAPI Application Factory
============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn uxbox.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Req ID      │→│ RateLimit│→│  Logging        │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────────────────┐ ┌─────────────────┐   │
    │  │ /api/pages (6 handlers)  │ │ GET /health     │   │
    │  └──────────────────────────┘ └─────────────────┘   │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌───────────────────────────────────────────────┐  │
    │  │ Validation→400 │ Auth→401 │ Dispatch→upstream │  │
    │  │ Unavailable→503 │ Circuit→503 │ other→500     │  │
    │  └───────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check
    Shutdown: close the dispatcher's HTTP connection pool
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from uxbox import __version__
from uxbox.config import settings
from uxbox.exceptions import (
    AuthenticationError,
    CircuitBreakerOpenError,
    DispatchError,
    ServiceUnavailableError,
    UxboxError,
    ValidationError,
)
from uxbox.middleware.logging import RequestLoggingMiddleware
from uxbox.middleware.rate_limit import RateLimitMiddleware
from uxbox.middleware.request_id import RequestIDMiddleware, request_id_var
from uxbox.routes import health, pages
from uxbox.services.remote_dispatcher import remote_dispatcher
from uxbox.validation import validation_error_from_request

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: 2024-01-15T12:00:00 [INFO] uxbox.access: PUT /api/pages/... 200 12.3ms
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # uxbox.access replaces the uvicorn access log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("UXBOX backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: /health reports the services layer as unreachable
        logger.error("Configuration error: %s", str(e))

    logger.info("Services layer: %s", settings.services_url)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("UXBOX backend shutting down...")
    await remote_dispatcher.close()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    return request_id_var.get("") or getattr(request.state, "request_id", "")


def _request_id_header(request: Request) -> Optional[Dict[str, str]]:
    # ServerErrorMiddleware sits outside RequestIDMiddleware
    rid = _request_id(request)
    return {"X-Request-ID": rid} if rid else None


def error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {
        "error": error,
        "message": message,
        "request_id": _request_id(request),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and the ErrorResponse body.

    Handler hierarchy:
        RequestValidationError  → 400 (translated into ValidationError)
        ValidationError         → 400 Bad Request
        AuthenticationError     → 401 Unauthorized
        DispatchError           → status relayed from the services layer
        ServiceUnavailableError → 503 Service Unavailable
        CircuitBreakerOpenError → 503 Service Unavailable
        UxboxError (base)       → 500 Internal Server Error
        Exception (fallback)    → 500 Internal Server Error

    Stack traces and upstream payloads are logged, never returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", _request_id(request), exc.message)
        return error_response(
            request, 400, "validation_error", exc.message, details=exc.context
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        return await handle_validation_error(request, validation_error_from_request(exc))

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return error_response(request, 401, "authentication_required", exc.message)

    @app.exception_handler(DispatchError)
    async def handle_dispatch_error(request: Request, exc: DispatchError):
        rid = _request_id(request)
        status_code = exc.status_code if 400 <= exc.status_code <= 599 else 500
        if status_code >= 500:
            logger.error("[%s] Dispatch error %d: %s | Context: %s",
                         rid, status_code, exc.message, exc.context)
            return error_response(
                request,
                status_code,
                exc.error or "server_error",
                "An internal error occurred. Please try again later.",
            )
        return error_response(
            request, status_code, exc.error or "request_rejected", exc.message
        )

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Circuit breaker open: %s", _request_id(request), exc.message)
        return error_response(
            request,
            503,
            "service_unavailable",
            exc.message,
            details={"recovery_time": exc.recovery_time},
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(ServiceUnavailableError)
    async def handle_service_unavailable(request: Request, exc: ServiceUnavailableError):
        logger.error("[%s] Services layer unavailable: %s | Context: %s",
                     _request_id(request), exc.message, exc.context)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return error_response(
            request, 503, "service_unavailable", exc.message, headers=headers
        )

    @app.exception_handler(UxboxError)
    async def handle_application_error(request: Request, exc: UxboxError):
        logger.error("[%s] Application error: %s | Context: %s",
                     _request_id(request), exc.message, exc.context)
        return error_response(
            request,
            500,
            "server_error",
            "An internal error occurred. Please try again later.",
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            _request_id(request),
            str(exc),
            exc_info=True,
        )
        return error_response(
            request,
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
            headers=_request_id_header(request),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="UXBOX API",
        description="Pages API of the UXBOX design and prototyping platform.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition:
    # RequestID → RateLimit → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Location", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(pages.router)
    app.include_router(health.router)

    return app


app = create_app()
