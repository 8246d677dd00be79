"""
UXBOX Backend - Health Check Route
===================================

What:  Health check endpoint for container probes and load balancers.
How:   Reports the dispatcher's circuit state, probes the services layer,
       and returns an aggregate status.

Status levels:
    healthy:   services layer reachable
    degraded:  services layer unreachable or circuit open; this process is
               up and keeps answering (validation errors, 503s), so the
               endpoint still returns HTTP 200
"""

import logging
import time

from fastapi import APIRouter, Depends

from uxbox import __version__
from uxbox.dependencies import get_dispatcher
from uxbox.schemas.common import HealthResponse
from uxbox.services.dispatcher_base import Dispatcher

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> HealthResponse:
    services_status = "available"
    overall = "healthy"

    breaker = getattr(dispatcher, "circuit_breaker", None)
    if breaker is not None and breaker.is_rejecting:
        services_status = "circuit_open"
        overall = "degraded"
    elif not await dispatcher.health_check():
        services_status = "unavailable"
        overall = "degraded"
        logger.warning("Health check: services layer unreachable")

    return HealthResponse(
        status=overall,
        version=__version__,
        services=services_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
