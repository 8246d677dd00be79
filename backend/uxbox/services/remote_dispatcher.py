"""
UXBOX Backend - Remote Dispatcher (HTTP transport to the services layer)
=========================================================================

What:  Dispatcher implementation that posts messages to the services layer.
How:   POST {services_url}/query   and   POST {services_url}/novelty
       with the flat message as JSON. A 2xx JSON body is the resolved value;
       any other status raises DispatchError carrying that status.
Who:   Installed as the application dispatcher by uxbox.dependencies.
When:  Once per request, awaited by the page route handler.

Resilience:
    Queries are retried on transport errors (tenacity, exponential backoff
    with jitter). Novelties are sent exactly once: a timed-out write may
    already have been applied.

    A circuit breaker wraps both modes. Transport errors and gateway
    statuses (502/503/504) count as failures; any other HTTP response,
    including a 4xx rejection, proves the services layer is up.

Upstream error body (optional fields):
    {"error": "version-conflict", "message": "Page version mismatch"}
"""

import logging
import time
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from uxbox.config import settings
from uxbox.exceptions import (
    CircuitBreakerOpenError,
    DispatchError,
    ServiceUnavailableError,
)
from uxbox.middleware.request_id import request_id_var
from uxbox.schemas.message import Message
from uxbox.services.dispatcher_base import Dispatcher

logger = logging.getLogger(__name__)

GATEWAY_STATUSES = frozenset({502, 503, 504})


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Circuit breaker guarding calls to the services layer.

    States:
        CLOSED     normal operation, failures are counted
        OPEN       every call is rejected with CircuitBreakerOpenError
        HALF_OPEN  recovery timeout elapsed, the next call is a probe

    Process-local and not thread-safe; uvicorn async workers share a
    single event loop per process.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 30):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Returns:
            True if the call can proceed (CLOSED, or HALF_OPEN after timeout).

        Raises:
            CircuitBreakerOpenError if OPEN and the recovery timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.monotonic() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = max(1, int(self.recovery_timeout - elapsed))
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    @property
    def is_rejecting(self) -> bool:
        """True while OPEN and inside the recovery timeout. Never changes state."""
        if self.state != self.OPEN:
            return False
        elapsed = time.monotonic() - (self.last_failure_time or 0)
        return elapsed < self.recovery_timeout

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (services layer recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.monotonic()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (probe failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Remote Dispatcher
# ══════════════════════════════════════════════════════════════════════════

class RemoteDispatcher(Dispatcher):
    """
    httpx-based dispatcher for the services layer.

    The AsyncClient is created lazily and shared by all requests;
    close() is called from the application lifespan on shutdown.
    `transport` lets tests plug in an httpx.MockTransport.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        retry_max_attempts: Optional[int] = None,
        retry_min_wait: Optional[float] = None,
        retry_max_wait: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.services_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.services_timeout
        self.retry_max_attempts = retry_max_attempts or settings.retry_max_attempts
        self.retry_min_wait = (
            retry_min_wait if retry_min_wait is not None else settings.retry_min_wait
        )
        self.retry_max_wait = (
            retry_max_wait if retry_max_wait is not None else settings.retry_max_wait
        )
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def query(self, message: Message) -> Any:
        return await self._dispatch("query", message, retry=True)

    async def novelty(self, message: Message) -> Any:
        return await self._dispatch("novelty", message, retry=False)

    async def _dispatch(self, mode: str, message: Message, retry: bool) -> Any:
        """
        Flow:
            1. Check circuit breaker → may raise CircuitBreakerOpenError
            2. POST the message (queries retried on transport errors)
            3. Record success/failure in circuit breaker
            4. Unwrap the response or raise DispatchError
        """
        self.circuit_breaker.can_execute()

        start_time = time.perf_counter()
        try:
            if retry:
                response = await self._post_with_retry(mode, message)
            else:
                response = await self._post(mode, message)
        except httpx.TransportError as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "%s %s failed: %s: %s",
                mode,
                message.type.value,
                type(e).__name__,
                str(e),
            )
            raise ServiceUnavailableError(
                retry_after=self.circuit_breaker.recovery_timeout
                if self.circuit_breaker.state == CircuitBreaker.OPEN
                else None,
                context={
                    "mode": mode,
                    "type": message.type.value,
                    "error_type": type(e).__name__,
                },
            ) from e

        if response.status_code in GATEWAY_STATUSES:
            self.circuit_breaker.record_failure()
        else:
            self.circuit_breaker.record_success()

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            "%s %s -> %d in %.1fms",
            mode,
            message.type.value,
            response.status_code,
            duration_ms,
        )
        return self._unwrap(mode, message, response)

    async def _post_with_retry(self, mode: str, message: Message) -> httpx.Response:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self.retry_max_attempts),
            wait=wait_exponential_jitter(
                initial=self.retry_min_wait,
                max=self.retry_max_wait,
                jitter=self.retry_min_wait,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await self._post(mode, message)
        raise AssertionError("unreachable")  # pragma: no cover

    async def _post(self, mode: str, message: Message) -> httpx.Response:
        headers = {}
        rid = request_id_var.get("")
        if rid:
            headers["X-Request-ID"] = rid
        return await self.client.post(f"/{mode}", json=message.to_wire(), headers=headers)

    def _unwrap(self, mode: str, message: Message, response: httpx.Response) -> Any:
        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError:
                logger.error(
                    "%s %s returned a non-JSON body (status %d)",
                    mode,
                    message.type.value,
                    response.status_code,
                )
                raise DispatchError(
                    message="The services layer returned an invalid response",
                    status_code=502,
                    context={"mode": mode, "type": message.type.value},
                )

        payload = self._error_payload(response)
        error = payload.get("error") if isinstance(payload, dict) else None
        text = payload.get("message") if isinstance(payload, dict) else None
        logger.info(
            "%s %s rejected with %d (%s)",
            mode,
            message.type.value,
            response.status_code,
            error or "no error code",
        )
        raise DispatchError(
            message=text or "The request could not be completed",
            status_code=response.status_code,
            error=error,
            payload=payload,
            context={"mode": mode, "type": message.type.value},
        )

    @staticmethod
    def _error_payload(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {"detail": payload}

    async def health_check(self) -> bool:
        try:
            response = await self.client.get("/health")
        except httpx.HTTPError as e:
            logger.warning("Services layer health check failed: %s", str(e))
            return False
        return response.is_success

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None


# Shared instance; holds the circuit breaker and the connection pool
remote_dispatcher = RemoteDispatcher()
