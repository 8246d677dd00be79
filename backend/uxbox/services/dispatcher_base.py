"""
UXBOX Backend - Abstract Dispatcher Interface
==============================================

What:  Contract for executing tagged messages against the services layer.
How:   Concrete implementations inherit from Dispatcher and implement
       query() and novelty(). Routes depend on this interface only and
       receive the concrete instance through uxbox.dependencies.get_dispatcher.
Who:   Called exactly once per request by the page route handlers.

Implementations:
    - RemoteDispatcher: forwards messages to the services layer over HTTP
    - Tests install a recording fake through FastAPI dependency overrides
"""

from abc import ABC, abstractmethod
from typing import Any

from uxbox.schemas.message import Message


class Dispatcher(ABC):
    """
    Two-mode message dispatcher.

    Contract:
        - query() is the read path and must not mutate state
        - novelty() is the write path and may fail on a version conflict
        - Failures are raised, never returned; callers do not catch them
        - The resolved value is opaque JSON-compatible data
    """

    @abstractmethod
    async def query(self, message: Message) -> Any:
        """
        Execute a read-only message.

        Raises:
            DispatchError: The services layer rejected the message.
            ServiceUnavailableError: The services layer could not be reached.
            CircuitBreakerOpenError: Too many recent transport failures.
        """
        ...

    @abstractmethod
    async def novelty(self, message: Message) -> Any:
        """
        Execute a mutating message. Same failure contract as query().
        """
        ...

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        """Release transport resources. Called on application shutdown."""
        return None
