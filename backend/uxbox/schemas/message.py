"""
UXBOX Backend - Dispatch Message Envelope
==========================================

What:  The tagged message exchanged with the dispatcher:
       {"type": <tag>, "user": <uuid>, ...payload}
Who:   Built by route handlers, consumed by Dispatcher implementations.

Invariants:
    - `type` is always chosen by the handler.
    - `user` always comes from the authenticated request.
    Payload keys named "type" or "user" are discarded in Message.build, so
    client input can never override either of them.
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

RESERVED_KEYS = frozenset({"type", "user"})


class MessageType(str, Enum):
    LIST_PAGES_BY_PROJECT = "list-pages-by-project"
    CREATE_PAGE = "create-page"
    UPDATE_PAGE = "update-page"
    UPDATE_PAGE_METADATA = "update-page-metadata"
    DELETE_PAGE = "delete-page"
    LIST_PAGE_HISTORY = "list-page-history"


class Message(BaseModel):
    """
    A single query or novelty.

    Attributes:
        type:     Handler tag on the services layer
        user:     Id of the authenticated user issuing the message
        payload:  Validated request parameters
    """

    model_config = ConfigDict(frozen=True)

    type: MessageType
    user: UUID
    payload: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def build(
        cls,
        type: MessageType,
        user: UUID,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> "Message":
        clean = {
            key: value
            for key, value in (payload or {}).items()
            if key not in RESERVED_KEYS
        }
        return cls(type=type, user=user, payload=clean)

    def __getitem__(self, key: str) -> Any:
        if key == "type":
            return self.type
        if key == "user":
            return self.user
        return self.payload[key]

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default

    def to_wire(self) -> Dict[str, Any]:
        """Flat, JSON-compatible form sent to the services layer."""
        dumped = self.model_dump(mode="json")
        wire = dict(dumped["payload"])
        wire["type"] = dumped["type"]
        wire["user"] = dumped["user"]
        return wire
