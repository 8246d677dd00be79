"""
UXBOX Backend - Page Request Schemas
=====================================

What:  Per-route parameter schemas for the pages API, one model per
       parameter location (query or body). Path ids are declared inline
       on the route with UUIDStr.
How:   Fields use the coercion types from uxbox.validation. FastAPI
       validates requests against these models before the handler body
       runs; any failure becomes a 400 and the dispatcher is never called.
Who:   Used by uxbox.routes.pages.

Unknown keys in a body are ignored and never forwarded to the dispatcher.
`data` and `metadata` are opaque documents owned by the services layer.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from uxbox.validation import BooleanStr, Integer, IntegerStr, Required, String, UUIDStr


class PayloadModel(BaseModel):
    """Base for parameter models that become message payloads."""

    def to_payload(self) -> Dict[str, Any]:
        """
        Fields the client actually supplied, minus top-level nulls.

        Nested values inside `data`/`metadata` are passed through untouched.
        """
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None
        }


# ══════════════════════════════════════════════════════════════════════════
# Query Parameter Models
# ══════════════════════════════════════════════════════════════════════════


class PageListQuery(PayloadModel):
    """GET /api/pages"""
    project: UUIDStr = Field(description="Project whose pages are listed")


class PageHistoryQuery(PayloadModel):
    """
    GET /api/pages/{id}/history

    All filters are optional; absent ones are left out of the message so the
    services layer applies its own defaults.
    """
    max: Optional[IntegerStr] = Field(default=None, description="Maximum entries to return")
    since: Optional[IntegerStr] = Field(default=None, description="Return entries after this cursor")
    pinned: Optional[BooleanStr] = Field(default=None, description="Only pinned entries when true")


# ══════════════════════════════════════════════════════════════════════════
# Body Models
# ══════════════════════════════════════════════════════════════════════════


class PageCreate(PayloadModel):
    """POST /api/pages"""
    data: Required = Field(description="Page document content")
    metadata: Required = Field(description="Page metadata document")
    project: UUIDStr = Field(description="Owning project id")
    name: String = Field(description="Page name")
    id: Optional[UUIDStr] = Field(default=None, description="Client-chosen page id")


class PageUpdate(PageCreate):
    """
    PUT /api/pages/{id}

    `version` is the version the client last saw; the services layer
    rejects the update when it no longer matches.
    """
    version: Integer = Field(description="Current page version")


class PageMetadataUpdate(PayloadModel):
    """PUT /api/pages/{id}/metadata"""
    id: UUIDStr = Field(description="Page id (the path id takes precedence)")
    metadata: Required = Field(description="Page metadata document")
    project: UUIDStr = Field(description="Owning project id")
    name: String = Field(description="Page name")
