"""
UXBOX Backend - Shared Response Schemas
========================================

What:  Error and health response models shared by all routes.
Who:   Referenced in route `responses=` declarations (OpenAPI docs) and
       returned by the health endpoint.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error body for every locally produced error.

    Example:
        {
            "error": "validation_error",
            "message": "Invalid request parameters: query.project",
            "details": {"errors": [{"location": "query", "field": "project",
                                    "message": "Field required"}]},
            "request_id": "1f2e3d4c"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded")
    version: str = Field(description="Application version")
    services: str = Field(description="Services layer status: available, unavailable, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
