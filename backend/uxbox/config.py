"""
UXBOX Backend - Application Configuration
==========================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; validated before the app starts.
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults for the development container
    (frontend on 3449, backend on 6060). Production deployments override
    SERVICES_URL and CORS_ORIGINS.
    """

    # ── Services Layer ────────────────────────────────────────────────────
    # Base URL of the process that executes query/novelty messages.
    # The dispatcher posts to {services_url}/query and {services_url}/novelty.
    services_url: str = Field(
        default="http://localhost:6061",
        description="Base URL of the services layer (message dispatch)",
    )

    # Per-request timeout for calls to the services layer, in seconds.
    services_timeout: float = Field(default=30.0, gt=0, le=300)

    # ── Authentication Context ────────────────────────────────────────────
    # Header carrying the authenticated user id, set by the upstream gateway.
    # Only consulted when no in-process middleware populated request.state.user.
    auth_user_header: str = Field(default="X-Uxbox-User")

    # ── CORS ──────────────────────────────────────────────────────────────
    # Comma-separated list of allowed origins.
    cors_origins: str = Field(default="http://localhost:3449")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=6060, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Retry Configuration ───────────────────────────────────────────────
    # Tenacity settings for read-only dispatches (queries).
    # Novelties are never retried.
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_min_wait: float = Field(default=0.5, ge=0, le=30)
    retry_max_wait: float = Field(default=5.0, ge=0, le=120)

    # ── Circuit Breaker ───────────────────────────────────────────────────
    # After N consecutive transport failures, reject dispatches for M seconds.
    cb_failure_threshold: int = Field(default=5, ge=1, le=50)
    cb_recovery_timeout: int = Field(default=30, ge=1, le=600)

    # ── Rate Limiting ─────────────────────────────────────────────────────
    # Per-client sliding window (client = authenticated user, else IP).
    rate_limit_requests: int = Field(default=600, ge=10, le=100000)
    rate_limit_window: int = Field(default=60, ge=1, le=86400)  # seconds

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that critical settings are usable.
        When:  Called during app startup (lifespan).
        How:   Collects every problem and raises a single ValueError.
        """
        errors = []
        if not self.services_url.startswith(("http://", "https://")):
            errors.append(
                f"SERVICES_URL must be an http(s) URL, got '{self.services_url}'."
            )
        if self.retry_min_wait > self.retry_max_wait:
            errors.append("RETRY_MIN_WAIT must not exceed RETRY_MAX_WAIT.")
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance, imported throughout the application
settings = Settings()
