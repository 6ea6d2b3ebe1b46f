"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    """Build log settings from environment.

    See _build_app_settings() for rationale about the type ignore.
    """

    return LogSettings()  # type: ignore[call-arg]


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level (DEBUG, INFO, WARNING, ...)")
    format: str = Field("json", description="Log format: 'json' or 'plain'")
    output: str = Field("stdout", description="Log destination: 'stdout' or 'file'")
    file_path: str | None = Field(
        None,
        description="Log file path when output=file (defaults to logs/app.log)",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Number of rotated log files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read/propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Run FastAPI in debug mode (tracebacks on unhandled errors)",
    )
    public_app_url: str = Field(
        "http://localhost:3000",
        description="Base URL of the web app, used to build public form links",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required on owner routes",
    )
    api_keys: str | None = Field(
        None,
        description=(
            "Comma-separated API keys. Each entry is either 'user_id:key' or a bare "
            "'key' (user id is then derived from the key hash)"
        ),
    )
    client_ip_header: str = Field(
        "CF-Connecting-IP",
        description="Trusted header carrying the client IP set by the edge proxy",
    )

    # Key-value store backing both the rate limiter and the form cache
    kv_backend: str = Field(
        "memory",
        description="Key-value backend: 'memory' (per-process) or 'redis'",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL when kv_backend=redis",
    )
    store_timeout_seconds: float = Field(
        0.5,
        description="Timeout applied to every key-value store call",
        gt=0,
    )

    form_cache_ttl_seconds: int = Field(
        3600,
        description="TTL of cached public form payloads",
        ge=1,
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable request rate limiting",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers in responses",
    )
    rate_limit_requests: int = Field(
        60,
        description="Default policy: max requests per window (per IP and route)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        60,
        description="Default policy: window size in seconds",
        ge=1,
    )
    rate_limit_strict_requests: int = Field(
        5,
        description="Strict policy (credential checks): max requests per window",
        ge=1,
    )
    rate_limit_strict_window_seconds: int = Field(
        300,
        description="Strict policy: window size in seconds",
        ge=1,
    )
    rate_limit_public_requests: int = Field(
        30,
        description="Public form routes: max requests per window",
        ge=1,
    )
    rate_limit_public_window_seconds: int = Field(
        60,
        description="Public form routes: window size in seconds",
        ge=1,
    )
    rate_limit_user_requests: int = Field(
        100,
        description="Per-user policy (publish actions): max requests per window",
        ge=1,
    )
    rate_limit_user_window_seconds: int = Field(
        3600,
        description="Per-user policy: window size in seconds",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
