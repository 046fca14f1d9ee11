"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, preview, staging, production
- Each environment has its own .env.{environment} file

Third-party secrets (Geoapify, Turnstile, Supabase) are optional at startup.
Operations that need a missing secret fail with ConfigurationAppError when
they run, so one misconfigured upstream does not take the whole API down.
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

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "preview": ".env.preview",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Environments where bot protection must be configured
ENFORCED_ENVIRONMENTS = frozenset({"production", "preview", "staging"})

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read/propagate the correlation id",
    )

    model_config = SettingsConfigDict(env_prefix="LOG_", case_sensitive=False)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(False, description="Enable debug mode with verbose logging")
    lookup_cache_control: str = Field(
        "s-maxage=600, stale-while-revalidate=86400",
        description="Cache-Control header sent on successful lookup responses",
    )

    model_config = SettingsConfigDict(env_prefix="APP_", case_sensitive=False)


class RateLimitSettings(BaseSettings):
    """Per-endpoint rate limit budgets (requests per window, per client IP)."""

    enabled: bool = Field(True, description="Enable per-client rate limiting")
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers when throttling",
    )

    geocode_requests: int = Field(60, ge=1)
    geocode_window_seconds: int = Field(300, ge=1)
    places_requests: int = Field(60, ge=1)
    places_window_seconds: int = Field(300, ge=1)
    contact_requests: int = Field(5, ge=1)
    contact_window_seconds: int = Field(300, ge=1)
    lead_requests: int = Field(10, ge=1)
    lead_window_seconds: int = Field(300, ge=1)
    newsletter_requests: int = Field(10, ge=1)
    newsletter_window_seconds: int = Field(300, ge=1)
    health_requests: int = Field(10, ge=1)
    health_window_seconds: int = Field(300, ge=1)

    model_config = SettingsConfigDict(env_prefix="RATE_LIMIT_", case_sensitive=False)


class GeoapifySettings(BaseSettings):
    """Geoapify geocoding/places upstream configuration."""

    api_key: str | None = Field(None, description="Geoapify API key (server-side only)")
    base_url: str = Field("https://api.geoapify.com", description="Geoapify API origin")
    timeout_seconds: float = Field(4.0, gt=0, description="Per-attempt deadline")
    max_retries: int = Field(1, ge=0, description="Additional attempts on transport failure")
    backoff_base_seconds: float = Field(0.2, ge=0, description="Linear backoff step")
    geocode_cache_ttl_seconds: int = Field(24 * 60 * 60, ge=1)
    places_cache_ttl_seconds: int = Field(30 * 60, ge=1)
    default_radius_meters: int = Field(150_000, ge=1)
    default_limit: int = Field(40, ge=1)

    model_config = SettingsConfigDict(env_prefix="GEOAPIFY_", case_sensitive=False)


class TurnstileSettings(BaseSettings):
    """Cloudflare Turnstile bot verification configuration."""

    secret_key: str | None = Field(None, description="Turnstile secret key")
    verify_url: str = Field(
        "https://challenges.cloudflare.com/turnstile/v0/siteverify",
        description="Siteverify endpoint",
    )
    timeout_seconds: float = Field(4.0, gt=0)
    expected_hostnames: str | None = Field(
        None,
        description="Comma-separated hostnames the token must have been issued for",
    )

    model_config = SettingsConfigDict(env_prefix="TURNSTILE_", case_sensitive=False)


class SupabaseSettings(BaseSettings):
    """Supabase (PostgREST) backing store configuration."""

    url: str | None = Field(None, description="Supabase project URL")
    service_role_key: str | None = Field(None, description="Service role key (server-side only)")
    timeout_seconds: float = Field(5.0, gt=0)

    model_config = SettingsConfigDict(env_prefix="SUPABASE_", case_sensitive=False)


class HealthSettings(BaseSettings):
    """Diagnostics endpoint configuration."""

    check_secret: str | None = Field(
        None,
        description="Shared secret required (X-Health-Check header) to run live upstream checks",
    )
    probe_timeout_seconds: float = Field(4.0, gt=0)

    model_config = SettingsConfigDict(env_prefix="HEALTH_", case_sensitive=False)


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    """

    app_env: str = APP_ENV
    log: LogSettings = Field(default_factory=LogSettings)
    app: AppSettings = Field(default_factory=AppSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    geoapify: GeoapifySettings = Field(default_factory=GeoapifySettings)
    turnstile: TurnstileSettings = Field(default_factory=TurnstileSettings)
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    health: HealthSettings = Field(default_factory=HealthSettings)

    model_config = SettingsConfigDict(case_sensitive=False)

    @property
    def verification_enforced(self) -> bool:
        """Whether a missing Turnstile secret is a hard failure."""
        return self.app_env.lower() in ENFORCED_ENVIRONMENTS


# Global settings instance - composed from domain-specific settings
settings = Settings()
