"""
HazardCast Configuration.

Pydantic Settings v2 — loads from .env, environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ── Application ──────────────────────────────────────────────────────
    app_name: str = "HazardCast"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # ── Operational ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="console", alias="LOG_FORMAT")

    # ── Result cache ───────────────────────────────────────────────────────
    result_cache_ttl_seconds: int = Field(
        default=30 * 24 * 3600, alias="RESULT_CACHE_TTL_SECONDS",
    )
    result_cache_max_entries: int = Field(default=1000, alias="RESULT_CACHE_MAX_ENTRIES")
    result_cache_eviction_batch: int = Field(default=100, alias="RESULT_CACHE_EVICTION_BATCH")
    cache_coordinate_precision: int = Field(default=6, alias="CACHE_COORDINATE_PRECISION")
    # Empty selects the in-process cache
    redis_url: str = Field(default="", alias="REDIS_URL")

    # ── Source credentials ─────────────────────────────────────────────────
    # Absent credentials make premium sources ineligible (skipped, not failed)
    fema_api_key: str = Field(default="", alias="FEMA_API_KEY")
    noaa_api_token: str = Field(default="", alias="NOAA_API_TOKEN")
    climate_check_api_key: str = Field(default="", alias="CLIMATE_CHECK_API_KEY")
    first_street_api_key: str = Field(default="", alias="FIRST_STREET_API_KEY")

    # ── Source endpoints ───────────────────────────────────────────────────
    fema_base_url: str = Field(
        default="https://www.fema.gov/api/open/v2", alias="FEMA_BASE_URL",
    )
    first_street_base_url: str = Field(
        default="https://api.firststreet.org/risk/v1", alias="FIRST_STREET_BASE_URL",
    )

    # ── Provider clients ───────────────────────────────────────────────────
    client_timeout_seconds: float = Field(default=30.0, alias="CLIENT_TIMEOUT_SECONDS")
    client_max_retries: int = Field(default=3, alias="CLIENT_MAX_RETRIES")
    client_retry_base_delay: float = Field(default=1.0, alias="CLIENT_RETRY_BASE_DELAY")
    client_retry_max_delay: float = Field(default=16.0, alias="CLIENT_RETRY_MAX_DELAY")
    client_response_cache_ttl_seconds: int = Field(
        default=86400, alias="CLIENT_RESPONSE_CACHE_TTL_SECONDS",
    )
    client_response_cache_max_entries: int = Field(
        default=500, alias="CLIENT_RESPONSE_CACHE_MAX_ENTRIES",
    )

    def credential_for(self, source_name: str) -> str:
        """Configured credential for a source, "" when none."""
        return {
            "fema": self.fema_api_key,
            "noaa": self.noaa_api_token,
            "climate_check": self.climate_check_api_key,
            "first_street": self.first_street_api_key,
        }.get(source_name, "")

    def credentials(self) -> dict[str, str]:
        """All configured (non-empty) source credentials."""
        names = ("fema", "noaa", "climate_check", "first_street")
        return {n: self.credential_for(n) for n in names if self.credential_for(n)}


settings = Settings()
