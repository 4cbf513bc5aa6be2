"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Cache TTLs, the entry size ceiling and the row column
mappings live here so no call site hardcodes them.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from analytics_cache.domain.value_objects.core import ColumnMappings


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    All settings have defaults; validate_limits rejects non-positive TTLs,
    size ceilings and scan limits at load time.
    """

    # App
    app_name: str = "analytics-cache"
    app_version: str = "1.0.0"
    debug: bool = False

    # Analytical store (PostgreSQL via SQLAlchemy async + asyncpg)
    database_url: str = ""
    database_echo: bool = False
    db_pool_size: int | None = None
    db_max_overflow: int | None = None
    db_command_timeout: int | None = None
    db_disable_jit: bool = True

    # Redis Cache
    redis_enabled: bool = True
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    redis_max_connections: int = 10
    redis_socket_timeout: float = 5.0

    # Cache policy. Data refreshes 1-2x daily; 48h staleness is acceptable.
    cache_default_ttl_seconds: int = 48 * 60 * 60
    cache_ttl_overrides: dict[int, int] = {}
    cache_max_entry_bytes: int = 50 * 1024 * 1024  # 50MB
    cache_stats_scan_limit: int = 10_000
    cache_warm_lock_seconds: int = 300

    # Row columns carrying each cache dimension
    column_date_field: str = "date_index"
    column_entity_field: str = "practice_uid"
    column_sub_entity_field: str = "provider_uid"
    column_measure_field: str = "measure"
    column_frequency_field: str = "frequency"

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Reject TTLs, ceilings and limits that would disable caching silently."""
        if self.cache_default_ttl_seconds <= 0:
            raise ValueError("CACHE_DEFAULT_TTL_SECONDS must be positive")
        for data_source_id, ttl in self.cache_ttl_overrides.items():
            if ttl <= 0:
                raise ValueError(
                    f"CACHE_TTL_OVERRIDES for data source {data_source_id} must be positive, got {ttl}"
                )
        if self.cache_max_entry_bytes <= 0:
            raise ValueError("CACHE_MAX_ENTRY_BYTES must be positive")
        if self.cache_stats_scan_limit <= 0:
            raise ValueError("CACHE_STATS_SCAN_LIMIT must be positive")
        if self.cache_warm_lock_seconds <= 0:
            raise ValueError("CACHE_WARM_LOCK_SECONDS must be positive")
        return self

    @property
    def column_mappings(self) -> ColumnMappings:
        """Row column names for date and key dimensions."""
        return ColumnMappings(
            date_field=self.column_date_field,
            entity_field=self.column_entity_field,
            sub_entity_field=self.column_sub_entity_field,
            measure_field=self.column_measure_field,
            frequency_field=self.column_frequency_field,
        )


class TtlPolicy:
    """Per-data-source TTL lookup. One value per data source, default otherwise."""

    def __init__(self, default_seconds: int, overrides: dict[int, int] | None = None) -> None:
        self.default_seconds = default_seconds
        self.overrides = dict(overrides or {})

    @classmethod
    def from_settings(cls, settings: Settings) -> "TtlPolicy":
        return cls(settings.cache_default_ttl_seconds, settings.cache_ttl_overrides)

    def ttl_for(self, data_source_id: int) -> int:
        """Return TTL in seconds for the data source."""
        return self.overrides.get(data_source_id, self.default_seconds)


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
