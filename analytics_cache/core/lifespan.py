"""Startup and shutdown wiring for the analytics cache.

Single place that builds infrastructure (Redis store, SQLAlchemy engine,
telemetry) and tears it down. No business logic here.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from analytics_cache.application.interfaces.services import ICacheStore
from analytics_cache.application.use_cases.data_source_cache import DataSourceCache
from analytics_cache.core.config import Settings, get_settings
from analytics_cache.infrastructure.cache.null_cache import NullCacheStore
from analytics_cache.infrastructure.cache.redis_cache import RedisCacheStore
from analytics_cache.infrastructure.persistence.database import (
    SqlAlchemyQueryBackend,
    create_engine_and_sessionmaker,
)
from analytics_cache.infrastructure.persistence.query_executor import QueryExecutor
from analytics_cache.shared.telemetry.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_data_source_cache(
    settings: Settings | None = None,
) -> AsyncIterator[DataSourceCache]:
    """Build a DataSourceCache, yield it, and release its resources on exit.

    Startup order: logging, telemetry (if enabled), SQL engine, Redis store (if
    enabled). Shutdown order: Redis disconnect, engine dispose, telemetry
    shutdown.

    Raises:
        DatabaseNotConfiguredException: If DATABASE_URL is empty.
    """
    settings = settings or get_settings()

    # ---- Startup ----
    setup_logging(settings)
    telemetry = None
    if settings.telemetry_enabled:
        from analytics_cache.shared.telemetry.telemetry import TelemetryConfig

        telemetry = TelemetryConfig.from_settings(settings)
        telemetry.setup_telemetry(
            exporter_type=settings.telemetry_exporter,
            otlp_endpoint=settings.telemetry_otlp_endpoint,
            sample_rate=settings.telemetry_sample_rate,
        )
        telemetry.instrument_logging()
        telemetry.instrument_redis()

    engine, session_factory = create_engine_and_sessionmaker(settings)
    if telemetry is not None:
        telemetry.instrument_sqlalchemy(engine)

    redis_store: RedisCacheStore | None = None
    cache_store: ICacheStore
    if settings.redis_enabled:
        redis_store = RedisCacheStore(settings=settings)
        await redis_store.connect()
        cache_store = redis_store
    else:
        logger.info("Redis disabled; every fetch goes to the analytical store")
        cache_store = NullCacheStore()

    executor = QueryExecutor(SqlAlchemyQueryBackend(session_factory), settings.column_mappings)
    try:
        yield DataSourceCache.from_settings(cache_store, executor, settings)
    finally:
        # ---- Shutdown ----
        if redis_store is not None:
            await redis_store.disconnect()
        await engine.dispose()
        logger.info("Database engine disposed")
        if telemetry is not None:
            telemetry.shutdown()
