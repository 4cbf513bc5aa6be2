"""DataSourceCache: the public entry point composing fetch, invalidation, stats and warming."""

from __future__ import annotations

from collections.abc import Iterable

from analytics_cache.application.dtos.cache import (
    FetchResult,
    StatsSnapshot,
    WarmAllResult,
    WarmResult,
)
from analytics_cache.application.interfaces.services import ICacheStore, IQueryExecutor
from analytics_cache.application.use_cases.cache_stats import CacheStatsCollector
from analytics_cache.application.use_cases.cache_warming import CacheWarmer
from analytics_cache.application.use_cases.fetch_data_source import HierarchicalFetcher
from analytics_cache.application.use_cases.invalidation import CacheInvalidator
from analytics_cache.core.config import Settings, TtlPolicy
from analytics_cache.domain.value_objects.core import (
    DataSourceDescriptor,
    QueryParams,
    RequestingIdentity,
)


class DataSourceCache:
    """Read-through analytics cache with per-request authorization.

    Collaborators are injected; build one with
    analytics_cache.core.lifespan.create_data_source_cache for production
    wiring, or from_settings with your own store and executor.
    """

    def __init__(
        self,
        fetcher: HierarchicalFetcher,
        invalidator: CacheInvalidator,
        stats_collector: CacheStatsCollector,
        warmer: CacheWarmer,
    ) -> None:
        self._fetcher = fetcher
        self._invalidator = invalidator
        self._stats = stats_collector
        self._warmer = warmer

    @classmethod
    def from_settings(
        cls,
        cache_store: ICacheStore,
        query_executor: IQueryExecutor,
        settings: Settings,
    ) -> "DataSourceCache":
        """Wire the use cases around one store and executor using settings for policy."""
        ttl_policy = TtlPolicy.from_settings(settings)
        columns = settings.column_mappings
        return cls(
            fetcher=HierarchicalFetcher(cache_store, query_executor, ttl_policy, columns),
            invalidator=CacheInvalidator(cache_store),
            stats_collector=CacheStatsCollector(cache_store, settings.cache_stats_scan_limit),
            warmer=CacheWarmer(
                cache_store,
                query_executor,
                ttl_policy,
                columns,
                lock_seconds=settings.cache_warm_lock_seconds,
            ),
        )

    async def fetch_data_source(
        self,
        params: QueryParams,
        identity: RequestingIdentity,
        no_cache: bool = False,
    ) -> FetchResult:
        """Rows identity may see for params, served from cache when possible."""
        return await self._fetcher.fetch(params, identity, no_cache=no_cache)

    async def invalidate_all(self) -> int:
        return await self._invalidator.invalidate_all()

    async def invalidate_data_source(self, data_source_id: int) -> int:
        return await self._invalidator.invalidate_data_source(data_source_id)

    async def invalidate_dimension(self, data_source_id: int, measure: str) -> int:
        return await self._invalidator.invalidate_dimension(data_source_id, measure)

    async def stats(self) -> StatsSnapshot:
        return await self._stats.stats()

    async def warm_data_source(self, source: DataSourceDescriptor) -> WarmResult:
        return await self._warmer.warm_data_source(source)

    async def warm_all(self, sources: Iterable[DataSourceDescriptor]) -> WarmAllResult:
        return await self._warmer.warm_all(sources)
