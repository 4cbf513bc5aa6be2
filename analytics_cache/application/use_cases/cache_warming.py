"""Cache warming use case: preload whole data sources under a distributed lock.

Table-based sources are stored as one data-source-level entry. Measure-based
sources are grouped by (measure, frequency) and stored with entity and
sub-entity wildcarded, which is the level request chains fall back to.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable
from typing import Any

from analytics_cache.application.dtos.cache import WarmAllResult, WarmResult
from analytics_cache.application.interfaces.services import ICacheStore, IQueryExecutor
from analytics_cache.core.config import TtlPolicy
from analytics_cache.domain.entities.cached_entry import CachedEntry
from analytics_cache.domain.enums import DataSourceType
from analytics_cache.domain.exceptions import ValidationException
from analytics_cache.domain.value_objects.core import (
    ColumnMappings,
    DataSourceDescriptor,
    KeyComponents,
    QueryParams,
)
from analytics_cache.infrastructure.cache.keys import build_key, warm_lock_key
from analytics_cache.shared.telemetry.tracing import traced

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class CacheWarmer:
    """Preloads data sources into the cache. One warming per data source at a time."""

    def __init__(
        self,
        cache_store: ICacheStore,
        query_executor: IQueryExecutor,
        ttl_policy: TtlPolicy,
        columns: ColumnMappings | None = None,
        lock_seconds: int = 300,
    ) -> None:
        self._cache = cache_store
        self._executor = query_executor
        self._ttl_policy = ttl_policy
        self._columns = columns or ColumnMappings()
        self._lock_seconds = lock_seconds

    def _group(
        self, source: DataSourceDescriptor, rows: list[dict[str, Any]]
    ) -> dict[KeyComponents, list[dict[str, Any]]]:
        """Split rows into cache entries by the source's key layout."""
        if source.data_source_type is DataSourceType.TABLE_BASED:
            return {KeyComponents(source.data_source_id): rows} if rows else {}
        groups: dict[KeyComponents, list[dict[str, Any]]] = {}
        skipped = 0
        for row in rows:
            measure = row.get(self._columns.measure_field)
            frequency = row.get(self._columns.frequency_field)
            try:
                components = KeyComponents(
                    data_source_id=source.data_source_id,
                    measure=None if measure is None else str(measure),
                    frequency=None if frequency is None else str(frequency),
                )
            except ValidationException:
                skipped += 1
                continue
            if components.measure is None or components.frequency is None:
                skipped += 1
                continue
            groups.setdefault(components, []).append(row)
        if skipped:
            logger.warning(
                "Warming data source %s: %d rows without a usable measure/frequency were not cached",
                source.data_source_id,
                skipped,
            )
        return groups

    @traced("analytics_cache.warm")
    async def warm_data_source(self, source: DataSourceDescriptor) -> WarmResult:
        """Query the whole data source and cache it.

        Returns a skipped result when another process holds the warm lock.

        Raises:
            DataSourceConfigurationException: Bad schema or table name.
            QueryExecutionException: The analytical store failed.
        """
        start = time.perf_counter()
        lock_key = warm_lock_key(source.data_source_id)
        if not await self._cache.acquire_lock(lock_key, self._lock_seconds):
            logger.info(
                "Cache warming for data source %s already in progress, skipping",
                source.data_source_id,
            )
            return WarmResult(data_source_id=source.data_source_id, skipped=True)

        try:
            params = QueryParams(
                data_source_id=source.data_source_id,
                schema_name=source.schema_name,
                table_name=source.table_name,
                data_source_type=source.data_source_type,
            )
            rows = await self._executor.execute(params, include_predicates=False)
            ttl = self._ttl_policy.ttl_for(source.data_source_id)
            entries_cached = 0
            total_rows = 0
            for components, group_rows in self._group(source, rows).items():
                entry = CachedEntry.create(group_rows, components, ttl)
                if await self._cache.set(build_key(components), entry, ttl):
                    entries_cached += 1
                    total_rows += len(group_rows)
        finally:
            await self._cache.release_lock(lock_key)

        result = WarmResult(
            data_source_id=source.data_source_id,
            entries_cached=entries_cached,
            total_rows=total_rows,
            duration_ms=_elapsed_ms(start),
        )
        logger.info(
            "Warmed data source %s: %d entries, %d rows in %dms",
            source.data_source_id,
            result.entries_cached,
            result.total_rows,
            result.duration_ms,
        )
        return result

    async def warm_all(self, sources: Iterable[DataSourceDescriptor]) -> WarmAllResult:
        """Warm every source concurrently. A failing source is logged and counted, not raised."""
        start = time.perf_counter()
        sources = list(sources)
        outcomes = await asyncio.gather(
            *(self.warm_data_source(source) for source in sources),
            return_exceptions=True,
        )
        results: list[WarmResult] = []
        failed = 0
        for source, outcome in zip(sources, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                failed += 1
                logger.error(
                    "Cache warming failed for data source %s: %s",
                    source.data_source_id,
                    outcome,
                    exc_info=outcome,
                )
                continue
            results.append(outcome)
        summary = WarmAllResult(
            warmed=sum(1 for r in results if not r.skipped),
            skipped=sum(1 for r in results if r.skipped),
            failed=failed,
            total_entries=sum(r.entries_cached for r in results),
            total_rows=sum(r.total_rows for r in results),
            duration_ms=_elapsed_ms(start),
            results=results,
        )
        logger.info(
            "Warmed %d data sources (%d skipped, %d failed): %d entries, %d rows in %dms",
            summary.warmed,
            summary.skipped,
            summary.failed,
            summary.total_entries,
            summary.total_rows,
            summary.duration_ms,
        )
        return summary
