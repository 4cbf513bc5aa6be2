"""Cache stats use case: key counts, sizes and fallback-level distribution."""

from __future__ import annotations

import heapq
import logging

from analytics_cache.application.dtos.cache import (
    DataSourceStats,
    LargestEntry,
    StatsSnapshot,
)
from analytics_cache.application.interfaces.services import ICacheStore
from analytics_cache.core.constants import STATS_LARGEST_ENTRIES
from analytics_cache.infrastructure.cache.keys import (
    namespace_prefix,
    parse_key,
    wildcard_count,
)

logger = logging.getLogger(__name__)


class CacheStatsCollector:
    """Read-only introspection of the cache namespace."""

    def __init__(self, cache_store: ICacheStore, scan_limit: int = 10_000) -> None:
        self._cache = cache_store
        self._scan_limit = scan_limit

    async def stats(self) -> StatsSnapshot:
        """Scan up to scan_limit keys and summarize them.

        Keys in the namespace that do not parse as cache keys count toward
        totals and level distribution but not the per-data-source breakdown.
        """
        keys = await self._cache.scan_prefix(namespace_prefix(), self._scan_limit)
        sizes = await self._cache.entry_sizes(keys)

        level_distribution: dict[int, int] = {}
        by_data_source: dict[int, DataSourceStats] = {}
        measures: dict[int, set[str]] = {}
        for key, size in zip(keys, sizes):
            level = wildcard_count(key)
            level_distribution[level] = level_distribution.get(level, 0) + 1
            try:
                components = parse_key(key)
            except ValueError:
                logger.debug("Skipping unparseable cache key in stats: %s", key)
                continue
            ds = by_data_source.setdefault(
                components.data_source_id,
                DataSourceStats(data_source_id=components.data_source_id),
            )
            ds.keys += 1
            ds.bytes += size
            if components.measure is not None:
                measures.setdefault(components.data_source_id, set()).add(components.measure)
        for data_source_id, names in measures.items():
            by_data_source[data_source_id].measures = sorted(names)

        largest = heapq.nlargest(STATS_LARGEST_ENTRIES, zip(sizes, keys))
        truncated = len(keys) >= self._scan_limit
        if truncated:
            logger.warning(
                "Cache stats truncated at %d keys; totals are a lower bound",
                self._scan_limit,
            )
        return StatsSnapshot(
            total_keys=len(keys),
            estimated_bytes=sum(sizes),
            level_distribution=level_distribution,
            by_data_source=by_data_source,
            largest_entries=[LargestEntry(key=k, size_bytes=s) for s, k in largest],
            truncated=truncated,
        )
