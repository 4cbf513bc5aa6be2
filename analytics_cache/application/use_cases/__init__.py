"""Application use cases: fetch, invalidation, stats, warming, and the DataSourceCache facade."""

from analytics_cache.application.use_cases.cache_stats import CacheStatsCollector
from analytics_cache.application.use_cases.cache_warming import CacheWarmer
from analytics_cache.application.use_cases.data_source_cache import DataSourceCache
from analytics_cache.application.use_cases.fetch_data_source import HierarchicalFetcher
from analytics_cache.application.use_cases.invalidation import CacheInvalidator

__all__ = [
    "CacheInvalidator",
    "CacheStatsCollector",
    "CacheWarmer",
    "DataSourceCache",
    "HierarchicalFetcher",
]
