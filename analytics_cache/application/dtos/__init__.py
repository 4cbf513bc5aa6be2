"""Application DTOs (no Redis or SQLAlchemy dependency)."""

from analytics_cache.application.dtos.cache import (
    DataSourceStats,
    FetchResult,
    LargestEntry,
    StatsSnapshot,
    WarmAllResult,
    WarmResult,
)

__all__ = [
    "DataSourceStats",
    "FetchResult",
    "LargestEntry",
    "StatsSnapshot",
    "WarmAllResult",
    "WarmResult",
]
