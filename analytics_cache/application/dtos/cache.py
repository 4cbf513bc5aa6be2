"""DTOs for cache fetch, stats and warming results (no dependency on Redis or SQLAlchemy)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class FetchResult:
    """Authorized, filtered rows for one fetch and where they came from.

    cache_key and cache_level are None when the rows came from the
    analytical store; cache_level is the wildcard depth of the hit key.
    """

    rows: list[dict[str, Any]]
    cache_hit: bool
    cache_key: str | None = None
    cache_level: int | None = None


@dataclass
class DataSourceStats:
    """Cached keys, bytes and distinct measures for one data source."""

    data_source_id: int
    keys: int = 0
    bytes: int = 0
    measures: list[str] = field(default_factory=list)


@dataclass
class LargestEntry:
    key: str
    size_bytes: int


@dataclass
class StatsSnapshot:
    """Point-in-time view of the cache namespace.

    level_distribution maps wildcard count (fallback level) to key count.
    Bounded by the scan limit; truncated is True when the limit was hit.
    """

    total_keys: int
    estimated_bytes: int
    level_distribution: dict[int, int]
    by_data_source: dict[int, DataSourceStats] = field(default_factory=dict)
    largest_entries: list[LargestEntry] = field(default_factory=list)
    truncated: bool = False


@dataclass
class WarmResult:
    """Outcome of warming one data source."""

    data_source_id: int
    entries_cached: int = 0
    total_rows: int = 0
    duration_ms: int = 0
    skipped: bool = False


@dataclass
class WarmAllResult:
    """Outcome of warming several data sources concurrently."""

    warmed: int
    skipped: int
    failed: int
    total_entries: int
    total_rows: int
    duration_ms: int
    results: list[WarmResult] = field(default_factory=list)
