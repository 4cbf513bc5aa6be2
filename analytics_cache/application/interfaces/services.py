"""Service interfaces (ports) for the application layer.

Protocols define contracts for the cache store and the analytical store
(DIP). Infrastructure implements them; tests substitute in-memory fakes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from analytics_cache.domain.entities.cached_entry import CachedEntry
    from analytics_cache.domain.value_objects.core import QueryParams


Row = dict[str, Any]


# Cache store interface
class ICacheStore(Protocol):
    """Protocol for the shared key-value cache holding CachedEntry values.

    Implementations degrade instead of raising: when the backing service is
    unreachable get returns None, set returns False, and the prefix
    operations return empty results.
    """

    def is_available(self) -> bool:
        """Return True if the backing service is connected."""

    async def get(self, key: str) -> CachedEntry | None:
        """Return the entry stored at key, or None on miss or unavailability."""

    async def set(self, key: str, entry: CachedEntry, ttl: int) -> bool:
        """Store entry with TTL in seconds. False when rejected or unavailable."""

    async def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with prefix. Returns count deleted."""

    async def scan_prefix(self, prefix: str, limit: int | None = None) -> list[str]:
        """Return up to limit keys starting with prefix."""

    async def entry_sizes(self, keys: list[str]) -> list[int]:
        """Return the stored byte length of each key (0 if missing), in order."""

    async def acquire_lock(self, key: str, ttl: int) -> bool:
        """Set key only if absent, expiring after ttl. True if acquired."""

    async def release_lock(self, key: str) -> None:
        """Release a lock taken with acquire_lock."""


# Analytical store interface
class IQueryBackend(Protocol):
    """Protocol for running a parameterized read query against the analytical store."""

    async def fetch_all(self, query: str, params: dict[str, Any]) -> list[Row]:
        """Execute query with named bind params and return rows as dicts.

        Raises QueryExecutionException when the store fails.
        """


# Query executor interface
class IQueryExecutor(Protocol):
    """Protocol for turning QueryParams into rows from the analytical store."""

    async def execute(
        self, params: QueryParams, *, include_predicates: bool = True
    ) -> list[Row]:
        """Query rows matching the params' key dimensions (and query predicates when asked)."""
