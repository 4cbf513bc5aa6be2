"""Cache store used when Redis is disabled: every read misses, every write is dropped."""

from __future__ import annotations

from analytics_cache.domain.entities.cached_entry import CachedEntry


class NullCacheStore:
    """ICacheStore that stores nothing (REDIS_ENABLED=false)."""

    def is_available(self) -> bool:
        return False

    async def get(self, key: str) -> CachedEntry | None:
        return None

    async def set(self, key: str, entry: CachedEntry, ttl: int) -> bool:
        return False

    async def delete_prefix(self, prefix: str) -> int:
        return 0

    async def scan_prefix(self, prefix: str, limit: int | None = None) -> list[str]:
        return []

    async def entry_sizes(self, keys: list[str]) -> list[int]:
        return [0] * len(keys)

    async def acquire_lock(self, key: str, ttl: int) -> bool:
        # Nothing to warm into; callers treat this as "held elsewhere" and skip
        return False

    async def release_lock(self, key: str) -> None:
        return None
