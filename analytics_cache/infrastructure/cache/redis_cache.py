"""Redis-backed cache store for analytics row sets.

Implements ICacheStore over redis.asyncio. Every operation degrades
instead of raising: when Redis is unreachable reads miss, writes report
False and prefix operations return empty results, so the fetch path falls
through to the analytical store. A dropped connection gets one reconnect
attempt per operation; after a failed connect the store waits
reconnect_interval seconds before trying again.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import redis.asyncio as redis

from analytics_cache.core.config import Settings, get_settings
from analytics_cache.domain.entities.cached_entry import CachedEntry
from analytics_cache.shared.utils.sanitization import escape_redis_glob

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SCAN page size hint and UNLINK batch size
_SCAN_COUNT = 500
_UNLINK_CHUNK_SIZE = 500


@dataclass
class _DeleteProgress:
    deleted: int = 0


class RedisCacheStore:
    """Async Redis cache store with TTL, size ceiling and prefix operations.

    Call connect() at startup and disconnect() at shutdown; operations also
    connect lazily. Pass redis_client for DI/testing; an injected client is
    never replaced, only re-pinged on reconnect.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
        *,
        max_entry_bytes: int | None = None,
        reconnect_interval: float = 30.0,
    ) -> None:
        """Initialize cache store.

        Args:
            redis_client: Optional Redis client for testing or DI.
            settings: Optional settings; defaults to get_settings().
            max_entry_bytes: Serialized size ceiling; defaults to settings.cache_max_entry_bytes.
            reconnect_interval: Seconds to wait after a failed connect before retrying.
        """
        self.settings = settings or get_settings()
        self.redis = redis_client
        self._owns_client = redis_client is None
        self.max_entry_bytes = max_entry_bytes or self.settings.cache_max_entry_bytes
        self.reconnect_interval = reconnect_interval
        self._connected = False
        self._retry_at = 0.0

    async def connect(self) -> None:
        """Establish (or verify) the Redis connection. Never raises on connection failure."""
        if self.redis is None:
            self.redis = redis.Redis(
                host=self.settings.redis_host,
                port=self.settings.redis_port,
                db=self.settings.redis_db,
                password=self.settings.redis_password.get_secret_value() if self.settings.redis_password else None,
                decode_responses=True,
                max_connections=self.settings.redis_max_connections,
                socket_connect_timeout=self.settings.redis_socket_timeout,
                socket_timeout=self.settings.redis_socket_timeout,
                socket_keepalive=True,
            )
        try:
            await self.redis.ping()
            self._connected = True
            logger.info(
                "Redis cache connected: %s:%s",
                self.settings.redis_host,
                self.settings.redis_port,
            )
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning(
                "Redis connection failed: %s. Serving from the analytical store until it recovers.",
                e,
            )
            self._connected = False
            self._retry_at = time.monotonic() + self.reconnect_interval
            if self._owns_client:
                await self._close_client()

    async def disconnect(self) -> None:
        """Close Redis connection. Call on shutdown."""
        if self.redis is not None:
            await self._close_client()
            self._connected = False
            logger.info("Redis cache disconnected")

    async def _close_client(self) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.aclose()
        except redis.RedisError:
            logger.debug("Ignoring error while closing Redis client", exc_info=True)
        self.redis = None

    async def _ensure_connected(self) -> bool:
        if self.is_available():
            return True
        if time.monotonic() < self._retry_at:
            return False
        await self.connect()
        return self.is_available()

    async def _reconnect(self) -> bool:
        """Attempt to reconnect after a dropped connection. Returns True if reconnected."""
        self._connected = False
        if self._owns_client:
            await self._close_client()
        self._retry_at = 0.0
        await self.connect()
        return self.is_available()

    def is_available(self) -> bool:
        """Return True if Redis is connected and usable."""
        return self._connected and self.redis is not None

    async def _run(
        self,
        operation: str,
        target: str,
        call: Callable[[redis.Redis], Awaitable[T]],
        default: T,
    ) -> T:
        """Run call against the client with one reconnect attempt; default on any Redis failure."""
        if not await self._ensure_connected() or self.redis is None:
            return default
        try:
            return await call(self.redis)
        except (redis.ConnectionError, redis.TimeoutError):
            if await self._reconnect() and self.redis is not None:
                try:
                    return await call(self.redis)
                except (redis.RedisError, UnicodeDecodeError):
                    logger.exception("Cache %s error for %s after reconnect", operation, target)
                    return default
            logger.warning("Cache %s unavailable for %s (Redis disconnected)", operation, target)
            return default
        except redis.RedisError:
            logger.exception("Cache %s error for %s", operation, target)
            return default
        except UnicodeDecodeError as e:
            # decode_responses=True: a non-UTF-8 value is a corrupt entry
            logger.warning("Cache %s for %s returned undecodable data: %s", operation, target, e)
            return default

    async def get(self, key: str) -> CachedEntry | None:
        """Return the stored entry, or None if missing, unavailable or undecodable.

        Args:
            key: Cache key (use analytics_cache.infrastructure.cache.keys builders).

        Returns:
            Cached entry or None.
        """
        raw = await self._run("get", key, lambda client: client.get(key), None)
        if raw is None:
            logger.debug("Cache MISS: %s", key)
            return None
        try:
            entry = CachedEntry.from_json(raw)
        except ValueError as e:
            logger.warning("Cache entry at %s is corrupt, treating as miss: %s", key, e)
            return None
        logger.debug("Cache HIT: %s (%d rows)", key, entry.row_count)
        return entry

    async def set(self, key: str, entry: CachedEntry, ttl: int) -> bool:
        """Store entry with TTL. Returns True on success.

        Entries whose serialized size exceeds max_entry_bytes are rejected
        with a warning.

        Args:
            key: Cache key.
            entry: Entry to store.
            ttl: Time-to-live in seconds.

        Returns:
            True if stored, False otherwise.
        """
        if not await self._ensure_connected():
            return False
        try:
            payload = entry.to_json()
        except (TypeError, ValueError) as e:
            logger.warning("Cache entry for %s is not serializable, skipping: %s", key, e)
            return False
        size = len(payload.encode("utf-8"))
        if size > self.max_entry_bytes:
            logger.warning(
                "Cache entry too large for %s: %d bytes (max %d, %d rows). Not cached.",
                key,
                size,
                self.max_entry_bytes,
                entry.row_count,
            )
            return False
        stored = await self._run(
            "set", key, lambda client: client.setex(key, ttl, payload), False
        )
        if stored:
            logger.debug("Cache SET: %s (TTL: %ss, %d bytes)", key, ttl, size)
        return bool(stored)

    async def delete_prefix(self, prefix: str) -> int:
        """Delete all keys starting with prefix using SCAN + batched UNLINK (non-blocking).

        A failed batch is retried key by key so one bad key does not stop
        the rest from being deleted.

        Args:
            prefix: Literal key prefix (glob characters are escaped).

        Returns:
            Number of keys deleted.
        """
        # Counted outside the retried call so batches removed before a
        # reconnect stay in the total
        progress = _DeleteProgress()
        await self._run(
            "delete_prefix",
            prefix,
            lambda client: self._unlink_matching(client, prefix, progress),
            0,
        )
        deleted = progress.deleted
        if deleted > 0:
            logger.info("Cache INVALIDATE: %s* (%s keys)", prefix, deleted)
        return deleted

    async def _unlink_matching(
        self, client: redis.Redis, prefix: str, progress: _DeleteProgress
    ) -> int:
        chunk: list[str] = []
        async for key in client.scan_iter(match=self._match(prefix), count=_SCAN_COUNT):
            chunk.append(key)
            if len(chunk) >= _UNLINK_CHUNK_SIZE:
                progress.deleted += await self._unlink_chunk(client, chunk)
                chunk = []
        if chunk:
            progress.deleted += await self._unlink_chunk(client, chunk)
        return progress.deleted

    async def _unlink_chunk(self, client: redis.Redis, keys: list[str]) -> int:
        try:
            return int(await client.unlink(*keys) or 0)
        except (redis.ConnectionError, redis.TimeoutError):
            raise
        except redis.RedisError:
            logger.warning("Batch UNLINK of %d keys failed; deleting individually", len(keys))
        deleted = 0
        for key in keys:
            try:
                deleted += int(await client.unlink(key) or 0)
            except (redis.ConnectionError, redis.TimeoutError):
                raise
            except redis.RedisError:
                logger.exception("Cache delete error for key %s", key)
        return deleted

    async def scan_prefix(self, prefix: str, limit: int | None = None) -> list[str]:
        """Return up to limit keys starting with prefix (SCAN, never KEYS)."""

        async def _scan(client: redis.Redis) -> list[str]:
            keys: list[str] = []
            async for key in client.scan_iter(match=self._match(prefix), count=_SCAN_COUNT):
                keys.append(key)
                if limit is not None and len(keys) >= limit:
                    break
            return keys

        return await self._run("scan_prefix", prefix, _scan, [])

    async def entry_sizes(self, keys: list[str]) -> list[int]:
        """Stored byte length of each key (STRLEN, pipelined); zeros when unavailable."""
        if not keys:
            return []

        async def _strlen(client: redis.Redis) -> list[int]:
            async with client.pipeline(transaction=False) as pipe:
                for key in keys:
                    pipe.strlen(key)
                results: list[Any] = await pipe.execute()
            return [int(r or 0) for r in results]

        return await self._run("entry_sizes", f"{len(keys)} keys", _strlen, [0] * len(keys))

    async def acquire_lock(self, key: str, ttl: int) -> bool:
        """SET key NX EX ttl. False if held elsewhere or Redis is unavailable."""
        acquired = await self._run(
            "acquire_lock",
            key,
            lambda client: client.set(key, "1", nx=True, ex=ttl),
            None,
        )
        return bool(acquired)

    async def release_lock(self, key: str) -> None:
        await self._run("release_lock", key, lambda client: client.delete(key), 0)

    @staticmethod
    def _match(prefix: str) -> str:
        return f"{escape_redis_glob(prefix)}*"
