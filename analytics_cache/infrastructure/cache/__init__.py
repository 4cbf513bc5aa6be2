"""Cache: Redis store and cache key utilities.

RedisCacheStore implements ICacheStore; key format lives in keys.py.
"""

from analytics_cache.infrastructure.cache.keys import (
    build_key,
    data_source_prefix,
    fallback_chain,
    measure_prefix,
    namespace_prefix,
    parse_key,
    warm_lock_key,
    wildcard_count,
)
from analytics_cache.infrastructure.cache.null_cache import NullCacheStore
from analytics_cache.infrastructure.cache.redis_cache import RedisCacheStore

__all__ = [
    "NullCacheStore",
    "RedisCacheStore",
    "build_key",
    "data_source_prefix",
    "fallback_chain",
    "measure_prefix",
    "namespace_prefix",
    "parse_key",
    "warm_lock_key",
    "wildcard_count",
]
