"""Cache invalidation use case: prefix deletes for the namespace, a data source, or a measure."""

from __future__ import annotations

import logging

from analytics_cache.application.interfaces.services import ICacheStore
from analytics_cache.core.constants import CACHE_KEY_WILDCARD
from analytics_cache.domain.value_objects.core import KeyComponents
from analytics_cache.infrastructure.cache.keys import (
    data_source_prefix,
    measure_prefix,
    namespace_prefix,
)

logger = logging.getLogger(__name__)


class CacheInvalidator:
    """Deletes cached entries by key prefix. Best-effort; returns counts removed."""

    def __init__(self, cache_store: ICacheStore) -> None:
        self._cache = cache_store

    async def invalidate_all(self) -> int:
        """Delete every entry in the cache namespace."""
        deleted = await self._cache.delete_prefix(namespace_prefix())
        logger.info("Invalidated all analytics cache entries (%d keys)", deleted)
        return deleted

    async def invalidate_data_source(self, data_source_id: int) -> int:
        """Delete every entry for one data source, at every fallback level."""
        # Raises ValidationException for ids that cannot appear in a key
        KeyComponents(data_source_id=data_source_id)
        deleted = await self._cache.delete_prefix(data_source_prefix(data_source_id))
        logger.info(
            "Invalidated data source %s (%d keys)", data_source_id, deleted
        )
        return deleted

    async def invalidate_dimension(self, data_source_id: int, measure: str) -> int:
        """Delete entries for one measure of a data source.

        Entries keyed with a wildcard measure also hold this measure's rows,
        so they are deleted too.

        Raises:
            ValidationException: If measure is not a valid key dimension.
        """
        # Raises ValidationException for dimensions that cannot appear in a key
        KeyComponents(data_source_id=data_source_id, measure=measure)
        deleted = await self._cache.delete_prefix(measure_prefix(data_source_id, measure))
        deleted += await self._cache.delete_prefix(
            measure_prefix(data_source_id, CACHE_KEY_WILDCARD)
        )
        logger.info(
            "Invalidated data source %s measure %s (%d keys)",
            data_source_id,
            measure,
            deleted,
        )
        return deleted
