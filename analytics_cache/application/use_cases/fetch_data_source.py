"""Fetch data source use case: hierarchical cache lookup, then authorization and filters.

Flow for one request:

1. Derive KeyComponents from the params (never from the caller's identity).
2. Unless no_cache, walk the fallback chain and take the first hit. A hit on
   a broader key is narrowed back to the requested dimensions.
3. On a full miss, query the analytical store. When caching, the query
   covers the key dimensions only so the stored entry is the full union of
   rows for that key; with no_cache, query predicates are pushed into SQL.
   Non-empty results are written at the most specific key.
4. Apply the authorization filter, then the date range, then every
   predicate (query and in-memory) before returning.
"""

from __future__ import annotations

import logging
from typing import Any

from analytics_cache.application.dtos.cache import FetchResult
from analytics_cache.application.interfaces.services import ICacheStore, IQueryExecutor
from analytics_cache.application.services.authorization_filter import filter_rows
from analytics_cache.application.services.row_filters import (
    filter_by_date,
    filter_by_predicates,
    narrow_to_dimensions,
)
from analytics_cache.core.config import TtlPolicy
from analytics_cache.domain.entities.cached_entry import CachedEntry
from analytics_cache.domain.enums import DataSourceType
from analytics_cache.domain.exceptions import ValidationException
from analytics_cache.domain.value_objects.core import (
    ColumnMappings,
    QueryParams,
    RequestingIdentity,
)
from analytics_cache.infrastructure.cache.keys import fallback_chain, parse_key, wildcard_count
from analytics_cache.shared.telemetry.tracing import add_span_attributes, traced

logger = logging.getLogger(__name__)


class HierarchicalFetcher:
    """Read-through fetch of analytics rows with per-request authorization."""

    def __init__(
        self,
        cache_store: ICacheStore,
        query_executor: IQueryExecutor,
        ttl_policy: TtlPolicy,
        columns: ColumnMappings | None = None,
    ) -> None:
        self._cache = cache_store
        self._executor = query_executor
        self._ttl_policy = ttl_policy
        self._columns = columns or ColumnMappings()

    @staticmethod
    def _validate(params: QueryParams) -> None:
        if params.data_source_type is DataSourceType.MEASURE_BASED:
            missing = [n for n in ("measure", "frequency") if getattr(params, n) is None]
            if missing:
                raise ValidationException(
                    f"Measure-based data source {params.data_source_id} requires "
                    f"{' and '.join(missing)}",
                    missing[0],
                )

    async def _lookup(
        self, chain: list[str]
    ) -> tuple[list[dict[str, Any]], str, int] | None:
        """First hit along the chain as (rows narrowed to chain[0], key, level), or None."""
        requested = parse_key(chain[0])
        for key in chain:
            entry = await self._cache.get(key)
            if entry is None:
                continue
            rows = list(entry.rows)
            if key != chain[0]:
                rows = narrow_to_dimensions(rows, requested, parse_key(key), self._columns)
            return rows, key, wildcard_count(key)
        return None

    @traced("analytics_cache.fetch")
    async def fetch(
        self,
        params: QueryParams,
        identity: RequestingIdentity,
        no_cache: bool = False,
    ) -> FetchResult:
        """Return the rows identity may see for params.

        Args:
            params: Data source, key dimensions, date range and predicates.
            identity: Caller's resolved permissions (applied after fetch).
            no_cache: Skip cache reads and writes and query the store directly.

        Returns:
            FetchResult with authorized, filtered rows and cache provenance.

        Raises:
            ValidationException: Measure-based params without measure or frequency.
            DataSourceConfigurationException: Bad schema or table name.
            QueryExecutionException: The analytical store failed.
        """
        self._validate(params)
        chain = fallback_chain(params.key_components())
        hit = None if no_cache else await self._lookup(chain)

        if hit is not None:
            rows, cache_key, cache_level = hit
            logger.info(
                "Cache HIT for data source %s at %s (level %d, %d rows)",
                params.data_source_id,
                cache_key,
                cache_level,
                len(rows),
            )
        else:
            rows = await self._executor.execute(params, include_predicates=no_cache)
            cache_key, cache_level = None, None
            logger.info(
                "Cache %s for data source %s: %d rows from analytical store",
                "BYPASS" if no_cache else "MISS",
                params.data_source_id,
                len(rows),
            )
            if not no_cache and rows:
                await self._write(chain[0], params, rows)

        result_rows = filter_rows(rows, identity, self._columns)
        result_rows = filter_by_date(
            result_rows, params.start_date, params.end_date, self._columns.date_field
        )
        result_rows = filter_by_predicates(result_rows, params.all_predicates)

        add_span_attributes(
            **{
                "analytics.data_source_id": params.data_source_id,
                "analytics.cache_hit": hit is not None,
                "analytics.row_count": len(result_rows),
            }
        )
        return FetchResult(
            rows=result_rows,
            cache_hit=hit is not None,
            cache_key=cache_key,
            cache_level=cache_level,
        )

    async def _write(self, key: str, params: QueryParams, rows: list[dict[str, Any]]) -> None:
        ttl = self._ttl_policy.ttl_for(params.data_source_id)
        try:
            entry = CachedEntry.create(rows, params.key_components(), ttl)
        except (TypeError, ValueError) as e:
            logger.warning("Rows for %s are not serializable, not cached: %s", key, e)
            return
        if not await self._cache.set(key, entry, ttl):
            logger.debug("Cache write skipped for %s", key)
