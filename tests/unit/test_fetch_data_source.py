"""Fetch path: hierarchical lookup, read-through writes, and post-fetch filtering."""

import asyncio
from datetime import date

import pytest

from analytics_cache.application.use_cases.data_source_cache import DataSourceCache
from analytics_cache.core.config import Settings
from analytics_cache.domain.entities.cached_entry import CachedEntry
from analytics_cache.domain.enums import PermissionScope
from analytics_cache.domain.exceptions import QueryExecutionException, ValidationException
from analytics_cache.domain.value_objects.core import KeyComponents, Predicate
from analytics_cache.infrastructure.cache.keys import build_key
from tests.conftest import FakeQueryExecutor, InMemoryCacheStore, make_identity, make_params

CHARGES_KEY = "ns:1:m:Charges:e:*:se:*:f:Monthly"

IDENTITY_A = make_identity(entity_ids=(114, 115, 116), identity_id="a")
IDENTITY_B = make_identity(entity_ids=(114,), identity_id="b")
ADMIN = make_identity(PermissionScope.ALL, identity_id="admin")


def _entities(rows: list[dict]) -> set[int]:
    return {r["practice_uid"] for r in rows}


async def test_miss_queries_store_and_writes_union(
    data_source_cache: DataSourceCache,
    cache_store: InMemoryCacheStore,
    query_executor: FakeQueryExecutor,
) -> None:
    result = await data_source_cache.fetch_data_source(make_params(), IDENTITY_B)
    assert result.cache_hit is False
    assert result.cache_key is None
    assert len(query_executor.calls) == 1
    assert query_executor.calls[0][1] is False
    # Stored entry holds every practice, not the caller's subset
    stored = cache_store.entries[CHARGES_KEY]
    assert stored.row_count == 7
    assert _entities(list(stored.rows)) == {114, 115, 116}


async def test_hit_after_miss_returns_same_rows(
    data_source_cache: DataSourceCache, query_executor: FakeQueryExecutor
) -> None:
    first = await data_source_cache.fetch_data_source(make_params(), IDENTITY_A)
    second = await data_source_cache.fetch_data_source(make_params(), IDENTITY_A)
    assert second.cache_hit is True
    assert second.cache_key == CHARGES_KEY
    assert second.cache_level == 2
    assert second.rows == first.rows
    assert len(query_executor.calls) == 1


async def test_identities_share_entry_but_see_their_own_entities(
    data_source_cache: DataSourceCache, query_executor: FakeQueryExecutor
) -> None:
    a = await data_source_cache.fetch_data_source(make_params(), IDENTITY_A)
    b = await data_source_cache.fetch_data_source(make_params(), IDENTITY_B)
    assert _entities(a.rows) == {114, 115, 116}
    assert _entities(b.rows) == {114}
    assert len(a.rows) == 7
    assert len(b.rows) == 3
    assert len(b.rows) < len(a.rows)
    assert b.cache_hit is True
    assert len(query_executor.calls) == 1


async def test_every_row_is_within_authorized_entities(data_source_cache: DataSourceCache) -> None:
    identity = make_identity(PermissionScope.OWN, entity_ids=(115, 116), sub_entity_ids=(2001,))
    result = await data_source_cache.fetch_data_source(make_params(), identity)
    assert result.rows
    assert all(r["practice_uid"] in identity.authorized_entity_ids for r in result.rows)
    assert _entities(result.rows) == {115}


async def test_scope_all_receives_full_row_set(
    data_source_cache: DataSourceCache, analytics_rows: list[dict]
) -> None:
    result = await data_source_cache.fetch_data_source(make_params(), ADMIN)
    expected = [r for r in analytics_rows if r["measure"] == "Charges"]
    assert result.rows == expected


async def test_date_ranges_share_one_entry(data_source_cache: DataSourceCache) -> None:
    january = await data_source_cache.fetch_data_source(
        make_params(start_date=date(2025, 1, 1), end_date=date(2025, 1, 31)), ADMIN
    )
    q1 = await data_source_cache.fetch_data_source(
        make_params(start_date=date(2025, 1, 1), end_date=date(2025, 3, 31)), ADMIN
    )
    assert len(january.rows) == 3
    assert len(q1.rows) == 7
    stats = await data_source_cache.stats()
    assert stats.total_keys == 1


async def test_invalidate_data_source_forces_requery(
    data_source_cache: DataSourceCache, query_executor: FakeQueryExecutor
) -> None:
    await data_source_cache.fetch_data_source(make_params(), ADMIN)
    assert await data_source_cache.invalidate_data_source(1) == 1
    result = await data_source_cache.fetch_data_source(make_params(), ADMIN)
    assert result.cache_hit is False
    assert len(query_executor.calls) == 2


@pytest.mark.parametrize("no_cache", [False, True])
async def test_empty_in_predicate_yields_no_rows(
    data_source_cache: DataSourceCache, no_cache: bool
) -> None:
    params = make_params(query_predicates=(Predicate.of("practice_uid", "in", []),))
    result = await data_source_cache.fetch_data_source(params, ADMIN, no_cache=no_cache)
    assert result.rows == []


async def test_query_predicates_applied_without_narrowing_the_entry(
    data_source_cache: DataSourceCache, cache_store: InMemoryCacheStore
) -> None:
    params = make_params(query_predicates=(Predicate.of("practice_uid", "in", [115]),))
    result = await data_source_cache.fetch_data_source(params, ADMIN)
    assert _entities(result.rows) == {115}
    assert cache_store.entries[CHARGES_KEY].row_count == 7


async def test_in_memory_predicates_applied_after_authorization(data_source_cache: DataSourceCache) -> None:
    params = make_params(in_memory_predicates=(Predicate.of("measure_value", "gte", 110),))
    result = await data_source_cache.fetch_data_source(params, IDENTITY_B)
    assert [r["measure_value"] for r in result.rows] == [110.0, 120.0]


async def test_no_cache_bypasses_reads_and_writes(
    data_source_cache: DataSourceCache,
    cache_store: InMemoryCacheStore,
    query_executor: FakeQueryExecutor,
) -> None:
    params = make_params(query_predicates=(Predicate.of("practice_uid", "eq", 116),))
    result = await data_source_cache.fetch_data_source(params, ADMIN, no_cache=True)
    assert _entities(result.rows) == {116}
    assert cache_store.get_calls == []
    assert cache_store.set_calls == []
    assert query_executor.calls[0][1] is True


async def test_broader_hit_is_narrowed_to_request(
    data_source_cache: DataSourceCache,
    cache_store: InMemoryCacheStore,
    analytics_rows: list[dict],
    query_executor: FakeQueryExecutor,
) -> None:
    entry = CachedEntry.create(
        [r for r in analytics_rows if r["measure"] == "Charges"],
        KeyComponents(1, measure="Charges", frequency="Monthly"),
        60,
    )
    cache_store.entries[CHARGES_KEY] = entry
    result = await data_source_cache.fetch_data_source(make_params(entity_id=114), ADMIN)
    assert result.cache_hit is True
    assert result.cache_key == CHARGES_KEY
    assert _entities(result.rows) == {114}
    assert len(result.rows) == 3
    assert query_executor.calls == []
    assert cache_store.get_calls[0] == "ns:1:m:Charges:e:114:se:*:f:Monthly"


async def test_data_source_level_hit_narrows_measure(
    data_source_cache: DataSourceCache,
    cache_store: InMemoryCacheStore,
    analytics_rows: list[dict],
) -> None:
    cache_store.entries[build_key(KeyComponents(1))] = CachedEntry.create(
        analytics_rows, KeyComponents(1), 60
    )
    result = await data_source_cache.fetch_data_source(make_params(measure="Payments"), ADMIN)
    assert result.cache_level == 4
    assert {r["measure"] for r in result.rows} == {"Payments"}
    assert len(result.rows) == 2


async def test_empty_result_not_cached(
    data_source_cache: DataSourceCache, cache_store: InMemoryCacheStore
) -> None:
    result = await data_source_cache.fetch_data_source(make_params(measure="Unknown"), ADMIN)
    assert result.rows == []
    assert cache_store.entries == {}


async def test_unavailable_cache_falls_through(
    data_source_cache: DataSourceCache,
    cache_store: InMemoryCacheStore,
    query_executor: FakeQueryExecutor,
) -> None:
    cache_store.available = False
    first = await data_source_cache.fetch_data_source(make_params(), IDENTITY_B)
    second = await data_source_cache.fetch_data_source(make_params(), IDENTITY_B)
    assert first.rows == second.rows
    assert _entities(first.rows) == {114}
    assert len(query_executor.calls) == 2


async def test_query_failure_propagates(
    data_source_cache: DataSourceCache, query_executor: FakeQueryExecutor
) -> None:
    query_executor.error = QueryExecutionException("OperationalError", 1)
    with pytest.raises(QueryExecutionException):
        await data_source_cache.fetch_data_source(make_params(), ADMIN)


async def test_measure_based_requires_measure_and_frequency(data_source_cache: DataSourceCache) -> None:
    with pytest.raises(ValidationException, match="frequency"):
        await data_source_cache.fetch_data_source(make_params(frequency=None), ADMIN)


async def test_table_based_fetch_uses_data_source_key(
    data_source_cache: DataSourceCache, cache_store: InMemoryCacheStore
) -> None:
    params = make_params(measure=None, frequency=None, data_source_type="table-based")
    await data_source_cache.fetch_data_source(params, ADMIN)
    assert list(cache_store.entries) == ["ns:1:m:*:e:*:se:*:f:*"]


async def test_ttl_policy_per_data_source(
    cache_store: InMemoryCacheStore, query_executor: FakeQueryExecutor
) -> None:
    settings = Settings(_env_file=None, cache_ttl_overrides={1: 600})
    cache = DataSourceCache.from_settings(cache_store, query_executor, settings)
    await cache.fetch_data_source(make_params(), ADMIN)
    assert cache_store.ttls[CHARGES_KEY] == 600


async def test_cancelled_query_propagates_without_cache_write(
    data_source_cache: DataSourceCache,
    cache_store: InMemoryCacheStore,
    query_executor: FakeQueryExecutor,
) -> None:
    query_executor.error = asyncio.CancelledError()
    with pytest.raises(asyncio.CancelledError):
        await data_source_cache.fetch_data_source(make_params(), ADMIN)
    assert cache_store.set_calls == []
    assert cache_store.entries == {}


async def test_caller_timeout_cancels_slow_query(
    cache_store: InMemoryCacheStore, analytics_rows: list[dict], settings: Settings
) -> None:
    class SlowExecutor(FakeQueryExecutor):
        async def execute(self, params, *, include_predicates=True):
            await asyncio.sleep(10)
            return await super().execute(params, include_predicates=include_predicates)

    cache = DataSourceCache.from_settings(cache_store, SlowExecutor(analytics_rows), settings)
    with pytest.raises(TimeoutError):
        async with asyncio.timeout(0.05):
            await cache.fetch_data_source(make_params(), ADMIN)
    assert cache_store.set_calls == []
