"""In-memory row filters: date range, declarative predicates and key dimensions.

Evaluation mirrors how the analytical store would answer the same
condition, so a cached result filtered here equals a query that pushed the
condition into SQL:

- A missing or None field fails every operator (SQL null semantics).
- A number compared with a numeric string compares numerically ("114" == 114).
- LIKE uses SQL % and _ wildcards and ignores case (ILIKE).
- IN and NOT_IN with an empty list match nothing.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from datetime import date, datetime
from decimal import Decimal
from functools import lru_cache
from typing import Any

from analytics_cache.domain.enums import PredicateOperator
from analytics_cache.domain.value_objects.core import (
    ColumnMappings,
    KeyComponents,
    Predicate,
)
from analytics_cache.shared.utils.datetime import parse_row_date

Row = dict[str, Any]


def filter_by_date(
    rows: Iterable[Row],
    start: date | None,
    end: date | None,
    date_field: str = "date_index",
) -> list[Row]:
    """Keep rows whose date_field lies in [start, end]; either bound may be None.

    With no bounds every row is kept. With any bound, rows whose date is
    missing or unparseable are dropped.
    """
    rows = list(rows)
    if start is None and end is None:
        return rows
    kept = []
    for row in rows:
        row_date = parse_row_date(row.get(date_field))
        if row_date is None:
            continue
        if start is not None and row_date < start:
            continue
        if end is not None and row_date > end:
            continue
        kept.append(row)
    return kept


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _as_text(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _comparable(left: Any, right: Any) -> tuple[Any, Any]:
    """Coerce a pair for comparison: numeric when one side is a number and both parse, else text."""
    is_numeric = isinstance(left, (int, float, Decimal)) or isinstance(
        right, (int, float, Decimal)
    )
    if is_numeric and not isinstance(left, bool) and not isinstance(right, bool):
        left_num, right_num = _as_number(left), _as_number(right)
        if left_num is not None and right_num is not None:
            return left_num, right_num
    return _as_text(left), _as_text(right)


def _equals(left: Any, right: Any) -> bool:
    a, b = _comparable(left, right)
    return a == b


@lru_cache(maxsize=256)
def _like_regex(pattern: str) -> re.Pattern[str]:
    """Compile a SQL LIKE pattern (backslash escapes) to a case-insensitive regex."""
    parts: list[str] = []
    escaped = False
    for char in pattern:
        if escaped:
            parts.append(re.escape(char))
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    if escaped:
        parts.append(re.escape("\\"))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


def _compare(test: Callable[[Any, Any], bool]) -> Callable[[Any, tuple[Any, ...]], bool]:
    def evaluate(value: Any, items: tuple[Any, ...]) -> bool:
        a, b = _comparable(value, items[0])
        try:
            return test(a, b)
        except TypeError:
            return False

    return evaluate


_EVALUATORS: dict[PredicateOperator, Callable[[Any, tuple[Any, ...]], bool]] = {
    PredicateOperator.EQ: lambda value, items: _equals(value, items[0]),
    PredicateOperator.NEQ: lambda value, items: not _equals(value, items[0]),
    PredicateOperator.GT: _compare(lambda a, b: a > b),
    PredicateOperator.GTE: _compare(lambda a, b: a >= b),
    PredicateOperator.LT: _compare(lambda a, b: a < b),
    PredicateOperator.LTE: _compare(lambda a, b: a <= b),
    PredicateOperator.IN: lambda value, items: any(_equals(value, i) for i in items),
    PredicateOperator.NOT_IN: lambda value, items: bool(items)
    and not any(_equals(value, i) for i in items),
    PredicateOperator.LIKE: lambda value, items: _like_regex(items[0]).fullmatch(
        _as_text(value)
    )
    is not None,
}


def matches(row: Row, predicate: Predicate) -> bool:
    """True if row satisfies predicate."""
    value = row.get(predicate.field)
    if value is None:
        return False
    return _EVALUATORS[predicate.operator](value, predicate.value.items)


def filter_by_predicates(rows: Iterable[Row], predicates: Iterable[Predicate]) -> list[Row]:
    """Keep rows satisfying every predicate (AND). No predicates keeps every row."""
    predicates = tuple(predicates)
    if not predicates:
        return list(rows)
    return [row for row in rows if all(matches(row, p) for p in predicates)]


def narrow_to_dimensions(
    rows: Iterable[Row],
    requested: KeyComponents,
    cached: KeyComponents,
    columns: ColumnMappings | None = None,
) -> list[Row]:
    """Restrict rows from a broader cache entry to the requested dimensions.

    Applies equality for each dimension the request sets but the cached
    entry's key wildcards. Rows missing such a column are dropped.
    """
    columns = columns or ColumnMappings()
    checks = [
        (column, wanted)
        for column, wanted, have in (
            (columns.measure_field, requested.measure, cached.measure),
            (columns.entity_field, requested.entity_id, cached.entity_id),
            (columns.sub_entity_field, requested.sub_entity_id, cached.sub_entity_id),
            (columns.frequency_field, requested.frequency, cached.frequency),
        )
        if wanted is not None and have is None
    ]
    if not checks:
        return list(rows)
    return [
        row
        for row in rows
        if all(
            row.get(column) is not None and _equals(row.get(column), wanted)
            for column, wanted in checks
        )
    ]
