"""Builds and runs the parameterized read query for one data source.

The WHERE clause holds equality on the populated key dimensions and,
when asked, the query predicates. Values are always bound (:p0, :p1, ...);
identifiers are allowlisted and quoted. Examples of the generated SQL:

    SELECT * FROM "ih"."agg_app_measures"
    WHERE "measure" = :p0 AND "frequency" = :p1 AND "practice_uid" = ANY(:p2)
    ORDER BY "date_index" ASC
"""

from __future__ import annotations

import logging
from typing import Any

from analytics_cache.application.interfaces.services import IQueryBackend
from analytics_cache.domain.enums import PredicateOperator
from analytics_cache.domain.exceptions import DataSourceConfigurationException
from analytics_cache.domain.value_objects.core import (
    ColumnMappings,
    Predicate,
    QueryParams,
)
from analytics_cache.shared.telemetry.tracing import add_span_attributes, traced
from analytics_cache.shared.utils.sanitization import is_sql_identifier, quote_identifier

logger = logging.getLogger(__name__)

# Always-false condition for predicates no row can satisfy
UNSATISFIABLE = "1 = 0"

_COMPARISON_SQL: dict[PredicateOperator, str] = {
    PredicateOperator.EQ: "=",
    PredicateOperator.NEQ: "<>",
    PredicateOperator.GT: ">",
    PredicateOperator.GTE: ">=",
    PredicateOperator.LT: "<",
    PredicateOperator.LTE: "<=",
    PredicateOperator.LIKE: "ILIKE",
}


class _Binds:
    """Allocates sequential bind parameter names."""

    def __init__(self) -> None:
        self.params: dict[str, Any] = {}

    def add(self, value: Any) -> str:
        name = f"p{len(self.params)}"
        self.params[name] = value
        return f":{name}"


class QueryExecutor:
    """Turns QueryParams into rows from the analytical store (implements IQueryExecutor)."""

    def __init__(self, backend: IQueryBackend, columns: ColumnMappings | None = None) -> None:
        """Initialize executor.

        Args:
            backend: Runs the compiled SQL.
            columns: Column names for the date and key dimensions.

        Raises:
            ValueError: If a mapped column is not a plain identifier.
        """
        self.backend = backend
        self.columns = columns or ColumnMappings()
        for name in ("date_field", "entity_field", "sub_entity_field", "measure_field", "frequency_field"):
            quote_identifier(getattr(self.columns, name))

    def build_query(
        self, params: QueryParams, *, include_predicates: bool = True
    ) -> tuple[str, dict[str, Any]]:
        """Compile params to (sql, bind params) without running it.

        Raises:
            DataSourceConfigurationException: If schema or table is not a plain identifier.
        """
        for label, value in (("schema", params.schema_name), ("table", params.table_name)):
            if not is_sql_identifier(value):
                raise DataSourceConfigurationException(
                    params.data_source_id, f"{label} name {value!r} is not a valid identifier"
                )
        binds = _Binds()
        clauses: list[str] = []
        for column, value in (
            (self.columns.measure_field, params.measure),
            (self.columns.frequency_field, params.frequency),
            (self.columns.entity_field, params.entity_id),
            (self.columns.sub_entity_field, params.sub_entity_id),
        ):
            if value is not None:
                clauses.append(f"{quote_identifier(column)} = {binds.add(value)}")
        if include_predicates:
            for predicate in params.query_predicates:
                clause = self._compile_predicate(predicate, binds)
                if clause is not None:
                    clauses.append(clause)

        sql = f"SELECT * FROM {quote_identifier(params.schema_name)}.{quote_identifier(params.table_name)}"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += f" ORDER BY {quote_identifier(self.columns.date_field)} ASC"
        return sql, binds.params

    def _compile_predicate(self, predicate: Predicate, binds: _Binds) -> str | None:
        if not is_sql_identifier(predicate.field):
            logger.warning(
                "Dropping query predicate on invalid field name %r", predicate.field
            )
            return None
        column = quote_identifier(predicate.field)
        operator = predicate.operator
        if operator in (PredicateOperator.IN, PredicateOperator.NOT_IN):
            items = list(predicate.value.items)
            if not items:
                return UNSATISFIABLE
            if operator is PredicateOperator.IN:
                return f"{column} = ANY({binds.add(items)})"
            return f"{column} <> ALL({binds.add(items)})"
        sql_operator = _COMPARISON_SQL.get(operator)
        if sql_operator is None:
            logger.warning("Dropping query predicate with unsupported operator %s", operator)
            return None
        return f"{column} {sql_operator} {binds.add(predicate.value.value)}"

    @traced("analytics_cache.query")
    async def execute(
        self, params: QueryParams, *, include_predicates: bool = True
    ) -> list[dict[str, Any]]:
        """Query rows for params' key dimensions (and query predicates when include_predicates).

        Raises:
            DataSourceConfigurationException: Bad schema or table identifier.
            QueryExecutionException: The store failed (from the backend).
        """
        sql, bind_params = self.build_query(params, include_predicates=include_predicates)
        logger.debug(
            "Analytics query for data source %s: %s (%d params)",
            params.data_source_id,
            sql,
            len(bind_params),
        )
        rows = await self.backend.fetch_all(sql, bind_params)
        add_span_attributes(
            **{"analytics.data_source_id": params.data_source_id, "analytics.row_count": len(rows)}
        )
        return rows
