"""Post-fetch authorization filtering of analytics rows.

The cache holds the union of rows every authorized viewer may see, so
each request is narrowed to the caller's entities here, after the cache
or the analytical store returned rows and before anything leaves the core.
Rows the caller cannot be proven to see are dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from analytics_cache.domain.enums import PermissionScope
from analytics_cache.domain.value_objects.core import ColumnMappings, RequestingIdentity
from analytics_cache.shared.telemetry.logging import AUDIT_LOGGER_NAME

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)


def _as_int(value: Any) -> int | None:
    """Row id as int; numeric strings are coerced, anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def filter_rows(
    rows: Iterable[dict[str, Any]],
    identity: RequestingIdentity,
    columns: ColumnMappings | None = None,
) -> list[dict[str, Any]]:
    """Return the rows identity is authorized to see, in input order.

    Scope ALL sees every row. Any other scope keeps a row only when its
    entity column holds one of authorized_entity_ids. When the identity
    carries authorized_sub_entity_ids, the sub-entity column must also be
    empty or one of them; an empty set places no sub-entity restriction.
    Rows without an entity value are dropped.

    Args:
        rows: Unfiltered rows (not mutated).
        identity: Caller's resolved permissions.
        columns: Column names for entity and sub-entity (defaults apply).

    Returns:
        New list of authorized rows.
    """
    rows = list(rows)
    if identity.permission_scope is PermissionScope.ALL:
        return rows

    columns = columns or ColumnMappings()
    entity_ids = identity.authorized_entity_ids
    sub_entity_ids = identity.authorized_sub_entity_ids

    kept: list[dict[str, Any]] = []
    for row in rows:
        entity_id = _as_int(row.get(columns.entity_field))
        if entity_id is None or entity_id not in entity_ids:
            continue
        raw_sub_entity = row.get(columns.sub_entity_field)
        if sub_entity_ids and raw_sub_entity is not None:
            sub_entity_id = _as_int(raw_sub_entity)
            if sub_entity_id is None or sub_entity_id not in sub_entity_ids:
                continue
        kept.append(row)

    if rows and not kept:
        audit_logger.warning(
            "Authorization filter removed all rows: identity=%s scope=%s rows_in=%d "
            "authorized_entities=%d authorized_sub_entities=%d",
            identity.id,
            identity.permission_scope.value,
            len(rows),
            len(entity_ids),
            len(sub_entity_ids),
        )
    else:
        logger.debug(
            "Authorization filter: identity=%s scope=%s kept %d of %d rows",
            identity.id,
            identity.permission_scope.value,
            len(kept),
            len(rows),
        )
    return kept
