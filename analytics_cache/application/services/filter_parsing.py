"""Build Predicates from loosely typed dashboard filter definitions.

Dashboard tiers send filters as dicts, either a plain list or an object
with a "conditions" list:

    [{"field": "provider_name", "operator": "contains", "value": "smith"}]
    {"conditions": [{"field": "amount", "operator": "between", "value": [10, 99]}]}

Long operator names are mapped to PredicateOperator. Conditions with an
unknown operator, no field, or no value are dropped with a warning; a
recognized operator with a value of the wrong shape raises.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from analytics_cache.domain.enums import PredicateOperator
from analytics_cache.domain.exceptions import ValidationException
from analytics_cache.domain.value_objects.core import Predicate

logger = logging.getLogger(__name__)

OPERATOR_ALIASES: dict[str, PredicateOperator] = {
    "eq": PredicateOperator.EQ,
    "equals": PredicateOperator.EQ,
    "neq": PredicateOperator.NEQ,
    "ne": PredicateOperator.NEQ,
    "not_equals": PredicateOperator.NEQ,
    "gt": PredicateOperator.GT,
    "greater_than": PredicateOperator.GT,
    "gte": PredicateOperator.GTE,
    "greater_than_or_equal": PredicateOperator.GTE,
    "lt": PredicateOperator.LT,
    "less_than": PredicateOperator.LT,
    "lte": PredicateOperator.LTE,
    "less_than_or_equal": PredicateOperator.LTE,
    "in": PredicateOperator.IN,
    "not_in": PredicateOperator.NOT_IN,
    "like": PredicateOperator.LIKE,
}

# Substring operators rewritten to LIKE with the value wrapped in wildcards
_LIKE_TEMPLATES: dict[str, str] = {
    "contains": "%{}%",
    "starts_with": "{}%",
    "ends_with": "%{}",
}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _conditions(raw: Any) -> list[Mapping[str, Any]]:
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        raw = raw.get("conditions") or []
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Iterable):
        raise ValidationException("Filters must be a list or an object with conditions", "filters")
    return [c for c in raw if isinstance(c, Mapping)]


def _predicates_for(field: str, operator: str, value: Any) -> list[Predicate]:
    if operator in _LIKE_TEMPLATES:
        if not isinstance(value, str):
            raise ValidationException(f"{operator} requires a string value", "value")
        pattern = _LIKE_TEMPLATES[operator].format(_escape_like(value))
        return [Predicate.of(field, PredicateOperator.LIKE, pattern)]
    if operator == "between":
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            raise ValidationException("between requires a two-element list", "value")
        bounds = list(value)
        if len(bounds) != 2:
            raise ValidationException("between requires a two-element list", "value")
        return [
            Predicate.of(field, PredicateOperator.GTE, bounds[0]),
            Predicate.of(field, PredicateOperator.LTE, bounds[1]),
        ]
    op = OPERATOR_ALIASES[operator]
    if op.takes_list and (isinstance(value, (str, int, float)) and not isinstance(value, bool)):
        value = [value]
    return [Predicate.of(field, op, value)]


def is_supported_operator(operator: str) -> bool:
    return operator in OPERATOR_ALIASES or operator in _LIKE_TEMPLATES or operator == "between"


def predicates_from_filters(raw: Any) -> tuple[Predicate, ...]:
    """Translate raw filter definitions into Predicates.

    Args:
        raw: List of condition dicts, or a dict with a "conditions" list, or None.

    Returns:
        Predicates in input order (between expands to two).

    Raises:
        ValidationException: If a supported operator gets an unusable value.
    """
    predicates: list[Predicate] = []
    for condition in _conditions(raw):
        field = condition.get("field")
        operator = str(condition.get("operator") or "").strip().lower()
        value = condition.get("value")
        if not field or value is None:
            logger.warning("Dropping filter without field or value: %s", dict(condition))
            continue
        if not is_supported_operator(operator):
            logger.warning(
                "Dropping filter on %s with unsupported operator %r", field, operator
            )
            continue
        predicates.extend(_predicates_for(str(field), operator, value))
    return tuple(predicates)
