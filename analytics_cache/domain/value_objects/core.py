"""Domain value objects for the analytics cache.

Value objects are immutable types that validate themselves on
construction. Invalid shapes (empty dimension strings, IN with a scalar,
LIKE with a number) fail here rather than at query time.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from analytics_cache.core.constants import CACHE_KEY_SEP, CACHE_KEY_WILDCARD
from analytics_cache.domain.enums import (
    DataSourceType,
    PermissionScope,
    PredicateOperator,
    PredicateValueKind,
)
from analytics_cache.domain.exceptions import ValidationException


def _validate_int(value: Any, field_name: str) -> None:
    """Raise ValidationException unless value is a non-negative int (bool rejected)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationException(f"{field_name} must be an integer", field_name)
    if value < 0:
        raise ValidationException(f"{field_name} must be non-negative", field_name)


def _validate_dimension_str(value: Any, field_name: str) -> None:
    """Raise ValidationException unless value is usable as a key dimension string."""
    if not isinstance(value, str) or not value:
        raise ValidationException(
            f"{field_name} must be a non-empty string or None", field_name
        )
    if CACHE_KEY_SEP in value:
        raise ValidationException(
            f"{field_name} must not contain separator {CACHE_KEY_SEP!r}", field_name
        )
    if value == CACHE_KEY_WILDCARD:
        raise ValidationException(
            f"{field_name} must not be the wildcard token {CACHE_KEY_WILDCARD!r}",
            field_name,
        )


@dataclass(frozen=True)
class KeyComponents:
    """Cache-key dimensions shared by every authorized viewer.

    Never derived from a requester's permissions. A dimension is either
    present or None; None serializes to the wildcard token.
    """

    data_source_id: int
    measure: str | None = None
    entity_id: int | None = None
    sub_entity_id: int | None = None
    frequency: str | None = None

    def __post_init__(self) -> None:
        _validate_int(self.data_source_id, "data_source_id")
        if self.measure is not None:
            _validate_dimension_str(self.measure, "measure")
        if self.entity_id is not None:
            _validate_int(self.entity_id, "entity_id")
        if self.sub_entity_id is not None:
            _validate_int(self.sub_entity_id, "sub_entity_id")
        if self.frequency is not None:
            _validate_dimension_str(self.frequency, "frequency")

    def to_dict(self) -> dict[str, Any]:
        return {
            "data_source_id": self.data_source_id,
            "measure": self.measure,
            "entity_id": self.entity_id,
            "sub_entity_id": self.sub_entity_id,
            "frequency": self.frequency,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KeyComponents":
        return cls(
            data_source_id=data["data_source_id"],
            measure=data.get("measure"),
            entity_id=data.get("entity_id"),
            sub_entity_id=data.get("sub_entity_id"),
            frequency=data.get("frequency"),
        )


_SCALAR_TYPES: dict[PredicateValueKind, type] = {
    PredicateValueKind.INT: int,
    PredicateValueKind.FLOAT: float,
    PredicateValueKind.STRING: str,
}
_LIST_ITEM_TYPES: dict[PredicateValueKind, type] = {
    PredicateValueKind.INT_LIST: int,
    PredicateValueKind.STRING_LIST: str,
}


@dataclass(frozen=True)
class PredicateValue:
    """Tagged predicate value: the kind says which Python shape value holds.

    List kinds hold tuples. Build with the named constructors or infer().
    """

    kind: PredicateValueKind
    value: int | float | str | tuple[int, ...] | tuple[str, ...]

    def __post_init__(self) -> None:
        if self.kind.is_list:
            if isinstance(self.value, (str, bytes)) or not isinstance(
                self.value, Iterable
            ):
                raise ValidationException(
                    f"{self.kind.value} value must be a list", "value"
                )
            items = tuple(self.value)
            item_type = _LIST_ITEM_TYPES[self.kind]
            for item in items:
                if isinstance(item, bool) or not isinstance(item, item_type):
                    raise ValidationException(
                        f"{self.kind.value} items must be {item_type.__name__}", "value"
                    )
            object.__setattr__(self, "value", items)
            return
        expected = _SCALAR_TYPES[self.kind]
        if self.kind is PredicateValueKind.FLOAT and isinstance(self.value, int):
            object.__setattr__(self, "value", float(self.value))
        if isinstance(self.value, bool) or not isinstance(self.value, expected):
            raise ValidationException(
                f"{self.kind.value} value must be {expected.__name__}", "value"
            )

    @classmethod
    def integer(cls, value: int) -> "PredicateValue":
        return cls(PredicateValueKind.INT, value)

    @classmethod
    def number(cls, value: float) -> "PredicateValue":
        return cls(PredicateValueKind.FLOAT, value)

    @classmethod
    def string(cls, value: str) -> "PredicateValue":
        return cls(PredicateValueKind.STRING, value)

    @classmethod
    def int_list(cls, values: Iterable[int]) -> "PredicateValue":
        return cls(PredicateValueKind.INT_LIST, tuple(values))

    @classmethod
    def string_list(cls, values: Iterable[str]) -> "PredicateValue":
        return cls(PredicateValueKind.STRING_LIST, tuple(values))

    @classmethod
    def infer(cls, value: Any) -> "PredicateValue":
        """Build from an untyped Python value.

        Raises:
            ValidationException: For bools, None, mixed lists, or other types.
        """
        if isinstance(value, bool) or value is None:
            raise ValidationException("Predicate value must not be bool or None", "value")
        if isinstance(value, int):
            return cls.integer(value)
        if isinstance(value, float):
            return cls.number(value)
        if isinstance(value, str):
            return cls.string(value)
        if isinstance(value, (list, tuple, set, frozenset)):
            items = list(value)
            if all(isinstance(v, int) and not isinstance(v, bool) for v in items):
                return cls.int_list(items)
            if all(isinstance(v, str) for v in items):
                return cls.string_list(items)
            raise ValidationException(
                "Predicate list values must be all integers or all strings", "value"
            )
        raise ValidationException(
            f"Unsupported predicate value type: {type(value).__name__}", "value"
        )

    @property
    def items(self) -> tuple[Any, ...]:
        """List kinds: the items. Scalar kinds: a one-element tuple."""
        if self.kind.is_list:
            return self.value  # type: ignore[return-value]
        return (self.value,)


@dataclass(frozen=True)
class Predicate:
    """Declarative, data-independent filter condition on one row field."""

    field: str
    operator: PredicateOperator
    value: PredicateValue

    def __post_init__(self) -> None:
        if not isinstance(self.field, str) or not self.field:
            raise ValidationException("Predicate field must be a non-empty string", "field")
        if self.operator.takes_list and not self.value.kind.is_list:
            raise ValidationException(
                f"Operator {self.operator.value} requires a list value", "value"
            )
        if not self.operator.takes_list and self.value.kind.is_list:
            raise ValidationException(
                f"Operator {self.operator.value} requires a scalar value", "value"
            )
        if (
            self.operator is PredicateOperator.LIKE
            and self.value.kind is not PredicateValueKind.STRING
        ):
            raise ValidationException("Operator like requires a string value", "value")

    @classmethod
    def of(cls, field: str, operator: PredicateOperator | str, value: Any) -> "Predicate":
        """Build a predicate, inferring the value tag from the Python value."""
        return cls(field, PredicateOperator(operator), PredicateValue.infer(value))


def _freeze_ids(values: Iterable[Any], field_name: str) -> frozenset[int]:
    ids = frozenset(values)
    for value in ids:
        _validate_int(value, field_name)
    return ids


@dataclass(frozen=True)
class RequestingIdentity:
    """Resolved permission snapshot of the caller. Never cached, never keyed."""

    id: str
    permission_scope: PermissionScope
    authorized_entity_ids: frozenset[int] = frozenset()
    authorized_sub_entity_ids: frozenset[int] = frozenset()

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise ValidationException("Identity id must be a non-empty string", "id")
        try:
            scope = PermissionScope(self.permission_scope)
        except ValueError as e:
            raise ValidationException(
                f"permission_scope must be one of {PermissionScope.values()}",
                "permission_scope",
            ) from e
        object.__setattr__(self, "permission_scope", scope)
        object.__setattr__(
            self,
            "authorized_entity_ids",
            _freeze_ids(self.authorized_entity_ids, "authorized_entity_ids"),
        )
        object.__setattr__(
            self,
            "authorized_sub_entity_ids",
            _freeze_ids(self.authorized_sub_entity_ids, "authorized_sub_entity_ids"),
        )


@dataclass(frozen=True)
class ColumnMappings:
    """Row column names that carry the date and each key dimension."""

    date_field: str = "date_index"
    entity_field: str = "practice_uid"
    sub_entity_field: str = "provider_uid"
    measure_field: str = "measure"
    frequency_field: str = "frequency"


@dataclass(frozen=True)
class QueryParams:
    """Everything a fetch needs: key dimensions, date range, and predicates.

    query_predicates are identity-independent and may be evaluated by the
    store; in_memory_predicates are per-request refinements. Both are
    applied to every result.
    """

    data_source_id: int
    schema_name: str
    table_name: str
    data_source_type: DataSourceType = DataSourceType.MEASURE_BASED
    measure: str | None = None
    entity_id: int | None = None
    sub_entity_id: int | None = None
    frequency: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    query_predicates: tuple[Predicate, ...] = field(default_factory=tuple)
    in_memory_predicates: tuple[Predicate, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data_source_type", DataSourceType(self.data_source_type))
        object.__setattr__(self, "query_predicates", tuple(self.query_predicates))
        object.__setattr__(self, "in_memory_predicates", tuple(self.in_memory_predicates))
        for name in ("start_date", "end_date"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, date):
                raise ValidationException(f"{name} must be a date", name)
        # Validates the dimensions eagerly
        self.key_components()

    def key_components(self) -> KeyComponents:
        """Deterministic subset of the params used for the cache key."""
        return KeyComponents(
            data_source_id=self.data_source_id,
            measure=self.measure,
            entity_id=self.entity_id,
            sub_entity_id=self.sub_entity_id,
            frequency=self.frequency,
        )

    @property
    def all_predicates(self) -> tuple[Predicate, ...]:
        return self.query_predicates + self.in_memory_predicates


@dataclass(frozen=True)
class DataSourceDescriptor:
    """Where a data source lives and how it is keyed (used by cache warming)."""

    data_source_id: int
    schema_name: str
    table_name: str
    data_source_type: DataSourceType = DataSourceType.MEASURE_BASED

    def __post_init__(self) -> None:
        _validate_int(self.data_source_id, "data_source_id")
        object.__setattr__(self, "data_source_type", DataSourceType(self.data_source_type))
