"""Domain value objects."""

from analytics_cache.domain.value_objects.core import (
    ColumnMappings,
    DataSourceDescriptor,
    KeyComponents,
    Predicate,
    PredicateValue,
    QueryParams,
    RequestingIdentity,
)

__all__ = [
    "ColumnMappings",
    "DataSourceDescriptor",
    "KeyComponents",
    "Predicate",
    "PredicateValue",
    "QueryParams",
    "RequestingIdentity",
]
