"""Domain layer: entities, value objects, enums, and exceptions.

No dependencies on infrastructure. Used by application and
infrastructure layers.
"""

from analytics_cache.domain.entities import CachedEntry
from analytics_cache.domain.enums import (
    DataSourceType,
    PermissionScope,
    PredicateOperator,
    PredicateValueKind,
)
from analytics_cache.domain.exceptions import (
    AnalyticsCacheException,
    DataSourceConfigurationException,
    DatabaseNotConfiguredException,
    QueryExecutionException,
    ValidationException,
)
from analytics_cache.domain.value_objects import (
    ColumnMappings,
    DataSourceDescriptor,
    KeyComponents,
    Predicate,
    PredicateValue,
    QueryParams,
    RequestingIdentity,
)

__all__ = [
    # Entities
    "CachedEntry",
    # Enums
    "DataSourceType",
    "PermissionScope",
    "PredicateOperator",
    "PredicateValueKind",
    # Exceptions
    "AnalyticsCacheException",
    "DataSourceConfigurationException",
    "DatabaseNotConfiguredException",
    "QueryExecutionException",
    "ValidationException",
    # Value objects
    "ColumnMappings",
    "DataSourceDescriptor",
    "KeyComponents",
    "Predicate",
    "PredicateValue",
    "QueryParams",
    "RequestingIdentity",
]
