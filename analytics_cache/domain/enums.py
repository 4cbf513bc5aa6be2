"""Domain enumerations for the analytics cache.

Enums represent fixed sets of domain values (permission scopes,
predicate operators, data source kinds).
"""

from enum import Enum


class PermissionScope(str, Enum):
    """Coarse authorization tier of a requesting identity.

    ALL sees every row; OWN and ORGANIZATION are restricted to the
    identity's authorized entity and sub-entity IDs.
    """

    OWN = "own"
    ORGANIZATION = "organization"
    ALL = "all"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid scope values as strings."""
        return [scope.value for scope in cls]


class PredicateOperator(str, Enum):
    """Declarative filter operators."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    NOT_IN = "not_in"
    LIKE = "like"

    @property
    def takes_list(self) -> bool:
        """True for operators whose value is a list (IN, NOT_IN)."""
        return self in (PredicateOperator.IN, PredicateOperator.NOT_IN)


class PredicateValueKind(str, Enum):
    """Tag of a PredicateValue."""

    INT = "int"
    FLOAT = "float"
    STRING = "string"
    INT_LIST = "int_list"
    STRING_LIST = "string_list"

    @property
    def is_list(self) -> bool:
        return self in (PredicateValueKind.INT_LIST, PredicateValueKind.STRING_LIST)


class DataSourceType(str, Enum):
    """How a data source is keyed.

    Measure-based sources are queried per measure and frequency; table-based
    sources are cached whole at the data-source level.
    """

    MEASURE_BASED = "measure-based"
    TABLE_BASED = "table-based"
