"""Domain exceptions for the analytics cache.

Only query execution failures and caller input errors surface as
exceptions. Cache unavailability, oversized entries, unsupported
operators and empty authorization results are absorbed and logged by
the components that detect them.
"""

from typing import Any


class AnalyticsCacheException(Exception):
    """Base exception for all analytics cache errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, data_source_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(AnalyticsCacheException):
    """Raised when a value object is constructed from invalid input."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class DataSourceConfigurationException(AnalyticsCacheException):
    """Raised when a data source names a schema or table that is not a plain identifier."""

    def __init__(self, data_source_id: int, reason: str) -> None:
        super().__init__(
            f"Invalid configuration for data source {data_source_id}: {reason}",
            "DATA_SOURCE_CONFIGURATION_ERROR",
            {"data_source_id": data_source_id, "reason": reason},
        )


class QueryExecutionException(AnalyticsCacheException):
    """Raised when the analytical store fails to execute a read query.

    The only failure the fetch path propagates to callers.
    """

    def __init__(self, reason: str, data_source_id: int | None = None) -> None:
        details: dict[str, Any] = {"reason": reason}
        if data_source_id is not None:
            details["data_source_id"] = data_source_id
        super().__init__(
            f"Analytics query failed: {reason}",
            "QUERY_EXECUTION_ERROR",
            details,
        )


class DatabaseNotConfiguredException(AnalyticsCacheException):
    """Raised when the analytical store is needed but DATABASE_URL is not set."""

    def __init__(self) -> None:
        super().__init__(
            message="The analytical store is not configured (set DATABASE_URL).",
            error_code="SERVICE_UNAVAILABLE",
        )
