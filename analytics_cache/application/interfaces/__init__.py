"""Application ports (Protocols) implemented by infrastructure."""

from analytics_cache.application.interfaces.services import (
    ICacheStore,
    IQueryBackend,
    IQueryExecutor,
    Row,
)

__all__ = ["ICacheStore", "IQueryBackend", "IQueryExecutor", "Row"]
