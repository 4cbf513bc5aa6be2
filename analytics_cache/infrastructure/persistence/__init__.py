"""Persistence: engine/session setup, SQLAlchemy query backend, and query executor."""

from analytics_cache.infrastructure.persistence.database import (
    SqlAlchemyQueryBackend,
    create_engine_and_sessionmaker,
)
from analytics_cache.infrastructure.persistence.query_executor import QueryExecutor

__all__ = ["QueryExecutor", "SqlAlchemyQueryBackend", "create_engine_and_sessionmaker"]
