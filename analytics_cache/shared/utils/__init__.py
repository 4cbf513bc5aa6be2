"""Shared utilities: datetime and identifier sanitization."""

from analytics_cache.shared.utils.datetime import ensure_utc, parse_row_date, utc_now
from analytics_cache.shared.utils.sanitization import (
    escape_redis_glob,
    is_sql_identifier,
    quote_identifier,
)

__all__ = [
    "utc_now",
    "ensure_utc",
    "parse_row_date",
    "escape_redis_glob",
    "is_sql_identifier",
    "quote_identifier",
]
