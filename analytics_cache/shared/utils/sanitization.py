"""Identifier and pattern sanitization for dynamically built queries.

Parameterized values are the primary defense; identifiers (schema, table
and column names) cannot be bound, so they are allowlisted here and
double-quoted before interpolation.
"""

import re

SQL_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")

# Characters with special meaning in Redis SCAN MATCH patterns
_REDIS_GLOB_SPECIAL = re.compile(r"([\\*?\[\]^-])")


def is_sql_identifier(value: str) -> bool:
    """Return True if value is a plain SQL identifier (letters, digits, underscore)."""
    return isinstance(value, str) and bool(SQL_IDENTIFIER_PATTERN.fullmatch(value))


def quote_identifier(value: str) -> str:
    """Double-quote an allowlisted identifier.

    Raises:
        ValueError: If value is not a plain identifier.
    """
    if not is_sql_identifier(value):
        raise ValueError(f"Invalid SQL identifier: {value!r}")
    return f'"{value}"'


def escape_redis_glob(value: str) -> str:
    """Escape Redis glob metacharacters so value matches literally in SCAN MATCH."""
    return _REDIS_GLOB_SPECIAL.sub(r"\\\1", value)
