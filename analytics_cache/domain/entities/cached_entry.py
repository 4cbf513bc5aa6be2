"""CachedEntry: one stored row set and its metadata.

Immutable once written. The only lifecycle transitions are overwrite
(a later write to the same key) and removal (TTL expiry or invalidation).
"""

import json
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

from analytics_cache.domain.exceptions import ValidationException
from analytics_cache.domain.value_objects.core import KeyComponents
from analytics_cache.shared.utils.datetime import ensure_utc, utc_now


def json_default(value: Any) -> Any:
    """json.dumps default for row values the analytical store returns."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dumps_rows(rows: Any) -> str:
    return json.dumps(rows, default=json_default, separators=(",", ":"))


@dataclass(frozen=True)
class CachedEntry:
    """Authorization-unfiltered rows for one KeyComponents value."""

    rows: tuple[dict[str, Any], ...]
    row_count: int
    cached_at: datetime
    expires_at: datetime
    size_bytes: int
    key_components: KeyComponents

    @classmethod
    def create(
        cls,
        rows: list[dict[str, Any]],
        key_components: KeyComponents,
        ttl_seconds: int,
    ) -> "CachedEntry":
        """Build a new entry stamped now, expiring after ttl_seconds.

        size_bytes is the UTF-8 length of the serialized rows.
        """
        now = utc_now()
        return cls(
            rows=tuple(rows),
            row_count=len(rows),
            cached_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds),
            size_bytes=len(dumps_rows(list(rows)).encode("utf-8")),
            key_components=key_components,
        )

    def to_json(self) -> str:
        return json.dumps(
            {
                "rows": list(self.rows),
                "row_count": self.row_count,
                "cached_at": self.cached_at.isoformat(),
                "expires_at": self.expires_at.isoformat(),
                "size_bytes": self.size_bytes,
                "key_components": self.key_components.to_dict(),
            },
            default=json_default,
            separators=(",", ":"),
        )

    @classmethod
    def from_json(cls, payload: str | bytes) -> "CachedEntry":
        """Decode a stored entry.

        Raises:
            ValueError: If the payload is not a well-formed entry (json.JSONDecodeError
                is a ValueError; missing keys and bad timestamps are re-raised as one).
        """
        data = json.loads(payload)
        try:
            rows = data["rows"]
            return cls(
                rows=tuple(rows),
                row_count=int(data.get("row_count", len(rows))),
                cached_at=ensure_utc(datetime.fromisoformat(data["cached_at"])),
                expires_at=ensure_utc(datetime.fromisoformat(data["expires_at"])),
                size_bytes=int(data["size_bytes"]),
                key_components=KeyComponents.from_dict(data["key_components"]),
            )
        except (KeyError, TypeError, ValidationException) as e:
            raise ValueError(f"Malformed cache entry: {e}") from e
