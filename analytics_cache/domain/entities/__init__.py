"""Domain entities."""

from analytics_cache.domain.entities.cached_entry import CachedEntry

__all__ = ["CachedEntry"]
