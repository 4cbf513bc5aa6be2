"""Application services: pure row filtering and filter parsing."""

from analytics_cache.application.services.authorization_filter import filter_rows
from analytics_cache.application.services.filter_parsing import predicates_from_filters
from analytics_cache.application.services.row_filters import (
    filter_by_date,
    filter_by_predicates,
    matches,
    narrow_to_dimensions,
)

__all__ = [
    "filter_by_date",
    "filter_by_predicates",
    "filter_rows",
    "matches",
    "narrow_to_dimensions",
    "predicates_from_filters",
]
