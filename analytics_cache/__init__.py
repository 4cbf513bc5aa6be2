"""Read-through cache for pre-aggregated analytics query results.

Serves measure/dimension queries from a shared Redis cache holding the
union of all authorized rows, and filters every result down to what the
requesting identity may see before it leaves the package.
"""

__version__ = "1.0.0"
