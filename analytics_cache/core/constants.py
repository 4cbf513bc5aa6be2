"""Core constants: cache key tokens and shared literal values.

Single source of truth for cache key structure. Wire format:
ns:{data_source_id}:m:{measure|*}:e:{entity_id|*}:se:{sub_entity_id|*}:f:{frequency|*}
"""

# Delimiter for composite keys
CACHE_KEY_SEP = ":"

# Absent dimension. Never a legal dimension value.
CACHE_KEY_WILDCARD = "*"

# Dimension labels, in key order
CACHE_LABEL_NAMESPACE = "ns"
CACHE_LABEL_MEASURE = "m"
CACHE_LABEL_ENTITY = "e"
CACHE_LABEL_SUB_ENTITY = "se"
CACHE_LABEL_FREQUENCY = "f"

# Administrative keys (outside the ns: namespace so stats never count them)
CACHE_PREFIX_WARM_LOCK = "lock:warm"

# Number of largest entries reported by cache stats
STATS_LARGEST_ENTRIES = 10
