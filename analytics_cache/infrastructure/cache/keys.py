"""Cache key builders. Single place for key format.

Key format:
    ns:{data_source_id}:m:{measure|*}:e:{entity_id|*}:se:{sub_entity_id|*}:f:{frequency|*}

Every dimension slot is always present and labelled, so two distinct
KeyComponents values never produce the same key. KeyComponents rejects
the separator and the wildcard token as dimension values.

Fallback chains drop concrete dimensions one at a time in the order
sub-entity, entity, frequency, measure, ending at the data-source key.
"""

from dataclasses import replace

from analytics_cache.core.constants import (
    CACHE_KEY_SEP,
    CACHE_KEY_WILDCARD,
    CACHE_LABEL_ENTITY,
    CACHE_LABEL_FREQUENCY,
    CACHE_LABEL_MEASURE,
    CACHE_LABEL_NAMESPACE,
    CACHE_LABEL_SUB_ENTITY,
    CACHE_PREFIX_WARM_LOCK,
)
from analytics_cache.domain.exceptions import ValidationException
from analytics_cache.domain.value_objects.core import KeyComponents

# Dimensions dropped by fallback_chain, first to last
FALLBACK_DROP_ORDER: tuple[str, ...] = ("sub_entity_id", "entity_id", "frequency", "measure")

_KEY_LABELS: tuple[str, ...] = (
    CACHE_LABEL_NAMESPACE,
    CACHE_LABEL_MEASURE,
    CACHE_LABEL_ENTITY,
    CACHE_LABEL_SUB_ENTITY,
    CACHE_LABEL_FREQUENCY,
)


def _slot(value: object | None) -> str:
    return CACHE_KEY_WILDCARD if value is None else str(value)


def build_key(components: KeyComponents) -> str:
    """Cache key for exactly these components (absent dimensions as wildcard)."""
    values = (
        str(components.data_source_id),
        _slot(components.measure),
        _slot(components.entity_id),
        _slot(components.sub_entity_id),
        _slot(components.frequency),
    )
    return CACHE_KEY_SEP.join(
        part for label, value in zip(_KEY_LABELS, values) for part in (label, value)
    )


def fallback_chain(components: KeyComponents) -> list[str]:
    """Keys from the input's specificity down to the data-source level.

    Always non-empty; the last key equals build_key(KeyComponents(data_source_id)).
    """
    chain = [build_key(components)]
    current = components
    for dimension in FALLBACK_DROP_ORDER:
        if getattr(current, dimension) is None:
            continue
        current = replace(current, **{dimension: None})
        chain.append(build_key(current))
    return chain


def namespace_prefix() -> str:
    """Prefix shared by every data cache key."""
    return f"{CACHE_LABEL_NAMESPACE}{CACHE_KEY_SEP}"


def data_source_prefix(data_source_id: int) -> str:
    """Prefix of every key for one data source (trailing separator avoids 1 matching 10)."""
    return f"{namespace_prefix()}{data_source_id}{CACHE_KEY_SEP}"


def measure_prefix(data_source_id: int, measure: str) -> str:
    """Prefix of every key for one data source and measure."""
    return (
        f"{data_source_prefix(data_source_id)}{CACHE_LABEL_MEASURE}"
        f"{CACHE_KEY_SEP}{measure}{CACHE_KEY_SEP}"
    )


def warm_lock_key(data_source_id: int) -> str:
    """Lock key held while a data source is being warmed."""
    return f"{CACHE_PREFIX_WARM_LOCK}{CACHE_KEY_SEP}{data_source_id}"


def parse_key(key: str) -> KeyComponents:
    """Inverse of build_key.

    Raises:
        ValueError: If key is not in the cache key format.
    """
    parts = key.split(CACHE_KEY_SEP)
    if len(parts) != 2 * len(_KEY_LABELS) or tuple(parts[0::2]) != _KEY_LABELS:
        raise ValueError(f"Not a cache key: {key!r}")
    ds, measure, entity, sub_entity, frequency = parts[1::2]

    def _opt_int(value: str) -> int | None:
        return None if value == CACHE_KEY_WILDCARD else int(value)

    def _opt_str(value: str) -> str | None:
        return None if value == CACHE_KEY_WILDCARD else value

    try:
        return KeyComponents(
            data_source_id=int(ds),
            measure=_opt_str(measure),
            entity_id=_opt_int(entity),
            sub_entity_id=_opt_int(sub_entity),
            frequency=_opt_str(frequency),
        )
    except ValidationException as e:
        raise ValueError(f"Not a cache key: {key!r}") from e


def wildcard_count(key: str) -> int:
    """Number of wildcarded dimension slots in a key (its fallback level)."""
    return key.split(CACHE_KEY_SEP)[3::2].count(CACHE_KEY_WILDCARD)
