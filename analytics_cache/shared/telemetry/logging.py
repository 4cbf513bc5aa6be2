"""Logging configuration for the analytics cache."""

import logging
import sys

from analytics_cache.core.config import Settings, get_settings

AUDIT_LOGGER_NAME = "analytics_cache.audit"


def setup_logging(settings: Settings | None = None) -> None:
    """Configure process-wide logging.

    Level is DEBUG when settings.debug is True, otherwise INFO. Output goes
    to stdout. Authorization audit events use the analytics_cache.audit
    logger, which always emits at WARNING and above so it can be routed
    separately.
    """
    settings = settings or get_settings()
    log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger(AUDIT_LOGGER_NAME).setLevel(logging.WARNING)
