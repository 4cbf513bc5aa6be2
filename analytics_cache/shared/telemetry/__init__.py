"""Shared telemetry: logging setup, OpenTelemetry config, and tracing helpers.

TelemetryConfig is imported from analytics_cache.shared.telemetry.telemetry
directly (it pulls in the OTLP exporter and instrumentors).
"""

from analytics_cache.shared.telemetry.logging import AUDIT_LOGGER_NAME, setup_logging
from analytics_cache.shared.telemetry.tracing import add_span_attributes, traced

__all__ = [
    "AUDIT_LOGGER_NAME",
    "add_span_attributes",
    "setup_logging",
    "traced",
]
