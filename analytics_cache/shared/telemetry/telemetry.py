"""OpenTelemetry tracing configuration.

Exports via OTLP gRPC or to the console. Redis commands, SQLAlchemy
queries and log records are instrumented once the provider is set up.
"""

import logging
from collections.abc import Callable

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from sqlalchemy.ext.asyncio import AsyncEngine

from analytics_cache.core.config import Settings

logger = logging.getLogger(__name__)


def _build_exporter(exporter_type: str, otlp_endpoint: str | None) -> SpanExporter | None:
    """Pick the span exporter; unknown types fall back to the console."""
    if exporter_type == "none":
        return None
    if exporter_type == "otlp" and otlp_endpoint:
        return OTLPSpanExporter(
            endpoint=otlp_endpoint,
            insecure=otlp_endpoint.startswith("http://"),
        )
    if exporter_type != "console":
        logger.warning(
            "Unknown exporter type '%s' (or missing OTLP endpoint), using console",
            exporter_type,
        )
    return ConsoleSpanExporter()


class TelemetryConfig:
    """Tracer provider for the cache plus Redis, SQLAlchemy and logging instrumentation.

    Setup and instrumentation failures are logged and leave tracing off;
    they never stop the cache from starting.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self.tracer_provider: TracerProvider | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "TelemetryConfig":
        return cls(settings)

    @property
    def active(self) -> bool:
        return self._settings.telemetry_enabled and self.tracer_provider is not None

    def setup_telemetry(
        self,
        exporter_type: str = "console",
        otlp_endpoint: str | None = None,
        sample_rate: float = 1.0,
    ) -> TracerProvider | None:
        """Create the tracer provider and install it globally.

        Args:
            exporter_type: "console", "otlp", or "none".
            otlp_endpoint: OTLP gRPC endpoint (e.g. http://localhost:4317).
            sample_rate: Fraction of fetches traced, 0.0-1.0.

        Returns:
            The provider, or None if telemetry is disabled or setup failed.
        """
        if not self._settings.telemetry_enabled:
            logger.info("Telemetry disabled")
            return None
        try:
            provider = TracerProvider(
                resource=Resource(
                    attributes={
                        SERVICE_NAME: self._settings.app_name,
                        SERVICE_VERSION: self._settings.app_version,
                        "deployment.environment": self._settings.telemetry_environment,
                    }
                ),
                sampler=TraceIdRatioBased(sample_rate),
            )
            exporter = _build_exporter(exporter_type, otlp_endpoint)
            if exporter is not None:
                provider.add_span_processor(BatchSpanProcessor(exporter))
            trace.set_tracer_provider(provider)
        except Exception as e:
            logger.exception("Failed to initialize telemetry: %s", e)
            return None
        self.tracer_provider = provider
        logger.info(
            "Tracing %s v%s with %s exporter (sample rate %.2f)",
            self._settings.app_name,
            self._settings.app_version,
            exporter_type,
            sample_rate,
        )
        return provider

    def _instrument(self, name: str, apply: Callable[[TracerProvider], None]) -> None:
        if not self.active:
            return
        try:
            apply(self.tracer_provider)
        except Exception as e:
            logger.exception("Failed to instrument %s: %s", name, e)
            return
        logger.info("%s instrumentation enabled", name)

    def instrument_sqlalchemy(self, engine: AsyncEngine) -> None:
        """Span per analytical-store query."""
        self._instrument(
            "SQLAlchemy",
            lambda provider: SQLAlchemyInstrumentor().instrument(
                engine=engine.sync_engine, tracer_provider=provider
            ),
        )

    def instrument_redis(self) -> None:
        """Span per cache command."""
        self._instrument(
            "Redis",
            lambda provider: RedisInstrumentor().instrument(tracer_provider=provider),
        )

    def instrument_logging(self) -> None:
        """Add trace_id/span_id to log records."""
        self._instrument(
            "Logging",
            lambda provider: LoggingInstrumentor().instrument(
                tracer_provider=provider, set_logging_format=True
            ),
        )

    def shutdown(self) -> None:
        """Flush remaining spans and shut down the tracer provider."""
        if self.tracer_provider is None:
            return
        try:
            self.tracer_provider.shutdown()
        except Exception as e:
            logger.exception("Error during telemetry shutdown: %s", e)
            return
        self.tracer_provider = None
        logger.info("Telemetry shutdown complete")
