import pytest
from opentelemetry.sdk.trace.export import ConsoleSpanExporter

from analytics_cache.core.config import Settings
from analytics_cache.shared.telemetry.telemetry import TelemetryConfig, _build_exporter
from analytics_cache.shared.telemetry.tracing import add_span_attributes, traced


async def test_traced_returns_result() -> None:
    @traced("test.op", attributes={"component": "test"})
    async def op(data_source_id: int) -> int:
        add_span_attributes(seen=True)
        return data_source_id * 2

    assert await op(data_source_id=4) == 8
    assert op.__name__ == "op"


async def test_traced_propagates_errors() -> None:
    @traced()
    async def op() -> None:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await op()


def test_traced_rejects_sync_functions() -> None:
    with pytest.raises(TypeError):

        @traced()
        def op() -> None:
            return None


def test_telemetry_disabled_sets_up_nothing() -> None:
    config = TelemetryConfig.from_settings(Settings(_env_file=None, telemetry_enabled=False))
    assert config.setup_telemetry() is None
    assert config.active is False
    config.instrument_redis()
    config.shutdown()


def test_unknown_exporter_falls_back_to_console() -> None:
    assert isinstance(_build_exporter("jaeger", None), ConsoleSpanExporter)
    assert isinstance(_build_exporter("otlp", None), ConsoleSpanExporter)
    assert _build_exporter("none", None) is None
