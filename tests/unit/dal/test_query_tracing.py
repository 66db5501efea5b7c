import hashlib
from unittest.mock import patch

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from dal.tracing import trace_enabled, trace_query_operation


def _in_memory_provider():
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return provider, exporter


def test_trace_enabled_defaults_true_when_otel_exporter_configured(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """DAL tracing should default to enabled when OTEL exporter is configured."""
    monkeypatch.delenv("OTEL_DISABLE_EXPORTER", raising=False)
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://otel-collector:4317")

    assert trace_enabled() is True


def test_trace_enabled_respects_explicit_false_override(monkeypatch: pytest.MonkeyPatch) -> None:
    """Explicit DAL_TRACE_QUERIES=false should disable tracing despite exporter config."""
    monkeypatch.delenv("OTEL_DISABLE_EXPORTER", raising=False)
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://otel-collector:4317")
    monkeypatch.setenv("DAL_TRACE_QUERIES", "false")

    assert trace_enabled() is False


def test_trace_disabled_by_default() -> None:
    assert trace_enabled() is False


@pytest.mark.asyncio
async def test_trace_execute_span(monkeypatch: pytest.MonkeyPatch) -> None:
    """Query tracing emits a span with hashed SQL and never the statement itself."""
    monkeypatch.setenv("DAL_TRACE_QUERIES", "true")
    provider, exporter = _in_memory_provider()

    async def _operation() -> str:
        return "OK"

    with patch("opentelemetry.trace.get_tracer") as mock_get_tracer:
        mock_get_tracer.side_effect = lambda name: provider.get_tracer(name)
        result = await trace_query_operation(
            "dal.query.execute", provider="mysql", sql="select 1", operation=_operation()
        )

    assert result == "OK"
    spans = exporter.get_finished_spans()
    assert len(spans) == 1
    span = spans[0]
    assert span.name == "dal.query.execute"
    assert span.attributes["db.provider"] == "mysql"
    assert (
        span.attributes["db.statement_hash"]
        == hashlib.sha256("select 1".encode("utf-8")).hexdigest()
    )
    assert span.attributes["db.operation"] == "SELECT"
    assert span.attributes["db.status"] == "ok"
    assert "db.statement" not in span.attributes


@pytest.mark.asyncio
async def test_trace_marks_failed_operation(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DAL_TRACE_QUERIES", "true")
    provider, exporter = _in_memory_provider()

    async def _operation() -> str:
        raise RuntimeError("server has gone away")

    with patch("opentelemetry.trace.get_tracer") as mock_get_tracer:
        mock_get_tracer.side_effect = lambda name: provider.get_tracer(name)
        with pytest.raises(RuntimeError):
            await trace_query_operation(
                "dal.query.execute", provider="postgres", sql="select 2", operation=_operation()
            )

    attributes = exporter.get_finished_spans()[0].attributes
    assert attributes["db.status"] == "error"
    assert attributes["db.error_type"] == "RuntimeError"


@pytest.mark.asyncio
async def test_untraced_operation_passes_through() -> None:
    async def _operation() -> int:
        return 7

    with patch("opentelemetry.trace.get_tracer") as mock_get_tracer:
        assert await trace_query_operation("x", "mysql", None, _operation()) == 7

    mock_get_tracer.assert_not_called()
