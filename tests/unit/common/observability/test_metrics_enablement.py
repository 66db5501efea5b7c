"""Tests for OTEL-aware telemetry enablement defaults."""

from common.observability.metrics import is_metrics_enabled, is_otel_exporter_configured


def test_exporter_configured_when_endpoint_set(monkeypatch):
    """An OTLP endpoint counts as a configured exporter."""
    monkeypatch.delenv("OTEL_DISABLE_EXPORTER", raising=False)
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://otel-collector:4317")

    assert is_otel_exporter_configured() is True


def test_exporter_disabled_flag_wins(monkeypatch):
    """OTEL_DISABLE_EXPORTER turns export off even with an endpoint."""
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://otel-collector:4317")
    monkeypatch.setenv("OTEL_DISABLE_EXPORTER", "true")

    assert is_otel_exporter_configured() is False


def test_traces_exporter_none_disables_export(monkeypatch):
    monkeypatch.delenv("OTEL_DISABLE_EXPORTER", raising=False)
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://otel-collector:4317")
    monkeypatch.setenv("OTEL_TRACES_EXPORTER", "none")

    assert is_otel_exporter_configured() is False


def test_no_endpoint_means_no_exporter(monkeypatch):
    monkeypatch.delenv("OTEL_DISABLE_EXPORTER", raising=False)

    assert is_otel_exporter_configured() is False


def test_metrics_enabled_when_exporter_configured_without_explicit_flag(monkeypatch):
    """Exporter configuration should enable telemetry by default."""
    monkeypatch.delenv("OTEL_DISABLE_EXPORTER", raising=False)
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://otel-collector:4317")

    assert is_metrics_enabled("DAL_TRACE_QUERIES") is True


def test_metrics_explicit_false_overrides_exporter_default(monkeypatch):
    """Explicit false must disable telemetry even when exporter is configured."""
    monkeypatch.delenv("OTEL_DISABLE_EXPORTER", raising=False)
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://otel-collector:4317")
    monkeypatch.setenv("DAL_TRACE_QUERIES", "false")

    assert is_metrics_enabled("DAL_TRACE_QUERIES") is False


def test_metrics_explicit_true_without_exporter(monkeypatch):
    """Explicit true enables telemetry without any exporter."""
    monkeypatch.setenv("DAL_TRACE_QUERIES", "true")

    assert is_metrics_enabled("DAL_TRACE_QUERIES") is True
