"""Shared observability helpers."""

from common.observability.metrics import is_metrics_enabled, is_otel_exporter_configured

__all__ = ["is_metrics_enabled", "is_otel_exporter_configured"]
