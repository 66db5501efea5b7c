"""Telemetry enablement helpers."""

from __future__ import annotations

import logging
import os

from common.config.env import get_env_bool

logger = logging.getLogger(__name__)


def is_otel_exporter_configured() -> bool:
    """Return True when OTEL exporter environment indicates external export is configured."""
    if get_env_bool("OTEL_DISABLE_EXPORTER", False):
        return False

    endpoint = (os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT") or "").strip()
    traces_exporter = (os.getenv("OTEL_TRACES_EXPORTER") or "").strip().lower()
    if traces_exporter == "none":
        return False

    return bool(endpoint)


def is_metrics_enabled(enabled_env_var: str) -> bool:
    """Resolve telemetry enablement with explicit override support."""
    if os.getenv(enabled_env_var) is not None:
        return get_env_bool(enabled_env_var, False) is True
    return is_otel_exporter_configured()
