"""OpenTelemetry spans around backend round trips.

Spans carry the backend name, the leading SQL verb and a SHA-256 of the
statement. Statement text and bound values are never attached.
"""

import hashlib
from typing import Awaitable, Optional, TypeVar

from common.observability.metrics import is_metrics_enabled

T = TypeVar("T")


def trace_enabled() -> bool:
    """Return True when DAL_TRACE_QUERIES is set, or an OTLP exporter is configured."""
    return is_metrics_enabled("DAL_TRACE_QUERIES")


def statement_hash(sql: str) -> str:
    return hashlib.sha256(sql.encode("utf-8")).hexdigest()


def statement_verb(sql: str) -> str:
    """Return the upper-cased first word of a statement, or an empty string."""
    parts = sql.strip().split(None, 1)
    return parts[0].upper() if parts else ""


async def trace_query_operation(
    name: str,
    provider: str,
    sql: Optional[str],
    operation: Awaitable[T],
) -> T:
    """Await ``operation`` inside a DAL span when tracing is enabled."""
    if not trace_enabled():
        return await operation

    from opentelemetry import trace

    tracer = trace.get_tracer("dal")
    with tracer.start_as_current_span(name, kind=trace.SpanKind.CLIENT) as span:
        span.set_attribute("db.provider", provider)
        if sql:
            span.set_attribute("db.statement_hash", statement_hash(sql))
            span.set_attribute("db.operation", statement_verb(sql))
        try:
            result = await operation
        except Exception as exc:
            span.set_attribute("db.status", "error")
            span.set_attribute("db.error_type", type(exc).__name__)
            raise
        span.set_attribute("db.status", "ok")
        return result
