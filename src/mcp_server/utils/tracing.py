"""Tracing wrapper for MCP tools."""

import functools
import json
import logging
import time
from typing import Any, Awaitable, Callable, Optional, ParamSpec, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def _extract_envelope_error_category(response: Any) -> Optional[str]:
    """Extract envelope-level error category from a JSON response, if present."""
    if not isinstance(response, str):
        return None
    try:
        payload = json.loads(response)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    error_payload = payload.get("error")
    if not isinstance(error_payload, dict):
        return None
    category = error_payload.get("category")
    return str(category) if category is not None else "unknown"


def trace_tool(tool_name: str) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Add OpenTelemetry tracing to an MCP tool handler.

    Args:
        tool_name: The registered tool name (e.g. "mysql_select").
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            tracer = trace.get_tracer("mcp.server")

            with tracer.start_as_current_span(
                f"mcp.tool.{tool_name}", kind=trace.SpanKind.SERVER
            ) as span:
                span.set_attribute("mcp.tool.name", tool_name)
                call_started_at = time.monotonic()
                try:
                    response = await func(*args, **kwargs)
                except Exception as e:
                    span.record_exception(e)
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.set_attribute(
                        "mcp.tool.error.category", str(getattr(e, "category", "unknown"))
                    )
                    raise
                finally:
                    duration_ms = max(0.0, (time.monotonic() - call_started_at) * 1000.0)
                    span.set_attribute("mcp.tool.duration_ms", duration_ms)

                span.set_attribute(
                    "mcp.tool.response.size_bytes", len(str(response).encode("utf-8"))
                )
                error_category = _extract_envelope_error_category(response)
                if error_category is not None:
                    span.set_status(Status(StatusCode.ERROR))
                    span.set_attribute("mcp.tool.error.category", error_category)
                else:
                    span.set_status(Status(StatusCode.OK))
                return response

        return wrapper

    return decorator
