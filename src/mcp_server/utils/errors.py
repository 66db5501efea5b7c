"""Shared error construction helpers for MCP tool handlers.

Provides a consistent error envelope so clients never have to special-case
error parsing across different tools. Policy rejections, pool saturation and
backend errors keep distinct categories and codes.
"""

import logging
from typing import Any, Dict, Optional

from common.errors import GatewayError
from common.errors.error_codes import ErrorCode, canonical_error_code_for_category
from common.models.error_metadata import ErrorCategory, ToolError
from common.models.tool_envelopes import GenericToolMetadata, ToolResponseEnvelope
from common.sanitization.text import redact_sensitive_info

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 2048


def sanitize_error_message(message: str, fallback: str = "Request failed.") -> str:
    """Redact and bound user-facing error text."""
    safe_text = redact_sensitive_info((message or "").strip())
    if not safe_text:
        safe_text = fallback
    return safe_text[:MAX_ERROR_MESSAGE_LENGTH]


def build_error_metadata(
    *,
    message: str,
    category: ErrorCategory,
    provider: Optional[str],
    retryable: bool = False,
    code: Optional[str] = None,
    error_code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> ToolError:
    """Build bounded, redacted ToolError."""
    canonical_error_code = error_code or canonical_error_code_for_category(category).value
    safe_details = None
    if details:
        safe_details = {
            key: redact_sensitive_info(value) if isinstance(value, str) else value
            for key, value in details.items()
        }
    return ToolError(
        category=category,
        code=code or "TOOL_ERROR",
        error_code=canonical_error_code or ErrorCode.INTERNAL_ERROR.value,
        message=sanitize_error_message(message),
        retryable=retryable,
        provider=provider or "unknown",
        details_safe=safe_details,
    )


def tool_error_response(
    *,
    message: str,
    code: str,
    error_code: Optional[str] = None,
    category: ErrorCategory = ErrorCategory.INVALID_REQUEST,
    provider: Optional[str] = None,
    retryable: bool = False,
    details: Optional[Dict[str, Any]] = None,
    execution_time_ms: Optional[float] = None,
) -> str:
    """Construct a structured JSON error response for an MCP tool.

    Args:
        message: Human-readable error description (max 2048 chars).
        code: Machine-readable error code (e.g. "OPERATION_NOT_PERMITTED").
        category: Provider-agnostic error category.
        provider: Originating backend name.
        retryable: Whether the caller should retry.
        details: Structured context (keyword, schema, limits).
        execution_time_ms: Time spent before the failure.
    """
    envelope = ToolResponseEnvelope(
        result=None,
        metadata=GenericToolMetadata(
            provider=provider or "unknown", execution_time_ms=execution_time_ms
        ),
        error=build_error_metadata(
            message=message,
            category=category,
            provider=provider,
            retryable=retryable,
            code=code,
            error_code=error_code,
            details=details,
        ),
    )
    return envelope.model_dump_json(exclude_none=True)


def error_response_from_exception(
    exc: BaseException,
    *,
    provider: Optional[str] = None,
    execution_time_ms: Optional[float] = None,
) -> str:
    """Render an exception raised by a handler as an error envelope.

    Gateway errors keep their category, code and details. ``ValueError`` is an
    invalid parameter. Anything else is a backend failure reported with the
    driver message.
    """
    if isinstance(exc, GatewayError):
        return tool_error_response(
            message=exc.message,
            code=exc.code,
            category=exc.category,
            provider=provider,
            retryable=exc.retryable,
            details=exc.details or None,
            execution_time_ms=execution_time_ms,
        )

    if isinstance(exc, ValueError):
        return tool_error_response(
            message=str(exc),
            code="INVALID_PARAMETER",
            category=ErrorCategory.INVALID_REQUEST,
            provider=provider,
            execution_time_ms=execution_time_ms,
        )

    logger.error(
        "Tool execution failed",
        extra={"provider": provider, "error_type": type(exc).__name__},
    )
    return tool_error_response(
        message=f"Query execution failed: {exc}",
        code="QUERY_ERROR",
        category=ErrorCategory.SYNTAX,
        provider=provider,
        execution_time_ms=execution_time_ms,
    )
