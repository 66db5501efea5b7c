"""Canonical error-code taxonomy for DAL/MCP flows."""

from __future__ import annotations

from enum import Enum

from common.models.error_metadata import ErrorCategory


class ErrorCode(str, Enum):
    """Bounded canonical error codes for external contracts and observability."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    SQL_POLICY_VIOLATION = "SQL_POLICY_VIOLATION"
    POOL_SATURATED = "POOL_SATURATED"
    DB_CONNECTION_ERROR = "DB_CONNECTION_ERROR"
    DB_TIMEOUT = "DB_TIMEOUT"
    DB_QUERY_ERROR = "DB_QUERY_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


_CATEGORY_TO_CODE: dict[str, ErrorCode] = {
    ErrorCategory.INVALID_REQUEST.value: ErrorCode.VALIDATION_ERROR,
    ErrorCategory.CONFIGURATION.value: ErrorCode.CONFIGURATION_ERROR,
    ErrorCategory.MUTATION_BLOCKED.value: ErrorCode.SQL_POLICY_VIOLATION,
    ErrorCategory.UNAUTHORIZED.value: ErrorCode.SQL_POLICY_VIOLATION,
    ErrorCategory.LIMIT_EXCEEDED.value: ErrorCode.SQL_POLICY_VIOLATION,
    ErrorCategory.RESOURCE_EXHAUSTED.value: ErrorCode.POOL_SATURATED,
    ErrorCategory.AUTH.value: ErrorCode.DB_CONNECTION_ERROR,
    ErrorCategory.CONNECTIVITY.value: ErrorCode.DB_CONNECTION_ERROR,
    ErrorCategory.TRANSIENT.value: ErrorCode.DB_CONNECTION_ERROR,
    ErrorCategory.TIMEOUT.value: ErrorCode.DB_TIMEOUT,
    ErrorCategory.SYNTAX.value: ErrorCode.DB_QUERY_ERROR,
    ErrorCategory.UNKNOWN.value: ErrorCode.INTERNAL_ERROR,
    ErrorCategory.INTERNAL.value: ErrorCode.INTERNAL_ERROR,
}

_CODE_GROUPS: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_ERROR: "VALIDATION",
    ErrorCode.CONFIGURATION_ERROR: "CONFIG",
    ErrorCode.SQL_POLICY_VIOLATION: "POLICY",
    ErrorCode.POOL_SATURATED: "POOL",
    ErrorCode.DB_CONNECTION_ERROR: "DB",
    ErrorCode.DB_TIMEOUT: "DB",
    ErrorCode.DB_QUERY_ERROR: "DB",
    ErrorCode.INTERNAL_ERROR: "INTERNAL",
}


def _normalize_category(category: str | ErrorCategory | None) -> str:
    if isinstance(category, ErrorCategory):
        return category.value
    if category is None:
        return ""
    return str(category).strip()


def canonical_error_code_for_category(
    category: str | ErrorCategory | None,
    *,
    fallback: ErrorCode = ErrorCode.INTERNAL_ERROR,
) -> ErrorCode:
    """Resolve canonical error code from category-like values."""
    normalized = _normalize_category(category)
    if not normalized:
        return fallback
    return _CATEGORY_TO_CODE.get(normalized.lower(), fallback)


def error_code_group(code: ErrorCode | str) -> str:
    """Return the coarse group for a canonical error code."""
    try:
        resolved = code if isinstance(code, ErrorCode) else ErrorCode(str(code).strip().upper())
    except ValueError:
        return "INTERNAL"
    return _CODE_GROUPS.get(resolved, "INTERNAL")
