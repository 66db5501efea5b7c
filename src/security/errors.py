"""Security policy rejections.

Every rejection derives from :class:`SecurityViolation` and carries the
detail a transport needs to explain it (keyword, schema, limits) in
``details``. Violations are terminal for the call and never retried.
"""

from typing import Optional

from common.errors import GatewayError
from common.models.error_metadata import ErrorCategory


class SecurityViolation(GatewayError):
    """Base class for policy rejections."""

    category = ErrorCategory.UNAUTHORIZED
    code = "SECURITY_VIOLATION"


class EmptyQuery(SecurityViolation):
    """The query was empty after trimming."""

    category = ErrorCategory.INVALID_REQUEST
    code = "EMPTY_QUERY"

    def __init__(self) -> None:
        super().__init__("Empty query is not allowed.")


class OperationNotPermitted(SecurityViolation):
    """The declared operation is disabled by configuration."""

    category = ErrorCategory.MUTATION_BLOCKED
    code = "OPERATION_NOT_PERMITTED"

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(
            f"Operation {operation} is not permitted by the configuration.",
            details={"operation": operation},
        )


class ForbiddenKeyword(SecurityViolation):
    """A DDL or dangerous keyword appeared in the query."""

    code = "FORBIDDEN_KEYWORD"

    def __init__(self, keyword: str) -> None:
        self.keyword = keyword
        super().__init__(
            f"Forbidden keyword detected: {keyword}",
            details={"keyword": keyword},
        )


class SchemaNotAllowed(SecurityViolation):
    """The query references a schema outside the allow-list."""

    code = "SCHEMA_NOT_ALLOWED"

    def __init__(self, schema: str) -> None:
        self.schema = schema
        super().__init__(f"Schema not allowed: {schema}", details={"schema": schema})


class InjectionPatternDetected(SecurityViolation):
    """The query matched a SQL-injection heuristic."""

    category = ErrorCategory.INVALID_REQUEST
    code = "INJECTION_PATTERN_DETECTED"

    def __init__(self, pattern_name: Optional[str] = None) -> None:
        self.pattern_name = pattern_name
        details = {"pattern": pattern_name} if pattern_name else None
        super().__init__("Potential SQL injection pattern detected.", details=details)


class ResultLimitExceeded(SecurityViolation):
    """The result set is larger than the configured cap."""

    category = ErrorCategory.LIMIT_EXCEEDED
    code = "RESULT_LIMIT_EXCEEDED"

    def __init__(self, max_results: int, requested: int) -> None:
        self.max_results = max_results
        self.requested = requested
        super().__init__(
            f"Result limit exceeded. Maximum: {max_results}, requested: {requested}",
            details={"max_results": max_results, "requested": requested},
        )


class UnsafeMutation(SecurityViolation):
    """An UPDATE or DELETE was requested without any WHERE condition."""

    category = ErrorCategory.MUTATION_BLOCKED
    code = "UNSAFE_MUTATION"

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(
            f"{operation} without WHERE conditions is not allowed.",
            details={"operation": operation},
        )


class StatementNotRowReturning(SecurityViolation):
    """A read-only tool was handed a statement that does not return rows."""

    category = ErrorCategory.INVALID_REQUEST
    code = "STATEMENT_NOT_ROW_RETURNING"

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(
            f"Operation {operation} does not return rows; use execute_query instead.",
            details={"operation": operation},
        )
