"""DAL error taxonomy.

Only disconnect-class errors are ever retried, and only by
``ConnectionPool.execute_with_retry``. Everything else reaches the caller.
"""

from typing import Optional

from common.errors import GatewayError
from common.models.error_metadata import ErrorCategory


class DatabaseConnectionError(GatewayError):
    """The backend could not be reached or the link to it was lost.

    ``retryable`` is set when an established connection was lost mid-call.
    """

    category = ErrorCategory.CONNECTIVITY
    code = "CONNECTION_ERROR"

    def __init__(
        self, message: str, *, provider: Optional[str] = None, retryable: bool = False
    ) -> None:
        self.provider = provider
        self.retryable = retryable
        super().__init__(message, details={"provider": provider} if provider else None)


class PoolSaturatedError(GatewayError):
    """Every pool slot is in use; callers are never queued."""

    category = ErrorCategory.RESOURCE_EXHAUSTED
    code = "POOL_SATURATED"
    retryable = True

    def __init__(self, max_size: int) -> None:
        self.max_size = max_size
        super().__init__(
            f"Connection pool saturated. Maximum: {max_size}",
            details={"max_size": max_size},
        )


class RetryExhaustedError(GatewayError):
    """Transient disconnects persisted past the retry budget."""

    category = ErrorCategory.TRANSIENT
    code = "RETRY_EXHAUSTED"
    retryable = True

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(
            f"Operation failed after {attempts} attempts.",
            details={"attempts": attempts},
        )


class BackendQueryError(GatewayError):
    """An ordinary query failure (syntax, constraint) reported by the driver."""

    category = ErrorCategory.SYNTAX
    code = "QUERY_ERROR"

    def __init__(self, message: str, *, provider: Optional[str] = None) -> None:
        self.provider = provider
        super().__init__(message, details={"provider": provider} if provider else None)
