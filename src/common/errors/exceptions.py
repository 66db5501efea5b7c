"""Base exception types shared by the DAL, security and MCP layers."""

from typing import Any, Dict, Optional

from common.models.error_metadata import ErrorCategory


class GatewayError(Exception):
    """Base class for errors surfaced to the tool transport.

    Subclasses pin a category, a stable machine code and retryability so the
    transport can build an error envelope without re-deriving them.
    """

    category: ErrorCategory = ErrorCategory.INTERNAL
    code: str = "GATEWAY_ERROR"
    retryable: bool = False

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        """Initialize with a user-facing message and safe structured details."""
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})


class ConfigurationError(GatewayError):
    """Missing or invalid configuration detected at startup."""

    category = ErrorCategory.CONFIGURATION
    code = "CONFIGURATION_ERROR"
