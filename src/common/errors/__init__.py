"""Common error taxonomy helpers."""

from common.errors.error_codes import ErrorCode, canonical_error_code_for_category, error_code_group
from common.errors.exceptions import ConfigurationError, GatewayError

__all__ = [
    "ConfigurationError",
    "ErrorCode",
    "GatewayError",
    "canonical_error_code_for_category",
    "error_code_group",
]
