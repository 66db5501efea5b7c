"""Sanitization utilities."""

from .text import preview, redact_sensitive_info

__all__ = ["preview", "redact_sensitive_info"]
