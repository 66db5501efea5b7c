"""Typed envelope models for tool IO."""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field, model_validator

from common.models.error_metadata import ToolError

# Current schema version for future-proofing
CURRENT_SCHEMA_VERSION = "1.0"
CURRENT_TOOL_VERSION = "v1"
T = TypeVar("T")


class GenericToolMetadata(BaseModel):
    """Generic metadata for tool responses."""

    tool_version: str = Field(
        default=CURRENT_TOOL_VERSION,
        description="Semantic version for tool response contract",
    )
    provider: str = Field("unknown", description="Database or system provider")
    execution_time_ms: Optional[float] = None
    operation: Optional[str] = Field(None, description="Classified SQL operation kind")
    returned_count: Optional[int] = None
    affected_rows: Optional[int] = None
    limit_applied: Optional[int] = None
    max_results: Optional[int] = Field(None, description="Configured result-row cap")


class GenericToolResponseEnvelope(BaseModel, Generic[T]):
    """Standardized envelope for tool responses."""

    schema_version: str = Field(default=CURRENT_SCHEMA_VERSION)
    result: Optional[T] = Field(default=None, description="The tool's main output payload")
    metadata: GenericToolMetadata = Field(default_factory=GenericToolMetadata)
    error: Optional[ToolError] = None

    @model_validator(mode="after")
    def _result_or_error(self) -> "GenericToolResponseEnvelope":
        """Error envelopes never carry a result payload."""
        if self.error is not None:
            self.result = None
        return self

    def is_error(self) -> bool:
        """Check if the envelope represents an error."""
        return self.error is not None


class ToolResponseEnvelope(GenericToolResponseEnvelope[T], Generic[T]):
    """Alias for GenericToolResponseEnvelope for clarity at call sites."""

    pass


def parse_tool_response(payload: Any) -> ToolResponseEnvelope:
    """Parse a raw JSON string or dict into a typed envelope."""
    if isinstance(payload, ToolResponseEnvelope):
        return payload
    if isinstance(payload, str):
        return ToolResponseEnvelope.model_validate_json(payload)
    return ToolResponseEnvelope.model_validate(payload)
