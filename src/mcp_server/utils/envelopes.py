"""Utility functions for tool response envelopes."""

import json
from typing import Any

from common.models.tool_envelopes import GenericToolMetadata, ToolResponseEnvelope


def to_jsonable(value: Any) -> Any:
    """Coerce driver values (Decimal, datetime, bytes) into JSON-safe types."""
    return json.loads(json.dumps(value, default=str))


def tool_success_response(result: Any, provider: str = "unknown", **metadata: Any) -> str:
    """Construct a standardized success response envelope."""
    envelope = ToolResponseEnvelope(
        result=to_jsonable(result),
        metadata=GenericToolMetadata(provider=provider, **metadata),
    )
    return envelope.model_dump_json(exclude_none=True)
