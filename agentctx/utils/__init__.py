"""Utility functions for agentctx."""

from .cancellation import CancellationToken, OperationCancelledError
from .serializer import (
    canonical_json,
    json_serialize,
    normalize_tool_output,
    safe_serialize,
)
from .tracing import get_tracer, set_span_attributes, traced

__all__ = [
    "CancellationToken",
    "OperationCancelledError",
    "canonical_json",
    "get_tracer",
    "json_serialize",
    "normalize_tool_output",
    "safe_serialize",
    "set_span_attributes",
    "traced",
]
