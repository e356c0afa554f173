"""JSON serialization utilities for tool inputs and outputs."""

import json
from typing import Any

from pydantic import BaseModel


def json_serialize(obj: Any) -> str:
    """Serialize an object to a JSON string.

    Pydantic models are serialized with model_dump_json(). Anything else goes
    through json.dumps.

    Args:
        obj: Object to serialize

    Returns:
        JSON string

    Raises:
        TypeError: If the object is not a Pydantic model and not JSON serializable
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump_json()

    try:
        return json.dumps(obj)
    except (TypeError, ValueError) as e:
        raise TypeError(
            f"Object of type {type(obj).__name__} is not JSON serializable. "
            f"If it's a Pydantic model, ensure it inherits from BaseModel."
        ) from e


def safe_serialize(obj: Any) -> str:
    """Serialize for display, falling back to str() for unserializable values."""
    try:
        return json_serialize(obj)
    except TypeError:
        return str(obj)


def canonical_json(obj: Any) -> str:
    """Deterministic JSON (sorted keys) used to compare tool inputs.

    Strings that hold a JSON document are decoded first so that ``'{"a": 1}'``
    and ``{"a": 1}`` compare equal.
    """
    if isinstance(obj, str):
        try:
            obj = json.loads(obj)
        except ValueError:
            return json.dumps(obj)
    if isinstance(obj, BaseModel):
        obj = obj.model_dump(mode="json")
    return json.dumps(obj, sort_keys=True, default=str)


def normalize_tool_output(output: Any) -> str:
    """Flatten a tool output into the string form sent to the model.

    None becomes an empty string, strings pass through, anything else is
    JSON-serialized.
    """
    if output is None:
        return ""
    if isinstance(output, str):
        return output
    return safe_serialize(output)
