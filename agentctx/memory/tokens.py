"""Token estimation utilities for context compaction.

Uses a simple heuristic: ~4 characters per token. Real deployments usually pass
a provider-specific estimator to the compactor; this one is the default.
"""

from __future__ import annotations

import json
import math
from typing import Any

from pydantic import BaseModel


def estimate_tokens(text: str) -> int:
    """Estimate token count for a string using the ~4 chars/token heuristic."""
    return math.ceil(len(text) / 4)


def estimate_message_tokens(message: BaseModel | dict[str, Any]) -> int:
    """Estimate token count for a single conversation message."""
    if isinstance(message, BaseModel):
        content = getattr(message, "content", None)
        if isinstance(content, list):
            content = [
                p.model_dump(mode="json") if isinstance(p, BaseModel) else p for p in content
            ]
    else:
        content = message.get("content")
    if isinstance(content, str):
        return estimate_tokens(content)
    try:
        return estimate_tokens(json.dumps(content))
    except (TypeError, ValueError):
        return 0


def estimate_messages_tokens(messages: list[BaseModel] | list[dict[str, Any]]) -> int:
    """Estimate total token count for a list of conversation messages."""
    total = 0
    for msg in messages:
        total += estimate_message_tokens(msg)
    return total
