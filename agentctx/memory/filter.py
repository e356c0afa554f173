"""Structural filtering of messages that are about to be summarized.

Removes tool-call/tool-result pairs whose content is redundant or stale:

- earlier reads of a resource that is read again later
- exploratory calls (searches, listings) outside the protection window
- exact repeats of an earlier call (same tool, same input)

Pairs are always removed together, so filtering never creates orphans.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from ..types.messages import (
    AssistantModelMessage,
    ModelMessage,
    ToolCallPart,
    ToolModelMessage,
    tool_call_parts,
)
from ..utils.serializer import canonical_json
from ..utils.tracing import set_span_attributes, traced
from .types import CompactionPolicy

logger = logging.getLogger(__name__)


def filter_by_tool_call_ids(
    messages: list[ModelMessage], tool_call_ids: set[str]
) -> list[ModelMessage]:
    """Remove tool-call and tool-result parts with the given ids.

    An assistant turn that loses a tool-call is kept only if it still carries
    another tool-call; its narration of the removed call goes with it. Tool
    messages left without results are dropped.
    """
    if not tool_call_ids:
        return list(messages)

    result: list[ModelMessage] = []
    for msg in messages:
        if isinstance(msg, AssistantModelMessage) and isinstance(msg.content, list):
            kept = [
                p
                for p in msg.content
                if not (isinstance(p, ToolCallPart) and p.tool_call_id in tool_call_ids)
            ]
            if len(kept) == len(msg.content):
                result.append(msg)
            elif any(isinstance(p, ToolCallPart) for p in kept):
                result.append(msg.model_copy(update={"content": kept}))
        elif isinstance(msg, ToolModelMessage):
            kept_results = [p for p in msg.content if p.tool_call_id not in tool_call_ids]
            if len(kept_results) == len(msg.content):
                result.append(msg)
            elif kept_results:
                result.append(msg.model_copy(update={"content": kept_results}))
        else:
            result.append(msg)
    return result


def _parse_input(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return None
    return value


def read_key(call: ToolCallPart) -> str | None:
    """Identity of the resource a read call touches: path plus line range."""
    args = _parse_input(call.input)
    if not isinstance(args, dict):
        return None
    path = args.get("file_path") or args.get("filePath") or args.get("path")
    if not path:
        return None
    start_line = args.get("start_line", "full")
    line_count = args.get("line_count", "full")
    return f"{path}:{start_line}:{line_count}"


class ContextFilter:
    """Drops redundant tool traffic before summarization."""

    def __init__(self, policy: CompactionPolicy | None = None):
        self.policy = policy or CompactionPolicy()

    @traced("ContextFilter.filter_messages")
    def filter_messages(self, messages: list[ModelMessage]) -> list[ModelMessage]:
        call_count = sum(len(tool_call_parts(m)) for m in messages)
        logger.info("Filtering messages: %d messages, %d tool calls", len(messages), call_count)

        ids_to_filter = self.collect_tool_call_ids_to_filter(messages)
        if not ids_to_filter:
            return list(messages)

        logger.info("Filtering %d tool call pairs", len(ids_to_filter))
        filtered = filter_by_tool_call_ids(messages, ids_to_filter)
        removed = len(messages) - len(filtered)
        if removed > 0:
            logger.info("Filtered out %d messages", removed)
        set_span_attributes(filtered_pairs=len(ids_to_filter), removed_messages=removed)
        return filtered

    def collect_tool_call_ids_to_filter(self, messages: list[ModelMessage]) -> set[str]:
        ids: set[str] = set()
        self._collect_duplicate_reads(messages, ids)
        self._collect_exploratory(messages, ids)
        self._collect_exact_duplicates(messages, ids)
        return ids

    def _collect_duplicate_reads(self, messages: list[ModelMessage], ids: set[str]) -> None:
        latest: dict[str, str] = {}
        for msg in messages:
            for call in tool_call_parts(msg):
                if call.tool_name not in self.policy.read_tool_names or call.tool_call_id in ids:
                    continue
                key = read_key(call)
                if key is None:
                    continue
                previous = latest.get(key)
                if previous:
                    ids.add(previous)
                    logger.info("Marking duplicate read for removal: %s", key)
                latest[key] = call.tool_call_id

    def _collect_exploratory(self, messages: list[ModelMessage], ids: set[str]) -> None:
        threshold = max(0, len(messages) - self.policy.exploratory_protection_window)
        logger.debug("Protection threshold: %d, total messages: %d", threshold, len(messages))
        for index, msg in enumerate(messages[:threshold]):
            for call in tool_call_parts(msg):
                if call.tool_name not in self.policy.exploratory_tool_names:
                    continue
                if call.tool_call_id not in ids:
                    ids.add(call.tool_call_id)
                    logger.info(
                        "Marking exploratory tool for removal: %s at index %d",
                        call.tool_name,
                        index,
                    )

    def _collect_exact_duplicates(self, messages: list[ModelMessage], ids: set[str]) -> None:
        latest: dict[str, str] = {}
        for msg in messages:
            for call in tool_call_parts(msg):
                if call.tool_call_id in ids:
                    continue
                signature = f"{call.tool_name}:{canonical_json(call.input)}"
                previous = latest.get(signature)
                if previous:
                    ids.add(previous)
                    logger.info(
                        "Marking exact duplicate tool call for removal: %s (%s)",
                        call.tool_name,
                        previous,
                    )
                latest[signature] = call.tool_call_id
