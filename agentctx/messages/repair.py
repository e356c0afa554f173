"""Repairs for model-message sequences that break provider rules.

Each function is pure: it returns a new list and never mutates its input.
"""

from __future__ import annotations

import logging

from ..types.messages import (
    AssistantModelMessage,
    ModelMessage,
    SystemModelMessage,
    TextPart,
    ToolCallPart,
    ToolModelMessage,
    ToolResultPart,
    UserModelMessage,
    content_as_parts,
    tool_call_parts,
    tool_result_parts,
)

logger = logging.getLogger(__name__)


def merge_consecutive_assistant_messages(messages: list[ModelMessage]) -> list[ModelMessage]:
    """Collapse runs of assistant messages into one.

    Scalar content is coerced into a text part first and blank text parts are
    dropped. Model APIs reject consecutive assistant turns.
    """
    result: list[ModelMessage] = []
    for msg in messages:
        last = result[-1] if result else None
        if isinstance(msg, AssistantModelMessage) and isinstance(last, AssistantModelMessage):
            last_parts = content_as_parts(last.content)
            current_parts = content_as_parts(msg.content)
            combined = [
                p
                for p in last_parts + current_parts
                if not (isinstance(p, TextPart) and not p.text.strip())
            ]
            if combined:
                result[-1] = last.model_copy(update={"content": combined})
            logger.info(
                "Merged consecutive assistant messages (last=%d, current=%d, combined=%d parts)",
                len(last_parts),
                len(current_parts),
                len(combined),
            )
        else:
            result.append(msg)
    return result


def remove_orphaned_tool_messages(messages: list[ModelMessage]) -> list[ModelMessage]:
    """Drop tool-calls without results and tool-results without calls."""
    call_ids = {p.tool_call_id for m in messages for p in tool_call_parts(m)}
    result_ids = {p.tool_call_id for m in messages for p in tool_result_parts(m)}
    paired = call_ids & result_ids

    result: list[ModelMessage] = []
    for msg in messages:
        if isinstance(msg, AssistantModelMessage) and isinstance(msg.content, list):
            kept = []
            for part in msg.content:
                if isinstance(part, ToolCallPart) and part.tool_call_id not in paired:
                    logger.debug(
                        "Removing orphaned tool-call %s (%s)", part.tool_call_id, part.tool_name
                    )
                    continue
                kept.append(part)
            if kept:
                result.append(msg.model_copy(update={"content": kept}))
        elif isinstance(msg, ToolModelMessage):
            kept_results: list[ToolResultPart] = []
            for part in msg.content:
                if part.tool_call_id not in paired:
                    logger.debug(
                        "Removing orphaned tool-result %s (%s)", part.tool_call_id, part.tool_name
                    )
                    continue
                kept_results.append(part)
            if kept_results:
                result.append(msg.model_copy(update={"content": kept_results}))
        else:
            result.append(msg)
    return result


def _has_assistant_content(msg: AssistantModelMessage) -> bool:
    if isinstance(msg.content, str):
        return bool(msg.content.strip())
    return any(
        isinstance(p, ToolCallPart) or (isinstance(p, TextPart) and p.text.strip())
        for p in msg.content
    )


def remove_empty_assistant_messages(messages: list[ModelMessage]) -> list[ModelMessage]:
    return [
        m for m in messages if not isinstance(m, AssistantModelMessage) or _has_assistant_content(m)
    ]


def ensure_user_first(messages: list[ModelMessage]) -> list[ModelMessage]:
    """Insert a placeholder user turn if the conversation opens with the assistant.

    Tool messages count as user-side turns.
    """
    index = 0
    while index < len(messages) and isinstance(messages[index], SystemModelMessage):
        index += 1
    if index >= len(messages) or not isinstance(messages[index], AssistantModelMessage):
        return list(messages)

    logger.warning("First non-system message is not from the user, adding placeholder")
    return [*messages[:index], UserModelMessage(content="Continue."), *messages[index:]]


def trim_assistant_trailing_whitespace(messages: list[ModelMessage]) -> list[ModelMessage]:
    """Strip trailing whitespace from the final text of the last assistant message."""
    result = list(messages)
    for i in range(len(result) - 1, -1, -1):
        msg = result[i]
        if not isinstance(msg, AssistantModelMessage):
            continue
        if isinstance(msg.content, str):
            if msg.content != msg.content.rstrip():
                result[i] = msg.model_copy(update={"content": msg.content.rstrip()})
        else:
            parts = list(msg.content)
            for j in range(len(parts) - 1, -1, -1):
                part = parts[j]
                if isinstance(part, TextPart) and part.text:
                    if part.text != part.text.rstrip():
                        parts[j] = part.model_copy(update={"text": part.text.rstrip()})
                        result[i] = msg.model_copy(update={"content": parts})
                    break
        break
    return result


def repair_messages(
    messages: list[ModelMessage],
    auto_fix: bool = True,
    trim_whitespace: bool = True,
) -> list[ModelMessage]:
    """Apply the standard repair chain and log what changed.

    Args:
        messages: Sequence to repair
        auto_fix: Remove orphans and empty assistant turns, merge consecutive
            assistant turns and make sure the conversation opens with the user
        trim_whitespace: Strip trailing whitespace from the last assistant turn

    Returns:
        A new, repaired list
    """
    result = list(messages)
    modifications = []

    if auto_fix:
        steps = [
            ("Removed orphaned tool messages", remove_orphaned_tool_messages),
            ("Removed empty assistant messages", remove_empty_assistant_messages),
            ("Merged consecutive assistant messages", merge_consecutive_assistant_messages),
            ("Added placeholder user message", ensure_user_first),
        ]
        for description, step in steps:
            before = len(result)
            result = step(result)
            if len(result) != before:
                modifications.append(description)

    if trim_whitespace:
        result = trim_assistant_trailing_whitespace(result)

    if modifications:
        logger.info(
            "Repaired messages (%d -> %d): %s",
            len(messages),
            len(result),
            ", ".join(modifications),
        )
    return result
