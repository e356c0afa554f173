"""Normalize raw conversation history into a model-ready message sequence.

Runs once per turn before every model call. The output always satisfies the
model-message invariants or ``InvalidMessageFormat`` is raised.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from ..types.messages import (
    AssistantModelMessage,
    Attachment,
    ImagePart,
    Message,
    ModelMessage,
    SystemModelMessage,
    TextPart,
    ToolCallPart,
    ToolModelMessage,
    ToolResultOutput,
    ToolResultPart,
    UserModelMessage,
    messages_adapter,
)
from ..utils.serializer import normalize_tool_output
from ..utils.tracing import set_span_attributes, traced
from .repair import merge_consecutive_assistant_messages
from .validate import ensure_valid

logger = logging.getLogger(__name__)

# Attachments longer than this are referenced by path instead of inlined.
MAX_ATTACHMENT_LINES = 2000

# Provider-agnostic hint: this content is stable across turns and may be cached.
CACHE_CONTROL_HINT: dict[str, Any] = {"cache_control": {"type": "ephemeral"}}


def _coerce_messages(messages: list[Any]) -> list[Message]:
    if all(isinstance(m, Message) for m in messages):
        return list(messages)
    return messages_adapter.validate_python(
        [m.model_dump() if isinstance(m, BaseModel) else m for m in messages]
    )


def _collect_tool_result_ids(messages: list[Message]) -> set[str]:
    """Ids of every tool-call that has a recorded result."""
    ids = set()
    for msg in messages:
        if msg.role != "tool" or not isinstance(msg.content, list):
            continue
        for part in msg.content:
            if isinstance(part, ToolResultPart) and part.tool_call_id:
                ids.add(part.tool_call_id)
    return ids


def _tool_result_output(output: Any) -> ToolResultOutput:
    """Wrap a raw tool output, passing through one that is already wrapped."""
    if isinstance(output, ToolResultOutput):
        return output
    if (
        isinstance(output, dict)
        and output.keys() == {"type", "value"}
        and output["type"] == "text"
        and isinstance(output["value"], str)
    ):
        return ToolResultOutput(value=output["value"])
    return ToolResultOutput(value=normalize_tool_output(output))


def _convert_tool_message(msg: Message, result_ids: set[str]) -> ModelMessage | None:
    if not isinstance(msg.content, list) or not msg.content:
        return None

    calls = [p for p in msg.content if isinstance(p, ToolCallPart)]
    if calls:
        kept_calls = []
        for part in calls:
            if part.tool_call_id not in result_ids:
                # Interrupted execution: the call never produced a result.
                logger.warning(
                    "Skipping orphaned tool-call: %s (%s)", part.tool_name, part.tool_call_id
                )
                continue
            kept_calls.append(
                ToolCallPart(
                    tool_call_id=part.tool_call_id,
                    tool_name=part.tool_name,
                    input=part.input if part.input is not None else {},
                )
            )
        return AssistantModelMessage(content=kept_calls) if kept_calls else None

    results = [
        ToolResultPart(
            tool_call_id=part.tool_call_id,
            tool_name=part.tool_name or msg.tool_name or "unknown",
            output=_tool_result_output(part.output),
        )
        for part in msg.content
        if isinstance(part, ToolResultPart)
    ]
    if results:
        return ToolModelMessage(content=results)

    logger.debug("Ignoring tool message with %s content part", msg.content[0].type)
    return None


def _attachment_text(attachment: Attachment) -> str:
    file_path = attachment.file_path or attachment.filename
    content = attachment.content or ""
    line_count = len(content.split("\n")) if attachment.content is not None else 0

    if line_count > MAX_ATTACHMENT_LINES:
        return (
            f"The file path is {file_path}.\n"
            f"The file name is {attachment.filename}.\n"
            f"This file is too long ({line_count} lines), please use the code search tool "
            f"and read file tool to read the file content you really need."
        )
    return (
        f"The file path is {file_path}.\n"
        f"The file name is {attachment.filename}.\n"
        f"The content in {attachment.filename} is:\n<code>\n{content}\n</code>"
    )


def _text_of(msg: Message) -> str:
    if isinstance(msg.content, str):
        return msg.content
    return "\n".join(p.text for p in msg.content if isinstance(p, TextPart))


def _convert_with_attachments(msg: Message) -> ModelMessage | None:
    text = _text_of(msg)
    parts: list[Any] = []
    if text.strip():
        parts.append(TextPart(text=text))

    for attachment in msg.attachments or []:
        if attachment.type == "image":
            if not attachment.content:
                continue
            if msg.role == "assistant":
                logger.warning(
                    "Dropping image attachment %s from assistant message", attachment.filename
                )
                continue
            parts.append(ImagePart(image=attachment.content, media_type=attachment.mime_type))
        else:
            parts.append(TextPart(text=_attachment_text(attachment)))

    if not parts:
        return None
    if msg.role == "assistant":
        return AssistantModelMessage(content=parts)
    return UserModelMessage(content=parts)


def _convert_structured_content(msg: Message, result_ids: set[str]) -> ModelMessage | None:
    """Keep the parts a role is allowed to carry from loosely structured list content."""
    if msg.role == "user":
        user_parts = [
            p
            for p in msg.content
            if isinstance(p, ImagePart) or (isinstance(p, TextPart) and p.text.strip())
        ]
        return UserModelMessage(content=user_parts) if user_parts else None

    assistant_parts: list[Any] = []
    for part in msg.content:
        if isinstance(part, TextPart) and part.text.strip():
            assistant_parts.append(part)
        elif isinstance(part, ToolCallPart):
            if part.tool_call_id in result_ids:
                assistant_parts.append(part)
            else:
                logger.warning(
                    "Skipping orphaned tool-call: %s (%s)", part.tool_name, part.tool_call_id
                )
    return AssistantModelMessage(content=assistant_parts) if assistant_parts else None


def _convert_chat_message(msg: Message, result_ids: set[str]) -> ModelMessage | None:
    if msg.attachments:
        return _convert_with_attachments(msg)

    if isinstance(msg.content, list):
        return _convert_structured_content(msg, result_ids)

    if msg.role == "assistant":
        if not msg.content.strip():
            return None
        return AssistantModelMessage(content=msg.content)
    return UserModelMessage(content=msg.content)


@traced("normalize_messages")
def normalize_messages(
    messages: list[Message] | list[dict[str, Any]],
    system_prompt: str | None = None,
) -> list[ModelMessage]:
    """Convert raw conversation history into a strict model-ready sequence.

    Args:
        messages: History records, as ``Message`` models or plain dicts
        system_prompt: Authoritative system prompt. Any system messages in the
            history are dropped in its favour. Omitted when empty.

    Returns:
        Messages with at most one leading system message, no consecutive
        assistant turns and a one-to-one pairing of tool-calls and tool-results

    Raises:
        InvalidMessageFormat: If the converted sequence still violates an invariant
        pydantic.ValidationError: If a dict input is not a valid ``Message``
    """
    history = _coerce_messages(messages)
    result_ids = _collect_tool_result_ids(history)

    converted: list[ModelMessage] = []
    if system_prompt:
        converted.append(
            SystemModelMessage(content=system_prompt, provider_options=dict(CACHE_CONTROL_HINT))
        )

    for msg in history:
        if msg.role == "system":
            continue
        if msg.role == "tool":
            model_message = _convert_tool_message(msg, result_ids)
        else:
            model_message = _convert_chat_message(msg, result_ids)
        if model_message is not None:
            converted.append(model_message)

    merged = merge_consecutive_assistant_messages(converted)
    ensure_valid(merged)

    set_span_attributes(input_count=len(history), output_count=len(merged))
    return merged
