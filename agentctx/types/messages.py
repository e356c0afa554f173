"""Message and content-part types.

Raw conversation history is stored as ``Message`` records whose content is either
a plain string or a list of tagged parts. ``ModelMessage`` is the strict,
role-tagged shape that is actually sent to a model:

- ``system``: string content
- ``user``: string or text/image parts
- ``assistant``: string or text/tool-call parts
- ``tool``: tool-result parts only
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

# ── Content parts ─────────────────────────────────────────────────────


class TextPart(BaseModel):
    """Plain text content."""

    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    """Inline image (base64 or data URL)."""

    type: Literal["image"] = "image"
    image: str
    media_type: str | None = None


class ToolCallPart(BaseModel):
    """A tool invocation requested by the assistant."""

    type: Literal["tool-call"] = "tool-call"
    tool_call_id: str
    tool_name: str
    input: Any = None


class ToolResultOutput(BaseModel):
    """Normalized tool output sent back to the model."""

    type: Literal["text"] = "text"
    value: str


class ToolResultPart(BaseModel):
    """The result of a tool invocation."""

    type: Literal["tool-result"] = "tool-result"
    tool_call_id: str
    tool_name: str
    output: Any = None


ContentPart = Annotated[
    Union[TextPart, ImagePart, ToolCallPart, ToolResultPart],
    Field(discriminator="type"),
]
UserContentPart = Annotated[Union[TextPart, ImagePart], Field(discriminator="type")]
AssistantContentPart = Annotated[Union[TextPart, ToolCallPart], Field(discriminator="type")]

# ── Raw history ───────────────────────────────────────────────────────


class Attachment(BaseModel):
    """A file, code snippet or image attached to a chat message."""

    type: Literal["image", "file", "code"]
    filename: str = ""
    file_path: str | None = None
    content: str | None = None
    mime_type: str | None = None


class Message(BaseModel):
    """A message as recorded in conversation history (pre-normalization)."""

    role: Literal["system", "user", "assistant", "tool"]
    content: str | list[ContentPart] = ""
    timestamp: datetime | None = None
    attachments: list[Attachment] | None = None
    tool_call_id: str | None = None
    tool_name: str | None = None


# ── Model-ready messages ──────────────────────────────────────────────


class SystemModelMessage(BaseModel):
    role: Literal["system"] = "system"
    content: str
    provider_options: dict[str, Any] | None = None


class UserModelMessage(BaseModel):
    role: Literal["user"] = "user"
    content: str | list[UserContentPart]
    provider_options: dict[str, Any] | None = None


class AssistantModelMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str | list[AssistantContentPart]
    provider_options: dict[str, Any] | None = None


class ToolModelMessage(BaseModel):
    role: Literal["tool"] = "tool"
    content: list[ToolResultPart]
    provider_options: dict[str, Any] | None = None


ModelMessage = Annotated[
    Union[SystemModelMessage, UserModelMessage, AssistantModelMessage, ToolModelMessage],
    Field(discriminator="role"),
]

model_messages_adapter: TypeAdapter[list[ModelMessage]] = TypeAdapter(list[ModelMessage])
messages_adapter: TypeAdapter[list[Message]] = TypeAdapter(list[Message])


def to_model_messages(messages: list[Any]) -> list[ModelMessage]:
    """Coerce dicts (e.g. loaded from storage) into ``ModelMessage`` instances."""
    return model_messages_adapter.validate_python(
        [m.model_dump() if isinstance(m, BaseModel) else m for m in messages]
    )


# ── Part helpers ──────────────────────────────────────────────────────


def tool_call_parts(message: ModelMessage) -> list[ToolCallPart]:
    """Tool-call parts of an assistant message (empty for any other message)."""
    if isinstance(message, AssistantModelMessage) and isinstance(message.content, list):
        return [p for p in message.content if isinstance(p, ToolCallPart)]
    return []


def tool_result_parts(message: ModelMessage) -> list[ToolResultPart]:
    """Tool-result parts of a tool message (empty for any other message)."""
    if isinstance(message, ToolModelMessage):
        return [p for p in message.content if isinstance(p, ToolResultPart)]
    return []


def content_as_parts(content: str | list[Any]) -> list[Any]:
    """Coerce scalar content into a single text part; blank strings become no parts."""
    if isinstance(content, str):
        return [TextPart(text=content)] if content.strip() else []
    return list(content)
