"""Type definitions for messages and content parts."""

from .messages import (
    AssistantContentPart,
    AssistantModelMessage,
    Attachment,
    ContentPart,
    ImagePart,
    Message,
    ModelMessage,
    SystemModelMessage,
    TextPart,
    ToolCallPart,
    ToolModelMessage,
    ToolResultOutput,
    ToolResultPart,
    UserContentPart,
    UserModelMessage,
    content_as_parts,
    to_model_messages,
    tool_call_parts,
    tool_result_parts,
)

__all__ = [
    "AssistantContentPart",
    "AssistantModelMessage",
    "Attachment",
    "ContentPart",
    "ImagePart",
    "Message",
    "ModelMessage",
    "SystemModelMessage",
    "TextPart",
    "ToolCallPart",
    "ToolModelMessage",
    "ToolResultOutput",
    "ToolResultPart",
    "UserContentPart",
    "UserModelMessage",
    "content_as_parts",
    "to_model_messages",
    "tool_call_parts",
    "tool_result_parts",
]
