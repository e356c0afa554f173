"""Conversation context management for coding agents.

Normalizes raw chat history into model-ready messages and compacts long
conversations into a summary plus the messages that must stay verbatim.
"""

__version__ = "0.1.0"

from .llm import LLMProvider, LLMResponse
from .memory import (
    CompactionOutcome,
    CompactionPolicy,
    CompressionConfig,
    CompressionResult,
    CompressionSettings,
    CompressionStats,
    ContextCompactor,
    ContextFilter,
    ModelInfo,
    ProviderSummarizer,
    Section,
    resolve_compression_config,
)
from .messages import (
    InvalidMessageFormat,
    ValidationIssue,
    ValidationResult,
    normalize_messages,
    repair_messages,
    validate_model_messages,
)
from .types import (
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
)
from .utils import CancellationToken, OperationCancelledError

__all__ = [
    "AssistantModelMessage",
    "Attachment",
    "CancellationToken",
    "CompactionOutcome",
    "CompactionPolicy",
    "CompressionConfig",
    "CompressionResult",
    "CompressionSettings",
    "CompressionStats",
    "ContextCompactor",
    "ContextFilter",
    "ImagePart",
    "InvalidMessageFormat",
    "LLMProvider",
    "LLMResponse",
    "Message",
    "ModelInfo",
    "ModelMessage",
    "OperationCancelledError",
    "ProviderSummarizer",
    "Section",
    "SystemModelMessage",
    "TextPart",
    "ToolCallPart",
    "ToolModelMessage",
    "ToolResultOutput",
    "ToolResultPart",
    "UserModelMessage",
    "ValidationIssue",
    "ValidationResult",
    "normalize_messages",
    "repair_messages",
    "resolve_compression_config",
    "validate_model_messages",
]
