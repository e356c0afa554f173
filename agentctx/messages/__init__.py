"""Message normalization, validation and repair."""

from .normalize import CACHE_CONTROL_HINT, MAX_ATTACHMENT_LINES, normalize_messages
from .repair import (
    ensure_user_first,
    merge_consecutive_assistant_messages,
    remove_empty_assistant_messages,
    remove_orphaned_tool_messages,
    repair_messages,
    trim_assistant_trailing_whitespace,
)
from .validate import (
    FATAL_ISSUE_CODES,
    InvalidMessageFormat,
    ValidationIssue,
    ValidationResult,
    ensure_valid,
    validate_model_messages,
)

__all__ = [
    "CACHE_CONTROL_HINT",
    "FATAL_ISSUE_CODES",
    "MAX_ATTACHMENT_LINES",
    "InvalidMessageFormat",
    "ValidationIssue",
    "ValidationResult",
    "ensure_user_first",
    "ensure_valid",
    "merge_consecutive_assistant_messages",
    "normalize_messages",
    "remove_empty_assistant_messages",
    "remove_orphaned_tool_messages",
    "repair_messages",
    "trim_assistant_trailing_whitespace",
    "validate_model_messages",
]
