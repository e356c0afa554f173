"""Validation of model-ready message sequences.

Three invariants must hold before a sequence can be sent to a model:

- at most one system message, and it is first
- no two consecutive assistant messages
- every tool-call id has exactly one tool-result with the same id, and vice versa

Empty assistant content and trailing whitespace on the final assistant turn are
reported as advisory issues; some providers reject them, but they never fail
normalization.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from ..types.messages import (
    AssistantModelMessage,
    ModelMessage,
    SystemModelMessage,
    TextPart,
    ToolCallPart,
    model_messages_adapter,
    tool_call_parts,
    tool_result_parts,
)

logger = logging.getLogger(__name__)

ValidationIssueCode = Literal[
    "SCHEMA",
    "SCATTERED_SYSTEM",
    "CONSECUTIVE_ASSISTANT",
    "ORPHANED_TOOL_CALL",
    "ORPHANED_TOOL_RESULT",
    "DUPLICATE_TOOL_CALL_ID",
    "EMPTY_ASSISTANT",
    "ASSISTANT_TRAILING_WHITESPACE",
]

FATAL_ISSUE_CODES = frozenset(
    {
        "SCHEMA",
        "SCATTERED_SYSTEM",
        "CONSECUTIVE_ASSISTANT",
        "ORPHANED_TOOL_CALL",
        "ORPHANED_TOOL_RESULT",
        "DUPLICATE_TOOL_CALL_ID",
    }
)


class ValidationIssue(BaseModel):
    """A single problem found in a message sequence."""

    code: ValidationIssueCode
    message: str
    index: int | None = None
    tool_call_id: str | None = None

    @property
    def fatal(self) -> bool:
        return self.code in FATAL_ISSUE_CODES


class ValidationResult(BaseModel):
    """Outcome of validate_model_messages."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        """True when no invariant is violated (advisory issues are allowed)."""
        return self.first_fatal_issue() is None

    def first_fatal_issue(self) -> ValidationIssue | None:
        for issue in self.issues:
            if issue.fatal:
                return issue
        return None


class InvalidMessageFormat(Exception):
    """Raised when a normalized sequence violates a model-message invariant.

    Fatal to the current turn: a malformed sequence must never be sent to a model.
    """

    def __init__(self, message: str, issues: list[ValidationIssue] | None = None):
        self.issues = issues or []
        super().__init__(f"Invalid messages format: {message}")


# ── Individual checks ─────────────────────────────────────────────────


def validate_system_messages(messages: list[ModelMessage]) -> list[ValidationIssue]:
    """At most one system message, always at index 0."""
    issues = []
    for i, msg in enumerate(messages):
        if isinstance(msg, SystemModelMessage) and i != 0:
            issues.append(
                ValidationIssue(
                    code="SCATTERED_SYSTEM",
                    message=f"System message at index {i} is not the first message",
                    index=i,
                )
            )
    return issues


def validate_message_sequence(messages: list[ModelMessage]) -> list[ValidationIssue]:
    """No two consecutive assistant messages."""
    issues = []
    for i in range(1, len(messages)):
        if isinstance(messages[i], AssistantModelMessage) and isinstance(
            messages[i - 1], AssistantModelMessage
        ):
            issues.append(
                ValidationIssue(
                    code="CONSECUTIVE_ASSISTANT",
                    message=f"Consecutive assistant messages at index {i - 1} and {i}",
                    index=i,
                )
            )
    return issues


def validate_tool_pairing(messages: list[ModelMessage]) -> list[ValidationIssue]:
    """Tool-call ids and tool-result ids must match one to one."""
    issues = []
    call_counts: Counter[str] = Counter()
    result_counts: Counter[str] = Counter()
    for msg in messages:
        for part in tool_call_parts(msg):
            call_counts[part.tool_call_id] += 1
        for part in tool_result_parts(msg):
            result_counts[part.tool_call_id] += 1

    for call_id in call_counts:
        if call_id not in result_counts:
            issues.append(
                ValidationIssue(
                    code="ORPHANED_TOOL_CALL",
                    message=f'Tool-call "{call_id}" has no matching tool-result',
                    tool_call_id=call_id,
                )
            )
    for result_id in result_counts:
        if result_id not in call_counts:
            issues.append(
                ValidationIssue(
                    code="ORPHANED_TOOL_RESULT",
                    message=f'Tool-result "{result_id}" has no matching tool-call',
                    tool_call_id=result_id,
                )
            )
    for call_id in sorted(set(call_counts) | set(result_counts)):
        if call_counts[call_id] > 1 or result_counts[call_id] > 1:
            issues.append(
                ValidationIssue(
                    code="DUPLICATE_TOOL_CALL_ID",
                    message=(
                        f'Tool id "{call_id}" appears in {call_counts[call_id]} tool-call(s) '
                        f"and {result_counts[call_id]} tool-result(s)"
                    ),
                    tool_call_id=call_id,
                )
            )
    return issues


def validate_assistant_content(messages: list[ModelMessage]) -> list[ValidationIssue]:
    issues = []
    for i, msg in enumerate(messages):
        if not isinstance(msg, AssistantModelMessage):
            continue
        if isinstance(msg.content, str):
            has_content = bool(msg.content.strip())
        else:
            has_content = any(
                isinstance(p, ToolCallPart) or (isinstance(p, TextPart) and p.text.strip())
                for p in msg.content
            )
        if not has_content:
            issues.append(
                ValidationIssue(
                    code="EMPTY_ASSISTANT",
                    message=f"Assistant message at index {i} has empty content",
                    index=i,
                )
            )
    return issues


def validate_assistant_trailing_whitespace(messages: list[ModelMessage]) -> list[ValidationIssue]:
    for i in range(len(messages) - 1, -1, -1):
        msg = messages[i]
        if not isinstance(msg, AssistantModelMessage):
            continue
        if isinstance(msg.content, str):
            text = msg.content
        else:
            texts = [p.text for p in msg.content if isinstance(p, TextPart) and p.text]
            text = texts[-1] if texts else ""
        if text != text.rstrip():
            return [
                ValidationIssue(
                    code="ASSISTANT_TRAILING_WHITESPACE",
                    message=f"Last assistant message at index {i} has trailing whitespace",
                    index=i,
                )
            ]
        return []
    return []


# ── Entry point ───────────────────────────────────────────────────────


def validate_model_messages(messages: list[Any]) -> ValidationResult:
    """Validate a sequence against the model-message schema and invariants.

    Accepts ``ModelMessage`` instances or plain dicts. A schema failure is
    reported as a single SCHEMA issue and stops further checks.
    """
    try:
        typed = model_messages_adapter.validate_python(
            [m.model_dump() if isinstance(m, BaseModel) else m for m in messages]
        )
    except ValidationError as e:
        return ValidationResult(issues=[ValidationIssue(code="SCHEMA", message=str(e))])

    issues: list[ValidationIssue] = []
    issues.extend(validate_system_messages(typed))
    issues.extend(validate_message_sequence(typed))
    issues.extend(validate_tool_pairing(typed))
    issues.extend(validate_assistant_content(typed))
    issues.extend(validate_assistant_trailing_whitespace(typed))

    if issues:
        logger.debug(
            "Validation found %d issue(s): %s", len(issues), [issue.code for issue in issues]
        )
    return ValidationResult(issues=issues)


def ensure_valid(messages: list[ModelMessage]) -> None:
    """Raise InvalidMessageFormat for the first invariant violation, if any."""
    result = validate_model_messages(messages)
    issue = result.first_fatal_issue()
    if issue is not None:
        logger.error("Message validation failed: %s", issue.message)
        raise InvalidMessageFormat(issue.message, result.issues)
