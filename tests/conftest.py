"""Shared pytest configuration and fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from agentctx.types.messages import (
    AssistantModelMessage,
    SystemModelMessage,
    TextPart,
    ToolCallPart,
    ToolModelMessage,
    ToolResultOutput,
    ToolResultPart,
    UserModelMessage,
)

# -- Message builders ---------------------------------------------------------


def system(text: str = "You are a coding assistant.") -> SystemModelMessage:
    return SystemModelMessage(content=text)


def user(text: str) -> UserModelMessage:
    return UserModelMessage(content=text)


def assistant(text: str) -> AssistantModelMessage:
    return AssistantModelMessage(content=text)


def tool_call(call_id: str, name: str, args=None, text: str | None = None) -> AssistantModelMessage:
    """Assistant turn holding a single tool call, optionally preceded by text."""
    parts = [TextPart(text=text)] if text else []
    parts.append(ToolCallPart(tool_call_id=call_id, tool_name=name, input=args or {}))
    return AssistantModelMessage(content=parts)


def tool_result(call_id: str, name: str, value: str = "ok") -> ToolModelMessage:
    return ToolModelMessage(
        content=[
            ToolResultPart(
                tool_call_id=call_id, tool_name=name, output=ToolResultOutput(value=value)
            )
        ]
    )


def conversation(count: int) -> list:
    """Alternating user/assistant messages, starting with the user."""
    return [
        user(f"question {i}") if i % 2 == 0 else assistant(f"answer {i}") for i in range(count)
    ]


# -- Fixtures -----------------------------------------------------------------


@pytest.fixture
def mock_summarizer():
    """Summarizer that returns a structured summary."""
    return AsyncMock(
        return_value=(
            "<analysis>Reviewed the conversation.</analysis>\n"
            "1. Primary Request and Intent: Fix the failing build.\n"
            "2. Current Work: Editing src/app.py."
        )
    )


@pytest.fixture
def mock_tracer():
    """Mock OpenTelemetry tracer."""
    tracer = MagicMock()
    span = MagicMock()
    span.__enter__ = MagicMock(return_value=span)
    span.__exit__ = MagicMock(return_value=False)
    tracer.start_as_current_span = MagicMock(return_value=span)
    return tracer
