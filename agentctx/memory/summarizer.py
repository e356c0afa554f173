"""Summarizer collaborators: prompt, transcript rendering and model selection.

The compactor only needs a ``Summarizer`` callable. ``ProviderSummarizer`` is
the default adapter that turns an ``LLMProvider`` into one.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from pydantic import BaseModel

from ..llm.base import LLMProvider
from ..types.messages import (
    ImagePart,
    ModelMessage,
    TextPart,
    ToolCallPart,
    ToolResultPart,
)
from ..utils.cancellation import CancellationToken
from ..utils.serializer import safe_serialize
from .types import DEFAULT_COMPRESSION_MODEL

logger = logging.getLogger(__name__)

# (transcript, model, cancel) -> summary text
Summarizer = Callable[[str, str | None, CancellationToken | None], Awaitable[str]]
# messages -> token count, sync or async
TokenEstimator = Callable[[list[ModelMessage]], int | Awaitable[int]]

# -- Constants ----------------------------------------------------------------

COMPACTION_PROMPT = (
    "Summarize the conversation so far between a user and a coding assistant. "
    "The summary replaces the conversation, so the assistant must be able to "
    "continue the task from it alone without asking the user to repeat anything.\n"
    "\n"
    "First think through the conversation inside <analysis></analysis> tags: "
    "walk through it in order and note each request, decision and change.\n"
    "\n"
    "Then write the summary as these numbered sections:\n"
    "\n"
    "1. Primary Request and Intent: every explicit request the user made, in detail\n"
    "2. Key Technical Concepts: technologies, frameworks and concepts involved\n"
    "3. Files and Code Sections: files read, changed or created, with the "
    "relevant snippets, especially from the most recent messages\n"
    "4. Errors and fixes: each error hit and how it was resolved, including "
    "user feedback on the fix\n"
    "5. Problem Solving: problems solved and troubleshooting still under way\n"
    "6. All user messages: every user message that is not a tool result\n"
    "7. Pending Tasks: work the user asked for that is not done yet\n"
    "8. Current Work: exactly what was being worked on right before this summary\n"
    "\n"
    "Be technical and specific. Keep file paths, function names, error "
    "messages and code patterns verbatim."
)

# -- Helpers ------------------------------------------------------------------


class SummarizationError(Exception):
    """Raised when a summary cannot be requested at all."""


def build_compaction_prompt(transcript: str) -> str:
    """Wrap a rendered transcript in the compaction instructions."""
    return (
        f"{COMPACTION_PROMPT}\n\n"
        f"CONVERSATION HISTORY TO SUMMARIZE:\n{transcript}\n\n"
        "Write the structured summary now, following the 8 sections above."
    )


def _render_part(part: object) -> str:
    if isinstance(part, TextPart):
        return part.text
    if isinstance(part, ToolCallPart):
        return f"[TOOL CALL: {part.tool_name}({safe_serialize(part.input)})]"
    if isinstance(part, ToolResultPart):
        return f"[TOOL RESULT: {part.tool_name} -> {safe_serialize(part.output)}]"
    if isinstance(part, ImagePart):
        return "[IMAGE]"
    return ""


def messages_to_text(messages: list[ModelMessage]) -> str:
    """Render messages as a plain-text transcript for the summarizer."""
    lines = []
    for msg in messages:
        if isinstance(msg.content, str):
            content = msg.content
        else:
            content = "\n".join(_render_part(p) for p in msg.content)
        lines.append(f"{msg.role.upper()}: {content}")
    return "\n\n".join(lines)


# -- Model selection ----------------------------------------------------------


class ModelInfo(BaseModel):
    """A model the application can currently call."""

    key: str
    provider: str
    input_pricing: str | float | None = None
    context_length: int = 0

    @property
    def qualified_name(self) -> str:
        return f"{self.key}@{self.provider}"


def _price(model: ModelInfo) -> float:
    try:
        return float(model.input_pricing)
    except (TypeError, ValueError):
        return 0.0


def select_compression_model(
    preferred: str,
    available_models: list[ModelInfo],
    context_length: Callable[[str], int] | None = None,
) -> str | None:
    """Pick the model used for summarization.

    The preferred model wins when it is available. Otherwise the priced model
    with the largest context window is used, cheapest input price first on
    ties. Returns None when no model qualifies.
    """
    for model in available_models:
        if preferred in (model.key, model.qualified_name):
            return preferred

    priced = [m for m in available_models if m.input_pricing is not None]
    if not priced:
        return None

    def window(model: ModelInfo) -> int:
        return context_length(model.key) if context_length else model.context_length

    fallback = sorted(priced, key=lambda m: (-window(m), _price(m)))[0]
    logger.info(
        "Preferred compression model %s not available, using fallback %s "
        "(context: %d, price: %s)",
        preferred,
        fallback.qualified_name,
        window(fallback),
        fallback.input_pricing,
    )
    return fallback.qualified_name


# -- Provider adapter ---------------------------------------------------------


class ProviderSummarizer:
    """``Summarizer`` backed by an ``LLMProvider``.

    Args:
        provider: Provider used for the completion call
        available_models: Models the application can call. When None, the
            requested model is used as-is.
        fallback_model: Model requested when the caller passes none
        context_length: Optional lookup used to rank fallback models
    """

    def __init__(
        self,
        provider: LLMProvider,
        available_models: list[ModelInfo] | None = None,
        fallback_model: str = DEFAULT_COMPRESSION_MODEL,
        context_length: Callable[[str], int] | None = None,
    ):
        self.provider = provider
        self.available_models = available_models
        self.fallback_model = fallback_model
        self.context_length = context_length

    async def __call__(
        self,
        transcript: str,
        model: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> str:
        if not transcript.strip():
            raise SummarizationError("Conversation history is required for compaction")
        if cancel is not None:
            cancel.raise_if_cancelled()

        preferred = model or self.fallback_model
        if self.available_models is None:
            chosen = preferred
        else:
            chosen = select_compression_model(
                preferred, self.available_models, self.context_length
            )
        if chosen is None:
            raise SummarizationError(
                "No available model for compression. Configure a provider model first."
            )

        logger.info("Using model for compression: %s", chosen)
        response = await self.provider.generate(
            messages=[{"role": "user", "content": build_compaction_prompt(transcript)}],
            model=chosen,
        )
        summary = (response.content or "").strip()
        logger.info(
            "Compressed summary length: %d characters (from %d)", len(summary), len(transcript)
        )
        return summary
