"""Types for the context compaction system.

Two-tier memory:
- Tier 1: Generated summary of older messages (compacted via the summarizer)
- Tier 2: Preserved messages kept verbatim (system prompt, critical tool state,
  recent tail)
"""

from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, Field

from ..types.messages import ModelMessage

DEFAULT_COMPRESSION_MODEL = "google/gemini-2.5-flash-lite"
DEFAULT_PRESERVE_RECENT_MESSAGES = 6
DEFAULT_COMPRESSION_THRESHOLD = 0.7


class CompressionSettings(BaseModel):
    """User-facing compression configuration. Unset fields fall back to defaults."""

    enabled: bool | None = None
    preserve_recent_messages: int | None = None
    compression_model: str | None = None
    compression_threshold: float | None = None


class CompressionConfig(BaseModel):
    """Resolved compression configuration, supplied per call by the agent loop."""

    enabled: bool = True
    preserve_recent_messages: int = Field(default=DEFAULT_PRESERVE_RECENT_MESSAGES, ge=0)
    compression_model: str = DEFAULT_COMPRESSION_MODEL
    compression_threshold: float = Field(default=DEFAULT_COMPRESSION_THRESHOLD, ge=0.0, le=1.0)


def resolve_compression_config(settings: CompressionSettings | None = None) -> CompressionConfig:
    """Resolve settings against environment variables and defaults.

    Precedence: explicit setting, then AGENTCTX_* environment variable, then default.

    Raises:
        pydantic.ValidationError: If a resolved value is out of range
        ValueError: If an environment variable cannot be parsed
    """
    settings = settings or CompressionSettings()

    enabled = settings.enabled
    if enabled is None:
        enabled = os.getenv("AGENTCTX_COMPRESSION_ENABLED", "true").lower() == "true"

    preserve = settings.preserve_recent_messages
    if preserve is None:
        preserve = int(
            os.getenv("AGENTCTX_PRESERVE_RECENT_MESSAGES", DEFAULT_PRESERVE_RECENT_MESSAGES)
        )

    threshold = settings.compression_threshold
    if threshold is None:
        threshold = float(
            os.getenv("AGENTCTX_COMPRESSION_THRESHOLD", DEFAULT_COMPRESSION_THRESHOLD)
        )

    return CompressionConfig(
        enabled=enabled,
        preserve_recent_messages=preserve,
        compression_model=settings.compression_model
        or os.getenv("AGENTCTX_COMPRESSION_MODEL", DEFAULT_COMPRESSION_MODEL),
        compression_threshold=threshold,
    )


class CompactionPolicy(BaseModel):
    """Tunable policy constants for a compactor deployment."""

    # Tools whose latest result must survive compaction verbatim.
    critical_tool_names: tuple[str, ...] = ("exitPlanMode", "todoWrite")
    # Discovery tools whose results go stale once the task moves on.
    exploratory_tool_names: tuple[str, ...] = ("glob", "listFiles", "codeSearch")
    # Tools that read a resource; repeated reads of the same resource are deduplicated.
    read_tool_names: tuple[str, ...] = ("readFile",)
    exploratory_protection_window: int = Field(default=20, ge=0)
    summary_timeout_seconds: float = Field(default=300.0, gt=0)
    max_previous_summary_chars: int = Field(default=8000, gt=0)
    early_exit_reduction: float = Field(default=0.75, ge=0.0, le=1.0)
    default_context_length: int = Field(default=200_000, gt=0)
    context_lengths: dict[str, int] = Field(default_factory=dict)

    def context_length(self, model: str | None) -> int:
        """Context window for a model id; ``key@provider`` ids match on ``key``."""
        if not model:
            return self.default_context_length
        if model in self.context_lengths:
            return self.context_lengths[model]
        key = model.split("@", 1)[0]
        return self.context_lengths.get(key, self.default_context_length)


class Section(BaseModel):
    """Display-only piece of a compressed summary."""

    title: str
    content: str


class CompressionResult(BaseModel):
    """Result of a single compaction call. Immutable once returned."""

    model_config = ConfigDict(frozen=True)

    compressed_summary: str
    sections: list[Section]
    preserved_messages: list[ModelMessage]
    original_message_count: int
    compressed_message_count: int
    compression_ratio: float


class MessageSelection(BaseModel):
    """Split of a conversation into messages to summarize and messages to keep."""

    messages_to_compress: list[ModelMessage]
    preserved_messages: list[ModelMessage]
    original_system_message: ModelMessage | None = None
    # Parts of the preserved set, in the order they appear in preserved_messages.
    critical_messages: list[ModelMessage] = Field(default_factory=list)
    recent_messages: list[ModelMessage] = Field(default_factory=list)


class CompactionOutcome(BaseModel):
    """Result of the full check, compact, rebuild and validate workflow."""

    messages: list[ModelMessage]
    result: CompressionResult
    validation_passed: bool


class CompressionStatsSnapshot(BaseModel):
    total_compressions: int = 0
    average_compression_ratio: float = 0.0
