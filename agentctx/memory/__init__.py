"""Memory module - context compaction for long-running agent conversations."""

from .compaction import (
    SUMMARY_ASSISTANT_ACK,
    SUMMARY_CONTINUE_SUFFIX,
    SUMMARY_MARKER,
    ContextCompactor,
    build_summary_messages,
    is_summary_carrier,
)
from .filter import ContextFilter, filter_by_tool_call_ids
from .sections import condense_previous_summary, parse_sections
from .selection import adjust_tail_start, extract_critical_messages, select_messages
from .stats import CompressionStats
from .summarizer import (
    COMPACTION_PROMPT,
    ModelInfo,
    ProviderSummarizer,
    SummarizationError,
    Summarizer,
    TokenEstimator,
    build_compaction_prompt,
    messages_to_text,
    select_compression_model,
)
from .tokens import estimate_message_tokens, estimate_messages_tokens, estimate_tokens
from .types import (
    CompactionOutcome,
    CompactionPolicy,
    CompressionConfig,
    CompressionResult,
    CompressionSettings,
    CompressionStatsSnapshot,
    MessageSelection,
    Section,
    resolve_compression_config,
)

__all__ = [
    "CompactionOutcome",
    "CompactionPolicy",
    "CompressionConfig",
    "CompressionResult",
    "CompressionSettings",
    "CompressionStats",
    "CompressionStatsSnapshot",
    "ContextCompactor",
    "ContextFilter",
    "MessageSelection",
    "ModelInfo",
    "ProviderSummarizer",
    "Section",
    "SummarizationError",
    "Summarizer",
    "TokenEstimator",
    "COMPACTION_PROMPT",
    "SUMMARY_ASSISTANT_ACK",
    "SUMMARY_CONTINUE_SUFFIX",
    "SUMMARY_MARKER",
    "adjust_tail_start",
    "build_compaction_prompt",
    "build_summary_messages",
    "condense_previous_summary",
    "estimate_message_tokens",
    "estimate_messages_tokens",
    "estimate_tokens",
    "extract_critical_messages",
    "filter_by_tool_call_ids",
    "is_summary_carrier",
    "messages_to_text",
    "parse_sections",
    "resolve_compression_config",
    "select_compression_model",
    "select_messages",
]
