"""Core context compaction logic.

Folds the older part of a conversation into a generated summary, keeping the
system prompt, the latest critical tool state and the recent tail verbatim.
Summarizer failures never surface to the caller: the conversation is returned
uncompressed instead.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any

from ..messages.repair import repair_messages
from ..messages.validate import validate_model_messages
from ..types.messages import (
    AssistantModelMessage,
    ModelMessage,
    SystemModelMessage,
    UserModelMessage,
    to_model_messages,
)
from ..utils.cancellation import CancellationToken, OperationCancelledError
from ..utils.tracing import set_span_attributes, traced
from .filter import ContextFilter
from .sections import condense_previous_summary, parse_sections
from .selection import select_messages
from .stats import CompressionStats
from .summarizer import Summarizer, TokenEstimator, messages_to_text
from .tokens import estimate_messages_tokens
from .types import (
    CompactionOutcome,
    CompactionPolicy,
    CompressionConfig,
    CompressionResult,
    CompressionStatsSnapshot,
    MessageSelection,
)

logger = logging.getLogger(__name__)

# -- Constants ----------------------------------------------------------------

SUMMARY_MARKER = "[Previous conversation summary]"
SUMMARY_CONTINUE_SUFFIX = "Please continue from where we left off."
SUMMARY_ASSISTANT_ACK = "I understand the previous context. Continuing with the task."

# -- Helpers ------------------------------------------------------------------


def is_summary_carrier(message: ModelMessage) -> bool:
    """Whether a system message holds a summary from an earlier compaction."""
    return isinstance(message, SystemModelMessage) and SUMMARY_MARKER in message.content


def build_summary_messages(summary: str) -> list[ModelMessage]:
    """Build the user/assistant pair that stands in for the compacted history."""
    return [
        UserModelMessage(content=f"{SUMMARY_MARKER}\n\n{summary}\n\n{SUMMARY_CONTINUE_SUFFIX}"),
        AssistantModelMessage(content=SUMMARY_ASSISTANT_ACK),
    ]


def _coerce_config(config: CompressionConfig | dict[str, Any]) -> CompressionConfig:
    if isinstance(config, CompressionConfig):
        return config
    return CompressionConfig.model_validate(config)


# -- Compactor ----------------------------------------------------------------


class ContextCompactor:
    """Compacts conversations with a pluggable summarizer and token estimator.

    One instance may serve many conversations concurrently. The only state
    shared between calls is the statistics accumulator.

    Args:
        summarizer: ``async (transcript, model, cancel) -> summary``
        token_estimator: ``(messages) -> int``, sync or async. Defaults to the
            4-chars-per-token heuristic.
        policy: Policy constants. Defaults to ``CompactionPolicy()``.
        stats: Accumulator to record into. Pass one in to share it between
            compactors.
    """

    def __init__(
        self,
        summarizer: Summarizer,
        token_estimator: TokenEstimator | None = None,
        policy: CompactionPolicy | None = None,
        stats: CompressionStats | None = None,
    ):
        self.summarizer = summarizer
        self.token_estimator = token_estimator or estimate_messages_tokens
        self.policy = policy or CompactionPolicy()
        self.stats = stats if stats is not None else CompressionStats()
        self.context_filter = ContextFilter(self.policy)

    # ── Selection ─────────────────────────────────────────────────────

    def select_messages_to_compress(
        self, messages: list[ModelMessage], preserve_recent_messages: int
    ) -> MessageSelection:
        return select_messages(
            messages, preserve_recent_messages, self.policy, self.context_filter
        )

    # ── Compaction ────────────────────────────────────────────────────

    @traced("ContextCompactor.compact")
    async def compact(
        self,
        messages: list[Any],
        config: CompressionConfig | dict[str, Any],
        last_token_count: int | None = None,
        cancel: CancellationToken | None = None,
    ) -> CompressionResult:
        """Compact a conversation.

        Never raises for summarizer failure, timeout or cancellation; those
        return the conversation uncompressed. Estimator errors and invalid
        config propagate.
        """
        config = _coerce_config(config)
        if any(isinstance(m, dict) for m in messages):
            messages = to_model_messages(messages)
        original_count = len(messages)

        if original_count == 0:
            return self._finish(
                CompressionResult(
                    compressed_summary="",
                    sections=[],
                    preserved_messages=[],
                    original_message_count=0,
                    compressed_message_count=0,
                    compression_ratio=1.0,
                )
            )

        logger.info(
            "Starting message compaction: %d messages, preserving %d recent",
            original_count,
            config.preserve_recent_messages,
        )
        selection = self.select_messages_to_compress(messages, config.preserve_recent_messages)
        preserved = selection.preserved_messages
        to_compress = selection.messages_to_compress

        if not to_compress:
            logger.info("Nothing to compress, keeping %d messages", len(preserved))
            return self._finish(
                CompressionResult(
                    compressed_summary="",
                    sections=[],
                    preserved_messages=preserved,
                    original_message_count=original_count,
                    compressed_message_count=len(preserved),
                    compression_ratio=len(preserved) / original_count,
                )
            )

        estimated_tokens = None
        if last_token_count:
            estimated_tokens = await self._estimate_tokens(preserved + to_compress)
            reduction = 1 - estimated_tokens / last_token_count
            logger.info(
                "Estimated %d tokens after filtering (was %d, reduction %.2f)",
                estimated_tokens,
                last_token_count,
                reduction,
            )
            if reduction >= self.policy.early_exit_reduction:
                logger.info("Filtering alone reduced the context enough, skipping summarization")
                return self._finish(
                    self._uncompressed_result(
                        selection, original_count, estimated_tokens, last_token_count
                    )
                )

        transcript = messages_to_text(to_compress)
        summary = await self._summarize(transcript, config.compression_model, cancel)
        if summary is None:
            return self._finish(
                self._uncompressed_result(
                    selection, original_count, estimated_tokens, last_token_count
                )
            )

        compressed_count = 1 + len(preserved)
        return self._finish(
            CompressionResult(
                compressed_summary=summary,
                sections=parse_sections(summary),
                preserved_messages=preserved,
                original_message_count=original_count,
                compressed_message_count=compressed_count,
                compression_ratio=compressed_count / original_count,
            )
        )

    async def _estimate_tokens(self, messages: list[ModelMessage]) -> int:
        estimate = self.token_estimator(messages)
        if inspect.isawaitable(estimate):
            estimate = await estimate
        return estimate

    async def _summarize(
        self, transcript: str, model: str, cancel: CancellationToken | None
    ) -> str | None:
        """Run the summarizer against the timeout and the cancellation token.

        Returns the trimmed summary, or None when no usable summary was produced.
        """
        timeout = self.policy.summary_timeout_seconds
        task = asyncio.ensure_future(self.summarizer(transcript, model, cancel))
        waiters = {task}
        if cancel is not None:
            waiters.add(asyncio.ensure_future(cancel.wait()))

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for waiter in waiters:
                if not waiter.done():
                    waiter.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)

        if task not in done:
            if cancel is not None and cancel.cancelled:
                logger.info(
                    "Compaction cancelled (%s), keeping messages uncompressed", cancel.reason
                )
            else:
                logger.warning(
                    "Summary generation timed out after %ss, keeping messages uncompressed",
                    timeout,
                )
            return None

        if task.cancelled():
            logger.info("Summarizer was cancelled, keeping messages uncompressed")
            return None
        error = task.exception()
        if isinstance(error, OperationCancelledError):
            logger.info("Compaction cancelled (%s), keeping messages uncompressed", error.reason)
            return None
        if error is not None:
            logger.warning("Summary generation failed, keeping messages uncompressed: %s", error)
            return None

        summary = (task.result() or "").strip()
        if not summary:
            logger.warning("Summarizer returned an empty summary, keeping messages uncompressed")
            return None
        return summary

    def _uncompressed_result(
        self,
        selection: MessageSelection,
        original_count: int,
        estimated_tokens: int | None,
        last_token_count: int | None,
    ) -> CompressionResult:
        system = (
            [selection.original_system_message]
            if selection.original_system_message is not None
            else []
        )
        kept = (
            system
            + selection.messages_to_compress
            + selection.critical_messages
            + selection.recent_messages
        )
        if estimated_tokens is not None and last_token_count:
            ratio = estimated_tokens / last_token_count
        else:
            ratio = len(kept) / original_count
        return CompressionResult(
            compressed_summary="",
            sections=[],
            preserved_messages=kept,
            original_message_count=original_count,
            compressed_message_count=len(kept),
            compression_ratio=ratio,
        )

    def _finish(self, result: CompressionResult) -> CompressionResult:
        self.stats.record(result.compression_ratio)
        set_span_attributes(
            original_count=result.original_message_count,
            compressed_count=result.compressed_message_count,
            ratio=result.compression_ratio,
            summarized=bool(result.compressed_summary),
        )
        logger.info(
            "Message compaction completed: %d -> %d messages (ratio %.2f)",
            result.original_message_count,
            result.compressed_message_count,
            result.compression_ratio,
        )
        return result

    # ── Reconstruction ────────────────────────────────────────────────

    def build_messages(self, result: CompressionResult) -> list[ModelMessage]:
        """Rebuild a conversation from a compaction result.

        Order: original system prompt, summary message, acknowledgement, then
        the remaining preserved messages. A summary carried over from an earlier
        compaction is condensed into the new summary message.
        """
        preserved = result.preserved_messages
        if not result.compressed_summary:
            return list(preserved)

        rebuilt: list[ModelMessage] = []
        start = 0
        if preserved and isinstance(preserved[0], SystemModelMessage):
            if not is_summary_carrier(preserved[0]):
                rebuilt.append(preserved[0])
                start = 1

        summary = result.compressed_summary
        previous = next((m for m in preserved[start:] if is_summary_carrier(m)), None)
        if previous is not None:
            condensed = condense_previous_summary(
                previous.content, self.policy.max_previous_summary_chars
            )
            summary = f"{summary}\n\n---\nEarlier context (condensed):\n{condensed}"

        rebuilt.extend(build_summary_messages(summary))
        rebuilt.extend(m for m in preserved[start:] if not is_summary_carrier(m))

        logger.info(
            "Created compressed messages: %d total, system prompt kept: %s",
            len(rebuilt),
            start == 1,
        )
        return rebuilt

    # ── Workflow ──────────────────────────────────────────────────────

    def should_compress(
        self,
        config: CompressionConfig | dict[str, Any],
        last_token_count: int | None,
        current_model: str | None = None,
    ) -> bool:
        """Whether the last request used more than the configured share of the window."""
        config = _coerce_config(config)
        if not config.enabled:
            return False
        if not last_token_count:
            logger.info("No token count available, skipping compression check")
            return False

        max_context_tokens = self.policy.context_length(current_model)
        threshold_tokens = max_context_tokens * config.compression_threshold
        if last_token_count > threshold_tokens:
            logger.info(
                "Compression triggered: %d tokens > %.0f threshold (model %s, window %d)",
                last_token_count,
                threshold_tokens,
                current_model,
                max_context_tokens,
            )
            return True
        return False

    async def perform_compression_if_needed(
        self,
        messages: list[Any],
        config: CompressionConfig | dict[str, Any],
        last_token_count: int | None,
        current_model: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> CompactionOutcome | None:
        """Check, compact, rebuild and validate in one step.

        Returns None when compression is not needed. A rebuilt sequence that
        fails validation is repaired before it is returned.
        """
        config = _coerce_config(config)
        if not self.should_compress(config, last_token_count, current_model):
            return None

        result = await self.compact(messages, config, last_token_count, cancel)
        compressed = self.build_messages(result)

        validation = validate_model_messages(compressed)
        if validation.valid:
            return CompactionOutcome(messages=compressed, result=result, validation_passed=True)

        logger.warning(
            "Compressed messages validation failed: %s",
            [issue.message for issue in validation.issues if issue.fatal],
        )
        repaired = repair_messages(compressed)
        logger.info(
            "Applied auto-fix for compressed messages (%d -> %d)", len(compressed), len(repaired)
        )
        return CompactionOutcome(messages=repaired, result=result, validation_passed=False)

    def get_compression_stats(self) -> CompressionStatsSnapshot:
        return self.stats.snapshot()
