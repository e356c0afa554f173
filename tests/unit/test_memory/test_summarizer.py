"""Unit tests for agentctx.memory.summarizer module."""

from unittest.mock import AsyncMock

import pytest
from conftest import assistant, tool_call, tool_result, user

from agentctx.llm.base import LLMProvider, LLMResponse
from agentctx.memory.summarizer import (
    COMPACTION_PROMPT,
    ModelInfo,
    ProviderSummarizer,
    SummarizationError,
    build_compaction_prompt,
    messages_to_text,
    select_compression_model,
)
from agentctx.types.messages import ImagePart, UserModelMessage
from agentctx.utils.cancellation import CancellationToken, OperationCancelledError

# -- Helpers ------------------------------------------------------------------


def make_provider(content: str | None = "summary") -> LLMProvider:
    provider = AsyncMock(spec=LLMProvider)
    provider.generate = AsyncMock(return_value=LLMResponse(content=content))
    return provider


# -- Prompt and transcript ----------------------------------------------------


class TestPrompt:
    """Tests for the compaction prompt."""

    def test_prompt_names_all_sections(self):
        for title in (
            "Primary Request and Intent",
            "Key Technical Concepts",
            "Files and Code Sections",
            "Errors and fixes",
            "Problem Solving",
            "All user messages",
            "Pending Tasks",
            "Current Work",
        ):
            assert title in COMPACTION_PROMPT

    def test_prompt_requests_analysis(self):
        assert "<analysis>" in COMPACTION_PROMPT

    def test_build_prompt_includes_transcript(self):
        prompt = build_compaction_prompt("USER: hi")
        assert prompt.startswith(COMPACTION_PROMPT)
        assert "USER: hi" in prompt


class TestMessagesToText:
    """Tests for messages_to_text."""

    def test_renders_roles_and_tools(self):
        messages = [
            user("find main"),
            tool_call("c1", "codeSearch", {"query": "main"}, text="Searching."),
            tool_result("c1", "codeSearch", "src/main.py"),
            assistant("Found it."),
        ]
        text = messages_to_text(messages)
        assert text.split("\n\n") == [
            "USER: find main",
            'ASSISTANT: Searching.\n[TOOL CALL: codeSearch({"query": "main"})]',
            'TOOL: [TOOL RESULT: codeSearch -> {"type":"text","value":"src/main.py"}]',
            "ASSISTANT: Found it.",
        ]

    def test_images_are_placeholders(self):
        message = UserModelMessage(content=[ImagePart(image="AAAA")])
        assert messages_to_text([message]) == "USER: [IMAGE]"


# -- Model selection ----------------------------------------------------------


class TestSelectCompressionModel:
    """Tests for select_compression_model."""

    def test_preferred_model_available(self):
        models = [ModelInfo(key="flash", provider="google", input_pricing="0.1")]
        assert select_compression_model("flash", models) == "flash"

    def test_fallback_prefers_largest_context_then_cheapest(self):
        models = [
            ModelInfo(key="small", provider="a", input_pricing="0.01", context_length=32_000),
            ModelInfo(key="big-pricey", provider="b", input_pricing="5", context_length=1_000_000),
            ModelInfo(key="big-cheap", provider="c", input_pricing="0.5", context_length=1_000_000),
            ModelInfo(key="unpriced", provider="d", context_length=2_000_000),
        ]
        assert select_compression_model("missing", models) == "big-cheap@c"

    def test_context_length_lookup_overrides_model_info(self):
        models = [
            ModelInfo(key="a", provider="x", input_pricing="1"),
            ModelInfo(key="b", provider="y", input_pricing="1"),
        ]
        lengths = {"a": 10, "b": 20}
        assert select_compression_model("missing", models, lengths.get) == "b@y"

    def test_no_priced_models(self):
        models = [ModelInfo(key="free", provider="x")]
        assert select_compression_model("missing", models) is None
        assert select_compression_model("missing", []) is None


# -- ProviderSummarizer -------------------------------------------------------


class TestProviderSummarizer:
    """Tests for ProviderSummarizer."""

    @pytest.mark.asyncio
    async def test_calls_provider_with_prompt(self):
        provider = make_provider("  the summary \n")
        summarizer = ProviderSummarizer(provider)

        result = await summarizer("USER: hi", "flash")

        assert result == "the summary"
        kwargs = provider.generate.call_args.kwargs
        assert kwargs["model"] == "flash"
        assert "USER: hi" in kwargs["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_uses_fallback_model_when_none_given(self):
        provider = make_provider()
        summarizer = ProviderSummarizer(provider, fallback_model="cheap")
        await summarizer("USER: hi")
        assert provider.generate.call_args.kwargs["model"] == "cheap"

    @pytest.mark.asyncio
    async def test_selects_from_available_models(self):
        provider = make_provider()
        models = [ModelInfo(key="other", provider="p", input_pricing="1", context_length=5)]
        summarizer = ProviderSummarizer(provider, available_models=models)
        await summarizer("USER: hi", "flash")
        assert provider.generate.call_args.kwargs["model"] == "other@p"

    @pytest.mark.asyncio
    async def test_rejects_blank_transcript(self):
        summarizer = ProviderSummarizer(make_provider())
        with pytest.raises(SummarizationError):
            await summarizer("   ")

    @pytest.mark.asyncio
    async def test_no_model_available_raises(self):
        summarizer = ProviderSummarizer(make_provider(), available_models=[])
        with pytest.raises(SummarizationError, match="No available model"):
            await summarizer("USER: hi", "flash")

    @pytest.mark.asyncio
    async def test_cancelled_token_raises_before_request(self):
        provider = make_provider()
        token = CancellationToken()
        token.cancel("stop")
        with pytest.raises(OperationCancelledError):
            await ProviderSummarizer(provider)("USER: hi", "flash", token)
        provider.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_response_returns_empty_string(self):
        summarizer = ProviderSummarizer(make_provider(None))
        assert await summarizer("USER: hi", "flash") == ""
