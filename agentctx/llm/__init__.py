"""LLM provider abstraction used by the summarizer."""

from .base import LLMProvider, LLMResponse

__all__ = ["LLMProvider", "LLMResponse"]
