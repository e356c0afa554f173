"""Base class for LLM providers.

The package never talks to a model directly. Applications implement a provider
that wraps their SDK of choice and hands it to ``ProviderSummarizer``.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field


class LLMResponse(BaseModel):
    """Response from an LLM call."""

    content: str | None = None
    usage: dict[str, Any] | None = Field(default_factory=dict)
    model: str | None = None
    stop_reason: str | None = None


class LLMProvider(ABC):
    """Base class for LLM providers."""

    @abstractmethod
    async def generate(
        self,
        messages: list[dict[str, Any]],
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs,
    ) -> LLMResponse:
        """
        Make a completion request to the LLM.

        Args:
            messages: List of message dicts with 'role' and 'content' keys
            model: Model identifier, optionally suffixed with ``@provider``
            temperature: Optional temperature parameter
            max_tokens: Optional max tokens parameter
            **kwargs: Provider-specific additional parameters

        Returns:
            LLMResponse with content, usage, model, and stop_reason
        """
        pass

