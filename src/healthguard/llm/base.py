"""Abstract interface of the text generation backend.

This module hides the design decision of which LLM service writes the
assistant's replies. Implementations own client setup, authentication and
the conversion between PromptMessage/GenerationParams and the service's
wire format.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from .models import Completion, CompletionStream, GenerationParams, PromptMessage


class LLMProvider(ABC):
    """Generates assistant replies from a prompt.

    Supports async context manager protocol:
        async with provider:
            completion = await provider.complete(messages, params)
    """

    @abstractmethod
    async def complete(
        self,
        messages: Sequence[PromptMessage],
        params: GenerationParams,
    ) -> Completion:
        """Generate the whole reply at once."""

    @abstractmethod
    async def stream(
        self,
        messages: Sequence[PromptMessage],
        params: GenerationParams,
    ) -> CompletionStream:
        """Start a generation and return its deltas as they are produced."""

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying HTTP client."""

    async def __aenter__(self) -> "LLMProvider":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
