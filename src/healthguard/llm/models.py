"""Data models exchanged with LLM providers."""

from collections.abc import AsyncIterator
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class PromptMessage(BaseModel):
    """One turn of the prompt sent to a provider."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"]
    content: str


class GenerationParams(BaseModel):
    """Sampling settings for one generation."""

    model_config = ConfigDict(frozen=True)

    model: str | None = Field(default=None, description="Overrides the provider's default model")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, gt=0.0, le=1.0)
    max_tokens: int | None = Field(default=None, gt=0)

    def sampling_kwargs(self) -> dict[str, Any]:
        """Sampling fields that are set, excluding the model."""
        return self.model_dump(exclude={"model"}, exclude_none=True)


class TokenUsage(BaseModel):
    """Token accounting reported by the provider."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class Completion(BaseModel):
    """A whole, non-streamed generation."""

    model_config = ConfigDict(frozen=True)

    text: str
    model: str
    usage: TokenUsage | None = None


class CompletionStream:
    """Text deltas of a streamed generation.

    Iterate it for the deltas; usage is only known once the provider has
    sent its last chunk.

    Usage:
        stream = await provider.stream(messages, params)
        async for delta in stream:
            print(delta, end="")
        print(stream.usage)
    """

    def __init__(self, deltas: AsyncIterator[str]):
        self._deltas = deltas
        self.usage: TokenUsage | None = None

    def __aiter__(self) -> "CompletionStream":
        return self

    async def __anext__(self) -> str:
        return await self._deltas.__anext__()
