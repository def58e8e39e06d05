import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any

from openai import AsyncOpenAI

from ..base import LLMProvider
from ..models import Completion, CompletionStream, GenerationParams, PromptMessage, TokenUsage

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "mistralai/mistral-7b-instruct:free"


def _usage(raw: Any) -> TokenUsage | None:
    if raw is None:
        return None
    return TokenUsage(
        prompt_tokens=raw.prompt_tokens or 0,
        completion_tokens=raw.completion_tokens or 0,
        total_tokens=raw.total_tokens or 0,
    )


class OpenRouterProvider(LLMProvider):
    """Chat completions through OpenRouter's OpenAI-compatible API.

    Hidden design decisions:
    - Client construction via the OpenAI SDK with a custom base URL
    - Attribution headers (HTTP-Referer, X-Title) OpenRouter uses for app rankings
    - Usage reporting on the final chunk of a stream
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = OPENROUTER_BASE_URL,
        referer: str | None = "http://localhost:8081",
        title: str | None = "SDOP Health Guardian",
        **client_kwargs: Any
    ):
        """Initialize the provider.

        Args:
            api_key: OpenRouter (or OpenAI) API key
            model: Model used when GenerationParams.model is unset
            base_url: API base URL
            referer: HTTP-Referer attribution header, omitted when None
            title: X-Title attribution header, omitted when None
            **client_kwargs: Additional kwargs for AsyncOpenAI
        """
        headers: dict[str, str] = dict(client_kwargs.pop("default_headers", None) or {})
        if referer:
            headers["HTTP-Referer"] = referer
        if title:
            headers["X-Title"] = title

        self._model = model
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            default_headers=headers or None,
            **client_kwargs
        )

    @property
    def model(self) -> str:
        return self._model

    def _request(self, messages: Sequence[PromptMessage], params: GenerationParams) -> dict[str, Any]:
        return {
            "model": params.model or self._model,
            "messages": [message.model_dump() for message in messages],
            **params.sampling_kwargs(),
        }

    async def complete(
        self,
        messages: Sequence[PromptMessage],
        params: GenerationParams,
    ) -> Completion:
        request = self._request(messages, params)
        logger.debug("Requesting completion from %s", request["model"])
        response = await self._client.chat.completions.create(**request)

        text = ""
        if response.choices:
            text = response.choices[0].message.content or ""
        return Completion(text=text, model=response.model, usage=_usage(response.usage))

    async def stream(
        self,
        messages: Sequence[PromptMessage],
        params: GenerationParams,
    ) -> CompletionStream:
        request = self._request(messages, params)
        request["stream"] = True
        request["stream_options"] = {"include_usage": True}
        logger.debug("Requesting streamed completion from %s", request["model"])
        chunks = await self._client.chat.completions.create(**request)

        async def deltas() -> AsyncIterator[str]:
            async for chunk in chunks:
                if chunk.usage is not None:
                    stream.usage = _usage(chunk.usage)
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content

        stream = CompletionStream(deltas())
        return stream

    async def close(self) -> None:
        await self._client.close()
