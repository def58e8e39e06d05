"""The health-chat function: prompt assembly, generation and reply rendering.

Replies are produced either as one cleaned string (JSON body) or as SSE
frames in the OpenAI chunk shape, terminated by the [DONE] sentinel, which
is exactly what StreamingChatReader consumes.
"""

import json
import logging
from collections.abc import AsyncIterator, Iterable, Mapping
from typing import Any

from ..chat.decoding import DATA_PREFIX, DONE_SENTINEL
from ..chat.formatting import clean_reply
from ..config import FALLBACK_REPLY
from ..llm import GenerationParams, LLMProvider, PromptMessage
from .guard import guard_reply, mentions_health
from .prompts import build_system_prompt, max_tokens_for

logger = logging.getLogger(__name__)

TEMPERATURE = 0.5
TOP_P = 0.8

DONE_FRAME = f"{DATA_PREFIX}{DONE_SENTINEL}\n\n"


def sse_frame(data: Mapping[str, Any]) -> str:
    """Render one SSE event carrying a JSON payload."""
    return f"{DATA_PREFIX}{json.dumps(data, ensure_ascii=False)}\n\n"


def delta_frame(text: str) -> str:
    """Render a text delta as an OpenAI-style completion chunk."""
    return sse_frame({"choices": [{"index": 0, "delta": {"content": text}}]})


def _to_prompt(message: PromptMessage | Mapping[str, Any]) -> PromptMessage | None:
    if isinstance(message, PromptMessage):
        return message
    role = message.get("role")
    content = message.get("content")
    if role not in ("user", "assistant") or not isinstance(content, str):
        return None
    return PromptMessage(role=role, content=content)


class HealthAssistant:
    """Answers health questions through an LLM provider.

    Hidden design decisions:
    - System prompt and generation parameters per reply mode
    - Topic guard and Markdown cleanup of replies
    - SSE framing of streamed replies
    """

    def __init__(self, provider: LLMProvider, model: str | None = None):
        self._provider = provider
        self._model = model

    def build_messages(
        self,
        messages: Iterable[PromptMessage | Mapping[str, Any]],
        mode: str | None = None,
        user_context: str | None = None,
    ) -> list[PromptMessage]:
        """Prefix the conversation with the system prompt, dropping unknown roles."""
        prompt = [PromptMessage(role="system", content=build_system_prompt(mode, user_context))]
        for message in messages:
            converted = _to_prompt(message)
            if converted is not None:
                prompt.append(converted)
        return prompt

    def _params(self, mode: str | None) -> GenerationParams:
        return GenerationParams(
            model=self._model,
            temperature=TEMPERATURE,
            top_p=TOP_P,
            max_tokens=max_tokens_for(mode),
        )

    @staticmethod
    def _last_question(prompt: list[PromptMessage]) -> str | None:
        for message in reversed(prompt):
            if message.role == "user":
                return message.content
        return None

    def finish_reply(self, reply: str, question: str | None) -> str:
        """Apply the topic guard and Markdown cleanup to a complete reply."""
        return clean_reply(guard_reply(reply or FALLBACK_REPLY, question))

    async def reply(
        self,
        messages: Iterable[PromptMessage | Mapping[str, Any]],
        mode: str | None = None,
        user_context: str | None = None,
    ) -> str:
        """Generate one complete, cleaned reply."""
        prompt = self.build_messages(messages, mode, user_context)
        completion = await self._provider.complete(prompt, self._params(mode))
        if completion.usage:
            logger.debug("Reply used %d tokens", completion.usage.total_tokens)
        return self.finish_reply(completion.text, self._last_question(prompt))

    async def stream(
        self,
        messages: Iterable[PromptMessage | Mapping[str, Any]],
        mode: str | None = None,
        user_context: str | None = None,
    ) -> AsyncIterator[str]:
        """Generate a reply as SSE frames ending with the [DONE] sentinel.

        When the question itself is about health, deltas are forwarded as
        they arrive. Otherwise the reply is buffered so the topic guard can
        judge it, and sent as a single delta.
        """
        prompt = self.build_messages(messages, mode, user_context)
        question = self._last_question(prompt)
        stream = await self._provider.stream(prompt, self._params(mode))

        if mentions_health(question):
            sent_any = False
            async for text in stream:
                sent_any = True
                yield delta_frame(text)
            if not sent_any:
                yield delta_frame(FALLBACK_REPLY)
        else:
            parts = [text async for text in stream]
            yield delta_frame(self.finish_reply("".join(parts), question))

        if stream.usage:
            logger.debug("Stream used %d tokens", stream.usage.total_tokens)
        yield DONE_FRAME
