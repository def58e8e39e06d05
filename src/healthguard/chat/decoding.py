"""Decoding of SSE lines and completion payloads.

Payloads are validated against the shapes the chat endpoint is known to
produce. Anything else decodes to "no delta" instead of raising, so one
odd event never aborts a reply.
"""

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from ..errors import MalformedPayloadError
from .models import StreamChunk

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")


class _Content(_Lenient):
    content: str | None = None


class _Choice(_Lenient):
    delta: _Content | None = None
    message: _Content | None = None


class CompletionChunk(_Lenient):
    """OpenAI-style completion event: choices[0].delta.content."""

    choices: list[_Choice]

    def text(self) -> str | None:
        if not self.choices:
            return None
        choice = self.choices[0]
        if choice.delta is not None and choice.delta.content:
            return choice.delta.content
        # Non-streaming completion objects carry the text under message
        if choice.message is not None and choice.message.content:
            return choice.message.content
        return None


class MessageEvent(_Lenient):
    """Whole-reply body returned by the health-chat function: {message}."""

    message: str

    def text(self) -> str | None:
        return self.message or None


class ContentEvent(_Lenient):
    """Bare {content} event."""

    content: str

    def text(self) -> str | None:
        return self.content or None


_PAYLOAD_ADAPTER: TypeAdapter[CompletionChunk | MessageEvent | ContentEvent] = TypeAdapter(
    CompletionChunk | MessageEvent | ContentEvent
)


def extract_payload(line: str) -> str | None:
    """Return the payload of an SSE data line, or None if the line carries none.

    Empty lines, comments (leading ':') and lines without the 'data: '
    prefix are ignored. One trailing carriage return is stripped.
    """
    if line.endswith("\r"):
        line = line[:-1]
    if not line or line.startswith(":"):
        return None
    if not line.startswith(DATA_PREFIX):
        return None
    return line[len(DATA_PREFIX):].strip()


def is_done(payload: str) -> bool:
    """True for the stream termination sentinel."""
    return payload == DONE_SENTINEL


def decode_object(data: Any) -> StreamChunk | None:
    """Decode an already-parsed JSON value into a chunk.

    Returns None when the value has none of the known shapes or no text.
    """
    try:
        event = _PAYLOAD_ADAPTER.validate_python(data)
    except ValidationError:
        logger.debug("Ignoring payload of unexpected shape: %r", data)
        return None
    text = event.text()
    if not text:
        return None
    return StreamChunk(delta_text=text)


def decode_payload(payload: str) -> StreamChunk | None:
    """Parse one SSE payload into a chunk.

    Raises:
        MalformedPayloadError: If the payload is not valid JSON
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise MalformedPayloadError(f"Invalid JSON payload: {e.msg}") from e
    return decode_object(data)
