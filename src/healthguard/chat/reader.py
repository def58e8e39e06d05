"""Incremental reader for streamed chat replies.

This module hides the design decision of how a reply travels over the wire.
The reader accepts any async iterable of byte chunks (usually an httpx
response body) whose boundaries need not align with characters, lines or
JSON objects, and turns it into an ordered sequence of text deltas.

Usage:
    reader = StreamingChatReader(response.aiter_bytes())
    async for delta in reader:
        print(delta, end="")
    print(reader.state, reader.content)
"""

import asyncio
import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Callable
from typing import Any

import httpx

from ..errors import MalformedPayloadError, StreamInterruptedError
from .decoding import decode_object, decode_payload, extract_payload, is_done
from .models import ReaderState, StreamChunk

logger = logging.getLogger(__name__)

# Exceptions from the transport that end a stream as failed. HTTPError covers
# transport failures and body decoding errors; StreamError covers a body that
# was closed or consumed under the reader.
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    httpx.HTTPError,
    httpx.StreamError,
    asyncio.TimeoutError,
    OSError,
)

# Upper bound on text kept for whole-body JSON detection
WHOLE_BODY_LIMIT = 1_000_000

_SSE_FIELDS = ("data", "event", "id", "retry")


def _is_sse_line(line: str) -> bool:
    """True for comment and field lines, which rule out a plain JSON body."""
    if line.startswith(":"):
        return True
    field, sep, _ = line.partition(":")
    return bool(sep) and field in _SSE_FIELDS


async def _anext(iterator: AsyncIterator[bytes]) -> bytes:
    return await iterator.__anext__()


class _Done:
    """Marker returned when the [DONE] sentinel is seen."""


_DONE = _Done()


class StreamingChatReader:
    """Turns a byte stream into text deltas and accumulates them.

    States go IDLE -> STREAMING -> COMPLETED | FAILED. Partial content is
    visible while STREAMING and stays readable afterwards. A reader is
    single-use: once a terminal state is reached it yields nothing more.

    Hidden design decisions:
    - Incremental UTF-8 decoding across chunk boundaries
    - Line framing and SSE prefix handling
    - Payload shape validation (see decoding.py)
    - Detection of a whole-body JSON reply sent without SSE framing
    """

    def __init__(
        self,
        source: AsyncIterable[bytes],
        *,
        whole_body: bool = False,
        idle_timeout: float | None = None,
        on_delta: Callable[[str], None] | None = None,
    ):
        """Initialize the reader.

        Args:
            source: Async iterable of raw byte chunks
            whole_body: Treat the source as one JSON document instead of SSE
            idle_timeout: Seconds to wait for each chunk (None waits forever)
            on_delta: Called with the accumulated content after each delta
        """
        self._source = source
        self._whole_body = whole_body
        self._idle_timeout = idle_timeout
        self._on_delta = on_delta

        self._state = ReaderState.IDLE
        self._content = ""
        self._cancelled = False
        self._error: StreamInterruptedError | None = None
        self._skipped_lines = 0
        self._iterator: AsyncIterator[str] | None = None

    @classmethod
    def from_json_body(cls, body: bytes | str, **kwargs: Any) -> "StreamingChatReader":
        """Create a reader over an already received, non-streamed JSON body."""
        data = body.encode("utf-8") if isinstance(body, str) else body

        async def _single() -> AsyncIterator[bytes]:
            yield data

        return cls(_single(), whole_body=True, **kwargs)

    @property
    def state(self) -> ReaderState:
        return self._state

    @property
    def content(self) -> str:
        """Text accumulated so far."""
        return self._content

    @property
    def error(self) -> StreamInterruptedError | None:
        """The transport failure, if the reader ended FAILED."""
        return self._error

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def skipped_lines(self) -> int:
        """Number of data lines dropped because they were not valid JSON."""
        return self._skipped_lines

    def cancel(self) -> None:
        """Stop reading at the next suspension point.

        The reader ends COMPLETED with the content accumulated so far.
        """
        self._cancelled = True
        if self._state is ReaderState.IDLE:
            self._state = ReaderState.COMPLETED

    async def aclose(self) -> None:
        """Cancel and close the underlying async generator, if any."""
        self.cancel()
        if self._iterator is not None:
            await self._iterator.aclose()  # type: ignore[attr-defined]
        if self._state is ReaderState.STREAMING:
            self._state = ReaderState.COMPLETED

    def __aiter__(self) -> AsyncIterator[str]:
        if self._iterator is None:
            self._iterator = self._deltas()
        return self._iterator

    async def read_all(self) -> str:
        """Drain the stream and return the accumulated content.

        Raises:
            StreamInterruptedError: If the transport fails mid-stream
        """
        async for _ in self:
            pass
        return self._content

    async def _next_chunk(self, iterator: AsyncIterator[bytes]) -> bytes:
        if self._idle_timeout is None:
            return await iterator.__anext__()
        return await asyncio.wait_for(_anext(iterator), timeout=self._idle_timeout)

    async def _deltas(self) -> AsyncIterator[str]:
        if self._state.is_terminal:
            return
        self._state = ReaderState.STREAMING
        try:
            if self._whole_body:
                async for delta in self._read_whole_body():
                    yield delta
            else:
                async for delta in self._read_events():
                    yield delta
        except StreamInterruptedError as e:
            self._fail(e)
            raise
        except TRANSPORT_ERRORS as e:
            error = StreamInterruptedError(
                f"Connection lost while reading reply: {e!r}",
                partial_content=self._content,
            )
            self._fail(error)
            raise error from e
        except Exception:
            self._state = ReaderState.FAILED
            logger.exception("Chat stream aborted after %d characters", len(self._content))
            raise
        finally:
            # Normal end, [DONE], cancellation and early exit by the consumer
            if self._state is ReaderState.STREAMING:
                self._state = ReaderState.COMPLETED

    async def _read_events(self) -> AsyncIterator[str]:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        iterator = aiter(self._source)
        buffer = ""
        # Raw text is kept for whole-body detection until the body shows SSE
        # framing or grows past WHOLE_BODY_LIMIT
        raw: list[str] | None = []
        raw_size = 0

        while not self._cancelled:
            try:
                chunk = await self._next_chunk(iterator)
            except StopAsyncIteration:
                break
            text = decoder.decode(chunk)
            if raw is not None:
                raw.append(text)
                raw_size += len(text)
                if raw_size > WHOLE_BODY_LIMIT:
                    logger.debug("Body exceeds %d characters; not a whole JSON reply", WHOLE_BODY_LIMIT)
                    raw = None
            buffer += text

            *lines, buffer = buffer.split("\n")
            for line in lines:
                outcome = self._handle_line(line)
                if outcome is None:
                    if raw is not None and _is_sse_line(line):
                        raw = None
                    continue
                raw = None
                if outcome is _DONE:
                    return
                if isinstance(outcome, StreamChunk):
                    yield self._emit(outcome)
                    if self._cancelled:
                        return

        if self._cancelled:
            return

        tail = decoder.decode(b"", final=True)
        if raw is not None:
            raw.append(tail)
        buffer += tail
        if buffer:
            outcome = self._handle_line(buffer)
            if outcome is not None:
                raw = None
            if isinstance(outcome, StreamChunk):
                yield self._emit(outcome)

        if raw is not None:
            # No SSE framing at all: the endpoint may have sent plain JSON
            chunk = self._decode_document("".join(raw))
            if chunk is not None:
                yield self._emit(chunk)

    async def _read_whole_body(self) -> AsyncIterator[str]:
        parts: list[bytes] = []
        iterator = aiter(self._source)
        while not self._cancelled:
            try:
                parts.append(await self._next_chunk(iterator))
            except StopAsyncIteration:
                break
        if self._cancelled:
            return
        chunk = self._decode_document(b"".join(parts).decode("utf-8", errors="replace"))
        if chunk is not None:
            yield self._emit(chunk)

    def _handle_line(self, line: str) -> StreamChunk | _Done | bool | None:
        """Process one complete line.

        Returns None for lines that carry no event, the _DONE marker for the
        sentinel, a chunk for a delta, and False for an event without text.
        """
        payload = extract_payload(line)
        if payload is None:
            return None
        if is_done(payload):
            logger.debug("Stream finished with sentinel")
            return _DONE
        try:
            chunk = decode_payload(payload)
        except MalformedPayloadError as e:
            self._skipped_lines += 1
            logger.debug("Skipping malformed stream line: %s", e)
            return False
        return chunk if chunk is not None else False

    def _decode_document(self, text: str) -> StreamChunk | None:
        text = text.strip()
        if not text:
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            logger.debug("Reply body is neither SSE nor JSON; ignoring %d characters", len(text))
            return None
        return decode_object(data)

    def _emit(self, chunk: StreamChunk) -> str:
        self._content += chunk.delta_text
        if self._on_delta is not None:
            self._on_delta(self._content)
        return chunk.delta_text

    def _fail(self, error: StreamInterruptedError) -> None:
        self._error = error
        self._state = ReaderState.FAILED
        logger.warning("Chat stream failed after %d characters: %s", len(self._content), error)
