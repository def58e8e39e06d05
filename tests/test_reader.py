"""Unit and property-based tests for the streaming chat reader."""
import asyncio

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import byte_source, sse
from healthguard.chat import ReaderState, StreamingChatReader
from healthguard.errors import StreamInterruptedError

delta_text = st.text(
    alphabet=st.characters(blacklist_categories=("Cs",)),
    min_size=1,
    max_size=20,
)


def split_at(data: bytes, cuts: list[int]) -> list[bytes]:
    """Split data at the given byte offsets."""
    points = sorted({c for c in cuts if 0 < c < len(data)})
    pieces = []
    start = 0
    for point in points:
        pieces.append(data[start:point])
        start = point
    pieces.append(data[start:])
    return pieces


async def collect(reader: StreamingChatReader) -> list[str]:
    return [delta async for delta in reader]


class TestStreamingScenarios:
    """Tests for the documented stream scenarios."""

    async def test_json_split_across_chunks(self):
        """Test a payload split mid-JSON is reassembled before parsing."""
        reader = StreamingChatReader(byte_source([
            'data: {"choices":[{"delta":{"content":"Hel',
            'lo"}}]}\n\n',
            "data: [DONE]\n\n",
        ]))

        deltas = await collect(reader)

        assert deltas == ["Hello"]
        assert reader.content == "Hello"
        assert reader.state is ReaderState.COMPLETED

    async def test_malformed_line_is_skipped(self):
        """Test one bad data line does not stop the stream."""
        body = (
            sse("First", done=False)
            + "data: {not json at all\n\n"
            + sse(" second")
        )
        reader = StreamingChatReader(byte_source([body]))

        deltas = await collect(reader)

        assert deltas == ["First", " second"]
        assert reader.skipped_lines == 1
        assert reader.state is ReaderState.COMPLETED

    async def test_stream_without_sentinel_completes(self):
        """Test a stream that simply closes ends COMPLETED."""
        reader = StreamingChatReader(byte_source([sse("Just ", "closes", done=False)]))

        content = await reader.read_all()

        assert content == "Just closes"
        assert reader.state is ReaderState.COMPLETED

    async def test_connection_error_keeps_partial_content(self):
        """Test a transport failure surfaces once and keeps earlier deltas."""
        reader = StreamingChatReader(byte_source(
            [sse("Par", "tial", done=False)],
            error=httpx.ReadError("connection reset"),
        ))
        seen = []

        with pytest.raises(StreamInterruptedError) as excinfo:
            async for delta in reader:
                seen.append(delta)

        assert seen == ["Par", "tial"]
        assert reader.content == "Partial"
        assert reader.state is ReaderState.FAILED
        assert isinstance(excinfo.value, ConnectionError)
        assert excinfo.value.partial_content == "Partial"
        assert reader.error is excinfo.value

        # Terminal state is absorbing: no further deltas and no second error
        assert await collect(reader) == []
        assert reader.state is ReaderState.FAILED

    async def test_os_error_is_reported_as_connection_error(self):
        """Test socket-level errors map to StreamInterruptedError too."""
        reader = StreamingChatReader(byte_source(
            [sse("a", done=False)],
            error=ConnectionResetError("reset by peer"),
        ))

        with pytest.raises(StreamInterruptedError):
            await reader.read_all()
        assert reader.content == "a"

    async def test_decoding_error_is_reported_as_connection_error(self):
        """Test a corrupt response body fails the stream like a dropped connection."""
        reader = StreamingChatReader(byte_source(
            [sse("Par", done=False)],
            error=httpx.DecodingError("bad gzip"),
        ))

        with pytest.raises(StreamInterruptedError) as excinfo:
            await reader.read_all()

        assert isinstance(excinfo.value, ConnectionError)
        assert isinstance(excinfo.value.__cause__, httpx.DecodingError)
        assert reader.content == "Par"
        assert reader.state is ReaderState.FAILED

    async def test_unexpected_error_fails_reader(self):
        """Test any other error propagates unchanged and leaves the reader FAILED."""
        reader = StreamingChatReader(byte_source(
            [sse("Par", done=False)],
            error=RuntimeError("boom"),
        ))

        with pytest.raises(RuntimeError, match="boom"):
            await reader.read_all()

        assert reader.content == "Par"
        assert reader.state is ReaderState.FAILED
        assert await collect(reader) == []

    async def test_non_streaming_json_body(self):
        """Test a whole JSON reply yields exactly one delta."""
        reader = StreamingChatReader.from_json_body(b'{ "message": "hello" }')

        deltas = await collect(reader)

        assert deltas == ["hello"]
        assert reader.state is ReaderState.COMPLETED


class TestLineHandling:
    """Tests for line framing details."""

    async def test_multibyte_character_split_across_chunks(self):
        """Test a UTF-8 character cut in half is decoded intact."""
        data = sse("café ❤").encode("utf-8")
        cut = data.index("é".encode("utf-8")) + 1

        reader = StreamingChatReader(byte_source([data[:cut], data[cut:]]))

        assert await reader.read_all() == "café ❤"

    async def test_ignored_lines(self):
        """Test comments, other fields and unprefixed lines are ignored."""
        body = (
            ": keep-alive\n"
            "event: message\n"
            "id: 7\n"
            "data:{\"choices\":[{\"delta\":{\"content\":\"no space\"}}]}\n"
            "\n"
            + sse("kept")
        )
        reader = StreamingChatReader(byte_source([body]))

        assert await collect(reader) == ["kept"]

    async def test_crlf_line_endings(self):
        """Test CRLF framing is handled like LF."""
        body = sse("one", "two").replace("\n", "\r\n")
        reader = StreamingChatReader(byte_source([body]))

        assert await reader.read_all() == "onetwo"

    async def test_done_stops_reading(self):
        """Test nothing after [DONE] is emitted."""
        body = sse("before") + sse("after", done=False)
        reader = StreamingChatReader(byte_source([body]))

        assert await collect(reader) == ["before"]
        assert reader.state is ReaderState.COMPLETED

    async def test_final_line_without_newline(self):
        """Test a last data line with no trailing newline is still processed."""
        body = sse("a", done=False) + 'data: {"choices":[{"delta":{"content":"b"}}]}'
        reader = StreamingChatReader(byte_source([body]))

        assert await reader.read_all() == "ab"

    async def test_events_without_text_emit_nothing(self):
        """Test role-only, empty and null deltas are not emitted."""
        body = (
            'data: {"choices":[{"delta":{"role":"assistant"}}]}\n\n'
            'data: {"choices":[{"delta":{"content":""}}]}\n\n'
            'data: {"choices":[{"delta":{"content":null}}]}\n\n'
            'data: {"choices":[]}\n\n'
            'data: {"usage":{"total_tokens":5}}\n\n'
            + sse("text")
        )
        reader = StreamingChatReader(byte_source([body]))

        assert await collect(reader) == ["text"]
        assert reader.skipped_lines == 0

    async def test_plain_json_body_is_detected(self):
        """Test a JSON body without SSE framing is read as one delta."""
        reader = StreamingChatReader(byte_source(['{"message":', ' "whole reply"}']))

        assert await collect(reader) == ["whole reply"]

    async def test_heartbeats_rule_out_plain_json(self):
        """Test a body of keep-alive comments is never re-read as one JSON document."""
        reader = StreamingChatReader(byte_source([": ping\n", ": ping\n", '{"message": "late"}']))

        assert await collect(reader) == []
        assert reader.state is ReaderState.COMPLETED

    async def test_oversized_unframed_body_is_not_buffered(self, monkeypatch):
        """Test whole-body detection gives up past the size limit."""
        monkeypatch.setattr("healthguard.chat.reader.WHOLE_BODY_LIMIT", 10)
        reader = StreamingChatReader(byte_source(['{"message":', ' "whole reply"}']))

        assert await collect(reader) == []


class TestReaderLifecycle:
    """Tests for states, callbacks, cancellation and timeouts."""

    async def test_state_transitions(self):
        """Test IDLE before reading and STREAMING while deltas flow."""
        reader = StreamingChatReader(byte_source([sse("x", "y")]))
        assert reader.state is ReaderState.IDLE

        states = [reader.state async for _ in reader]

        assert states == [ReaderState.STREAMING, ReaderState.STREAMING]
        assert reader.state is ReaderState.COMPLETED

    async def test_on_delta_receives_accumulated_content(self):
        """Test the callback sees the growing message."""
        seen = []
        reader = StreamingChatReader(byte_source([sse("a", "b", "c")]), on_delta=seen.append)

        await reader.read_all()

        assert seen == ["a", "ab", "abc"]

    async def test_cancel_mid_stream(self):
        """Test cancellation completes the reader with partial content."""
        reader = StreamingChatReader(byte_source([sse("first", done=False), sse("second")]))

        async for delta in reader:
            assert delta == "first"
            reader.cancel()

        assert reader.cancelled
        assert reader.content == "first"
        assert reader.state is ReaderState.COMPLETED

    async def test_cancel_before_start(self):
        """Test a reader cancelled before iteration yields nothing."""
        reader = StreamingChatReader(byte_source([sse("never")]))
        reader.cancel()

        assert await collect(reader) == []
        assert reader.state is ReaderState.COMPLETED

    async def test_early_exit_completes(self):
        """Test a consumer that stops iterating leaves the reader COMPLETED."""
        reader = StreamingChatReader(byte_source([sse("a", "b", "c")]))

        async for _ in reader:
            break
        await reader.aclose()

        assert reader.content == "a"
        assert reader.state is ReaderState.COMPLETED

    async def test_idle_timeout(self):
        """Test a stalled stream fails with StreamInterruptedError."""
        async def stalled():
            yield sse("slow", done=False).encode()
            await asyncio.sleep(5)
            yield sse("never").encode()

        reader = StreamingChatReader(stalled(), idle_timeout=0.05)

        with pytest.raises(StreamInterruptedError):
            await reader.read_all()
        assert reader.content == "slow"
        assert reader.state is ReaderState.FAILED


class TestChunkingProperties:
    """Property tests: chunk boundaries never change the result."""

    @settings(max_examples=200, deadline=None)
    @given(st.lists(delta_text, min_size=1, max_size=8), st.lists(st.integers(min_value=0, max_value=2000), max_size=12))
    def test_any_split_matches_single_chunk(self, deltas: list[str], cuts: list[int]):
        """Property test: content is identical for every byte-level split."""
        data = sse(*deltas).encode("utf-8")

        whole = asyncio.run(StreamingChatReader(byte_source([data])).read_all())
        pieces = asyncio.run(StreamingChatReader(byte_source(split_at(data, cuts))).read_all())

        assert whole == "".join(deltas)
        assert pieces == whole

    @settings(max_examples=50, deadline=None)
    @given(st.lists(delta_text, min_size=1, max_size=5))
    def test_byte_by_byte_delivery(self, deltas: list[str]):
        """Property test: one-byte chunks produce the same deltas in order."""
        data = sse(*deltas).encode("utf-8")
        chunks = [data[i:i + 1] for i in range(len(data))]

        async def run():
            reader = StreamingChatReader(byte_source(chunks))
            return await collect(reader), reader.state

        emitted, state = asyncio.run(run())

        assert emitted == deltas
        assert state is ReaderState.COMPLETED
