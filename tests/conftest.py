"""Pytest configuration and shared fixtures."""
import json
import os
from collections.abc import AsyncIterator, Callable, Iterable
from datetime import datetime, timezone
from typing import Any

import httpx
import pytest

from healthguard.chat import HealthChatClient
from healthguard.llm import Completion, CompletionStream, GenerationParams, LLMProvider, PromptMessage
from healthguard.storage import create_health_store


def sse(*deltas: str, done: bool = True) -> str:
    """Render deltas as an OpenAI-style SSE body."""
    frames = [
        "data: " + json.dumps({"choices": [{"delta": {"content": d}}]}, ensure_ascii=False) + "\n\n"
        for d in deltas
    ]
    if done:
        frames.append("data: [DONE]\n\n")
    return "".join(frames)


async def byte_source(
    chunks: Iterable[bytes | str],
    error: BaseException | None = None,
) -> AsyncIterator[bytes]:
    """Yield chunks as bytes, then optionally fail like a dropped connection."""
    for chunk in chunks:
        yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk
    if error is not None:
        raise error


class FakeProvider(LLMProvider):
    """LLM provider returning canned text without network access."""

    def __init__(self, reply: str = "Sleep 7-9 hours for good health.", chunks: list[str] | None = None):
        self.reply = reply
        self.chunks = chunks if chunks is not None else [reply]
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    async def complete(self, messages: list[PromptMessage], params: GenerationParams) -> Completion:
        self.calls.append({"messages": list(messages), "params": params})
        return Completion(text=self.reply, model=params.model or "fake-model")

    async def stream(self, messages: list[PromptMessage], params: GenerationParams) -> CompletionStream:
        self.calls.append({"messages": list(messages), "params": params})

        async def _gen() -> AsyncIterator[str]:
            for chunk in self.chunks:
                yield chunk

        return CompletionStream(_gen())

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_provider():
    """Return a fake LLM provider."""
    return FakeProvider()


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Clock frozen at 2026-03-10 12:00 UTC (17:30 IST)."""
    moment = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
    return lambda: moment


@pytest.fixture
async def memory_store():
    """Connected in-memory health store."""
    store = create_health_store("memory")
    await store.connect()
    yield store
    await store.disconnect()


@pytest.fixture
async def sqlite_store(tmp_path):
    """Connected SQLite health store in a temporary directory."""
    store = create_health_store("sqlite", path=tmp_path / "healthguard.db")
    await store.connect()
    yield store
    await store.disconnect()


@pytest.fixture
async def make_client():
    """Build a HealthChatClient whose requests go to a handler function.

    The handler receives the httpx.Request and returns an httpx.Response.
    Every request is recorded in client.requests.
    """
    clients: list[HealthChatClient] = []

    def _make(handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any) -> HealthChatClient:
        requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        client = HealthChatClient(
            "http://testserver",
            api_key=kwargs.pop("api_key", "test-token"),
            transport=httpx.MockTransport(_record),
            **kwargs
        )
        client.requests = requests  # type: ignore[attr-defined]
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.close()


def sse_response(body: str | Iterable[bytes | str], error: BaseException | None = None) -> httpx.Response:
    """Streamed text/event-stream response from a body or a list of chunks."""
    chunks = [body] if isinstance(body, str) else list(body)
    return httpx.Response(
        200,
        headers={"content-type": "text/event-stream"},
        content=byte_source(chunks, error),
    )


@pytest.fixture(scope="session")
def api_keys():
    """Return API keys from environment."""
    return {
        "openrouter": os.getenv("OPENROUTER_API_KEY"),
    }


OVERPASS_ELEMENTS = [
    {
        "type": "node",
        "id": 1,
        "lat": 28.62,
        "lon": 77.21,
        "tags": {
            "amenity": "hospital",
            "name": "City Hospital",
            "addr:street": "Main Road",
            "addr:city": "Delhi",
            "emergency": "yes",
            "phone": "+91 11 2345 6789",
        },
    },
    {
        "type": "way",
        "id": 2,
        "center": {"lat": 28.6101, "lon": 77.2101},
        "tags": {"amenity": "hospital", "healthcare": "hospital"},
    },
    {"type": "relation", "id": 3, "tags": {"amenity": "hospital", "name": "No Centre"}},
]


def overpass_handler(requests: list[httpx.Request], status: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    """Fake Overpass interpreter answering with OVERPASS_ELEMENTS."""
    def _handle(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if status != 200:
            return httpx.Response(status, text="busy")
        return httpx.Response(200, json={"elements": OVERPASS_ELEMENTS})

    return _handle
