"""HTTP client for the backend functions.

Hides the endpoint paths, authentication header and the choice between a
streamed (SSE) and a whole-body (JSON) reply.
"""

import json
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from typing import Any

import httpx

from ..config import (
    CHAT_FUNCTION_PATH,
    CHAT_MODE_CONCISE,
    CLAIM_CREDITS_PATH,
    FIND_HOSPITALS_PATH,
    REQUEST_TIMEOUT,
    SEARCH_DISEASE_PATH,
    STREAM_IDLE_TIMEOUT,
)
from ..errors import StreamInterruptedError, UpstreamError
from ..places import Place
from ..places.models import DEFAULT_PLACE_TYPE, DEFAULT_RADIUS_METERS
from .models import ChatMessage
from .reader import StreamingChatReader

logger = logging.getLogger(__name__)


def _error_message(body: bytes, default: str) -> str:
    """Pull the 'error' field out of a JSON error body."""
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        text = body.decode("utf-8", errors="replace").strip()
        return text or default
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return default


class HealthChatClient:
    """Client for the health-chat, search-disease, claim-daily-credits and
    find-hospitals functions.

    Supports async context manager protocol:
        async with HealthChatClient(base_url, api_key=token) as client:
            async with client.stream_reply(messages) as reader:
                async for delta in reader:
                    ...
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        idle_timeout: float | None = STREAM_IDLE_TIMEOUT,
        timeout: float = REQUEST_TIMEOUT,
        **client_kwargs: Any
    ):
        """Initialize the client.

        Args:
            base_url: Base URL of the backend (functions live under /functions/v1)
            api_key: Bearer token sent with every request
            idle_timeout: Seconds allowed between two chunks of a streamed reply
            timeout: httpx timeout for connecting and reading headers
            **client_kwargs: Additional kwargs for httpx.AsyncClient
        """
        self._api_key = api_key
        self._idle_timeout = idle_timeout
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            **client_kwargs
        )

    @property
    def api_key(self) -> str | None:
        return self._api_key

    @api_key.setter
    def api_key(self, value: str | None) -> None:
        self._api_key = value

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    @asynccontextmanager
    async def stream_reply(
        self,
        messages: Sequence[ChatMessage],
        mode: str | None = CHAT_MODE_CONCISE,
        user_context: str | None = None,
        on_delta: Callable[[str], None] | None = None,
    ) -> AsyncIterator[StreamingChatReader]:
        """Send a conversation and read the reply as it arrives.

        Args:
            messages: Conversation history, oldest first, ending with the user turn
            mode: Reply mode ('concise' or None for the longer format)
            user_context: Optional free-text context about the user
            on_delta: Called with the accumulated reply after each delta

        Yields:
            A StreamingChatReader bound to the open response

        Raises:
            UpstreamError: If the endpoint answers with a non-2xx status
            StreamInterruptedError: If the endpoint cannot be reached
        """
        payload: dict[str, Any] = {
            "messages": [message.to_prompt() for message in messages],
            "stream": True,
        }
        if mode is not None:
            payload["mode"] = mode
        if user_context:
            payload["userContext"] = user_context

        request = self._client.build_request(
            "POST", CHAT_FUNCTION_PATH, json=payload, headers=self._headers()
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.TransportError as e:
            raise StreamInterruptedError(f"Could not reach chat endpoint: {e!r}") from e

        try:
            if response.is_error:
                try:
                    body = await response.aread()
                except httpx.TransportError:
                    body = b""
                raise UpstreamError(
                    response.status_code,
                    _error_message(body, response.reason_phrase or "Failed to get response"),
                )

            content_type = response.headers.get("content-type", "")
            whole_body = content_type.split(";")[0].strip() == "application/json"
            logger.debug("Chat reply content type %r (whole body: %s)", content_type, whole_body)
            yield StreamingChatReader(
                response.aiter_bytes(),
                whole_body=whole_body,
                idle_timeout=self._idle_timeout,
                on_delta=on_delta,
            )
        finally:
            await response.aclose()

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        mode: str | None = CHAT_MODE_CONCISE,
        user_context: str | None = None,
    ) -> str:
        """Send a conversation and return the full reply text."""
        async with self.stream_reply(messages, mode=mode, user_context=user_context) as reader:
            return await reader.read_all()

    async def _post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.post(path, json=payload, headers=self._headers())
        except httpx.TransportError as e:
            raise StreamInterruptedError(f"Could not reach {path}: {e!r}") from e
        if response.is_error:
            raise UpstreamError(
                response.status_code,
                _error_message(response.content, response.reason_phrase or "Request failed"),
            )
        return response.json()

    async def search_diseases(
        self,
        query: str | None = None,
        category: str | None = None,
    ) -> dict[str, Any]:
        """Call the search-disease function.

        Returns:
            Dict with 'diseases', 'total' and 'categories'
        """
        payload: dict[str, Any] = {}
        if query:
            payload["query"] = query
        if category:
            payload["category"] = category
        return await self._post_json(SEARCH_DISEASE_PATH, payload)

    async def claim_daily_credits(self) -> dict[str, Any]:
        """Call the claim-daily-credits function for the authenticated user."""
        return await self._post_json(CLAIM_CREDITS_PATH, {})

    async def find_hospitals(
        self,
        lat: float,
        lng: float,
        radius: int = DEFAULT_RADIUS_METERS,
        place_type: str = DEFAULT_PLACE_TYPE,
    ) -> list[Place]:
        """Call the find-hospitals function.

        Returns:
            Places nearest first
        """
        data = await self._post_json(
            FIND_HOSPITALS_PATH,
            {"lat": lat, "lng": lng, "radius": radius, "type": place_type},
        )
        return [Place.model_validate(item) for item in data.get("hospitals", [])]

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "HealthChatClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
