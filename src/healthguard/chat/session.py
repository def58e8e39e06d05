"""Conversation orchestration.

A ChatSession owns the in-memory transcript of one conversation and runs
the send sequence: credit spend, user message persistence, streamed reply,
assistant message persistence. Only finalized, successful replies are
persisted, so a failed stream never leaves a half-written row behind.
"""

import logging
from collections.abc import Callable

from ..config import (
    CHAT_MODE_CONCISE,
    CREDITS_PER_MESSAGE,
    FALLBACK_REPLY,
    GREETING,
    HISTORY_CONTEXT_WINDOW,
    HISTORY_LOAD_LIMIT,
)
from ..credits import CreditLedger
from ..errors import ChatBusyError, StreamInterruptedError, UpstreamError
from ..storage import HealthStore, StoredMessage
from .client import HealthChatClient
from .formatting import clean_reply
from .models import ChatMessage, MessageRole
from .reader import StreamingChatReader

logger = logging.getLogger(__name__)


class ChatSession:
    """One user's conversation with the assistant.

    At most one request is in flight at a time; a second send() while a
    reply is streaming raises ChatBusyError.
    """

    def __init__(
        self,
        client: HealthChatClient,
        store: HealthStore,
        ledger: CreditLedger,
        mode: str | None = CHAT_MODE_CONCISE,
        user_context: str | None = None,
        cost: int = CREDITS_PER_MESSAGE,
        history_window: int = HISTORY_CONTEXT_WINDOW,
        clean_replies: bool = True,
    ):
        self._client = client
        self._store = store
        self._ledger = ledger
        self._mode = mode
        self._user_context = user_context
        self._cost = cost
        self._history_window = history_window
        self._clean_replies = clean_replies

        self._greeting = ChatMessage.assistant(GREETING)
        self._messages: list[ChatMessage] = [self._greeting]
        self._reader: StreamingChatReader | None = None
        self._busy = False

    @property
    def user_id(self) -> str:
        return self._ledger.user_id

    @property
    def messages(self) -> list[ChatMessage]:
        """Transcript, greeting first. The list is a copy; messages are shared."""
        return list(self._messages)

    @property
    def busy(self) -> bool:
        return self._busy

    async def load_history(self, limit: int = HISTORY_LOAD_LIMIT) -> list[ChatMessage]:
        """Replace the transcript with the greeting plus stored messages."""
        stored = await self._store.get_chat_messages(self.user_id, limit=limit)
        self._messages = [self._greeting] + [
            ChatMessage(
                id=row.id,
                role=MessageRole(row.role),
                content=row.content,
                timestamp=row.created_at,
            )
            for row in stored
        ]
        logger.debug("Loaded %d stored messages for %s", len(stored), self.user_id)
        return self.messages

    def _request_history(self) -> list[ChatMessage]:
        history = [m for m in self._messages if m is not self._greeting and m.content]
        if self._history_window <= 0:
            return []
        return history[-self._history_window:]

    async def _persist(self, message: ChatMessage) -> None:
        await self._store.add_chat_message(StoredMessage(
            id=message.id,
            user_id=self.user_id,
            role=message.role.value,
            content=message.content,
            created_at=message.timestamp,
        ))

    async def send(
        self,
        text: str,
        on_delta: Callable[[str], None] | None = None,
    ) -> ChatMessage:
        """Send a user message and stream the assistant reply.

        Args:
            text: User input
            on_delta: Called with the accumulated reply after each delta

        Returns:
            The finalized assistant message

        Raises:
            ValueError: If text is blank
            ChatBusyError: If a reply is already streaming
            InsufficientCreditsError: If the balance cannot cover the request
            StreamInterruptedError: If the connection fails mid-reply
            UpstreamError: If the endpoint rejects the request
        """
        text = text.strip()
        if not text:
            raise ValueError("Message is empty")
        if self._busy:
            raise ChatBusyError("A reply is already being generated")

        self._busy = True
        try:
            history = self._request_history()
            await self._ledger.spend(self._cost)

            user_message = ChatMessage.user(text)
            self._messages.append(user_message)
            await self._persist(user_message)

            reply = ChatMessage.assistant(streaming=True)
            self._messages.append(reply)
            try:
                async with self._client.stream_reply(
                    [*history, user_message],
                    mode=self._mode,
                    user_context=self._user_context,
                    on_delta=on_delta,
                ) as reader:
                    self._reader = reader
                    async for delta in reader:
                        reply.append(delta)
            except (StreamInterruptedError, UpstreamError) as e:
                # Partial text stays visible; nothing is persisted and credits are kept spent
                self._close_reply(reply)
                logger.warning("Chat request failed for %s: %s", self.user_id, e)
                raise
            except BaseException:
                # Task cancellation or an unexpected error ends the reply the same way
                self._close_reply(reply)
                logger.debug("Reply %s abandoned after %d characters", reply.id, len(reply.content))
                raise
            finally:
                self._reader = None

            if reader.cancelled:
                reply.finalize()
                logger.debug("Reply %s cancelled after %d characters", reply.id, len(reply.content))
                return reply

            content = clean_reply(reply.content) if self._clean_replies else reply.content
            reply.finalize(content or FALLBACK_REPLY)
            await self._persist(reply)
            await self._ledger.refresh()
            return reply
        finally:
            self._busy = False

    def _close_reply(self, reply: ChatMessage) -> None:
        reply.finalize()
        if not reply.content:
            self._messages = [m for m in self._messages if m is not reply]

    def cancel(self) -> None:
        """Stop the streaming reply, if any. The partial reply is not persisted."""
        if self._reader is not None:
            self._reader.cancel()

    async def clear(self) -> None:
        """Delete stored history and reset the transcript to the greeting."""
        await self._store.clear_chat_messages(self.user_id)
        self._messages = [self._greeting]
