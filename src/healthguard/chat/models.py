"""Data models for chat conversations.

A ChatMessage is mutable while its reply is streaming and becomes
read-only once finalized. StreamChunk is the ephemeral unit a single SSE
line decodes to.
"""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from ..errors import MessageFinalizedError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageRole(str, Enum):
    """Sender of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class ReaderState(str, Enum):
    """Lifecycle of a StreamingChatReader."""

    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ReaderState.COMPLETED, ReaderState.FAILED)


class StreamChunk(BaseModel):
    """One incremental text fragment decoded from the stream."""

    model_config = ConfigDict(frozen=True)

    delta_text: str = Field(description="Incremental text of the reply")


class ChatMessage(BaseModel):
    """A message in a conversation."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    role: MessageRole
    content: str = ""
    timestamp: datetime = Field(default_factory=_utcnow)
    finalized: bool = Field(default=True, description="False while the reply is streaming")

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        """Create a finalized user message."""
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str = "", streaming: bool = False) -> "ChatMessage":
        """Create an assistant message, open for appends when streaming."""
        return cls(role=MessageRole.ASSISTANT, content=content, finalized=not streaming)

    def append(self, text: str) -> None:
        """Append streamed text to the content.

        Raises:
            MessageFinalizedError: If the message was already finalized
        """
        if self.finalized:
            raise MessageFinalizedError(f"Message {self.id} is finalized")
        self.content += text

    def finalize(self, content: str | None = None) -> None:
        """Freeze the message, optionally replacing its content one last time."""
        if self.finalized:
            return
        if content is not None:
            self.content = content
        self.finalized = True

    def to_prompt(self) -> dict[str, str]:
        """Render as the {role, content} pair sent to the chat endpoint."""
        return {"role": self.role.value, "content": self.content}
