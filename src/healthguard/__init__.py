"""
HealthGuard: health assistant chat client with a streaming reply reader.

The package follows Parnas's information hiding principles: each subpackage
hides one design decision (wire format, storage backend, LLM provider).
"""

__version__ = "0.1.0"

from .chat import (
    ChatMessage,
    ChatSession,
    HealthChatClient,
    MessageRole,
    ReaderState,
    StreamingChatReader,
)
from .config import Settings
from .context import AppContext
from .errors import (
    HealthGuardError,
    InsufficientCreditsError,
    StreamInterruptedError,
    UpstreamError,
)

__all__ = [
    "AppContext",
    "ChatMessage",
    "ChatSession",
    "HealthChatClient",
    "HealthGuardError",
    "InsufficientCreditsError",
    "MessageRole",
    "ReaderState",
    "Settings",
    "StreamInterruptedError",
    "StreamingChatReader",
    "UpstreamError",
]
