from .client import HealthChatClient
from .decoding import DONE_SENTINEL, decode_payload, extract_payload
from .formatting import clean_reply
from .models import ChatMessage, MessageRole, ReaderState, StreamChunk
from .reader import StreamingChatReader
from .session import ChatSession

__all__ = [
    "ChatMessage",
    "ChatSession",
    "DONE_SENTINEL",
    "HealthChatClient",
    "MessageRole",
    "ReaderState",
    "StreamChunk",
    "StreamingChatReader",
    "clean_reply",
    "decode_payload",
    "extract_payload",
]
