"""In-memory health store backend.

Simple dict-based storage for session-only use.
Data is lost when the application exits.
"""

from .base import HealthStore
from .models import HealthEntry, StoredMessage, UserCredits


class InMemoryHealthStore(HealthStore):
    """In-memory health store (session-only).

    Suitable for single-session use or testing.
    """

    def __init__(self) -> None:
        self._messages: dict[str, list[StoredMessage]] = {}
        self._credits: dict[str, UserCredits] = {}
        self._entries: dict[str, list[HealthEntry]] = {}

    async def connect(self) -> None:
        """Initialize store (no-op for in-memory)."""
        pass

    async def disconnect(self) -> None:
        """Close store (no-op for in-memory)."""
        pass

    async def add_chat_message(self, message: StoredMessage) -> StoredMessage:
        self._messages.setdefault(message.user_id, []).append(message)
        return message

    async def get_chat_messages(self, user_id: str, limit: int = 30) -> list[StoredMessage]:
        messages = sorted(self._messages.get(user_id, []), key=lambda m: m.created_at)
        return messages[-limit:] if limit > 0 else []

    async def clear_chat_messages(self, user_id: str) -> None:
        self._messages.pop(user_id, None)

    async def get_credits(self, user_id: str) -> UserCredits | None:
        row = self._credits.get(user_id)
        return row.model_copy() if row is not None else None

    async def save_credits(self, credits: UserCredits) -> UserCredits:
        self._credits[credits.user_id] = credits.model_copy()
        return credits

    async def add_health_entry(self, entry: HealthEntry) -> HealthEntry:
        self._entries.setdefault(entry.user_id, []).append(entry.model_copy())
        return entry

    async def get_health_entries(self, user_id: str, limit: int = 30) -> list[HealthEntry]:
        entries = sorted(
            self._entries.get(user_id, []),
            key=lambda e: (e.entry_date, e.created_at),
            reverse=True,
        )
        return [e.model_copy() for e in entries[:max(limit, 0)]]

    @property
    def backend_type(self) -> str:
        return "memory"
