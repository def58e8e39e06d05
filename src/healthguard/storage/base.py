"""Abstract base class for health store backends.

This module defines the interface for row storage.
The abstraction hides:
- Storage format (dicts, SQLite tables)
- Persistence mechanism (in-memory, file)
- Connection management
"""

from abc import ABC, abstractmethod
from typing import Any

from .models import HealthEntry, StoredMessage, UserCredits


class HealthStore(ABC):
    """Abstract health store backend.

    Provides a unified interface for storing chat messages, credit
    balances and health entries across different storage backends.

    Supports async context manager protocol:
        async with store:
            await store.add_chat_message(message)
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the backend gracefully."""

    @abstractmethod
    async def add_chat_message(self, message: StoredMessage) -> StoredMessage:
        """Insert a finalized chat message."""

    @abstractmethod
    async def get_chat_messages(self, user_id: str, limit: int = 30) -> list[StoredMessage]:
        """Get the most recent messages of a user, oldest first."""

    @abstractmethod
    async def clear_chat_messages(self, user_id: str) -> None:
        """Delete all chat messages of a user."""

    @abstractmethod
    async def get_credits(self, user_id: str) -> UserCredits | None:
        """Get the credit row of a user, or None for an unknown user."""

    @abstractmethod
    async def save_credits(self, credits: UserCredits) -> UserCredits:
        """Insert or replace the credit row of a user."""

    @abstractmethod
    async def add_health_entry(self, entry: HealthEntry) -> HealthEntry:
        """Insert a logged health entry."""

    @abstractmethod
    async def get_health_entries(self, user_id: str, limit: int = 30) -> list[HealthEntry]:
        """Get the most recent entries of a user, newest first."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    async def __aenter__(self) -> "HealthStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()
