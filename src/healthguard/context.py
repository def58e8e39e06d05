"""Explicit application context.

Holds the collaborators a signed-in user needs (store, HTTP client, credit
ledger, chat session) and their lifecycle: init() on start-up opens the
session and claims the daily credits, teardown() on sign-out releases it.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from .chat import ChatSession, HealthChatClient
from .config import Settings
from .credits import CreditLedger
from .errors import NotAuthenticatedError
from .storage import HealthStore, create_health_store

logger = logging.getLogger(__name__)


class AppContext:
    """Collaborators for one signed-in user.

    Usage:
        async with AppContext.from_settings(settings) as ctx:
            await ctx.init(user_id="u-1", access_token=token)
            reply = await ctx.session.send("How can I sleep better?")
    """

    def __init__(
        self,
        settings: Settings,
        store: HealthStore,
        client: HealthChatClient,
        clock: Callable[[], datetime] | None = None,
    ):
        self.settings = settings
        self.store = store
        self.client = client
        self._clock = clock
        self._connected = False
        self._ledger: CreditLedger | None = None
        self._session: ChatSession | None = None
        self.daily_award = 0

    @classmethod
    def from_settings(cls, settings: Settings, **client_kwargs: Any) -> "AppContext":
        """Build store and client from settings."""
        if settings.store_backend == "sqlite":
            store = create_health_store("sqlite", path=settings.db_path)
        else:
            store = create_health_store(settings.store_backend)
        client = HealthChatClient(
            settings.api_url,
            api_key=settings.api_key,
            idle_timeout=settings.stream_idle_timeout,
            **client_kwargs
        )
        return cls(settings, store, client)

    @property
    def signed_in(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> ChatSession:
        if self._session is None:
            raise NotAuthenticatedError("Please log in first")
        return self._session

    @property
    def ledger(self) -> CreditLedger:
        if self._ledger is None:
            raise NotAuthenticatedError("Please log in first")
        return self._ledger

    async def init(
        self,
        user_id: str,
        access_token: str | None = None,
        load_history: bool = True,
    ) -> ChatSession:
        """Open a session for user_id.

        Connects the store, claims the daily credits and loads stored history.
        """
        if not user_id:
            raise NotAuthenticatedError("A user id is required")
        if not self._connected:
            await self.store.connect()
            self._connected = True
        if access_token:
            self.client.api_key = access_token

        self._ledger = CreditLedger(self.store, user_id, clock=self._clock)
        _, self.daily_award = await self._ledger.claim_daily()
        self._session = ChatSession(self.client, self.store, self._ledger)
        if load_history:
            await self._session.load_history()
        logger.info("Session opened for %s", user_id)
        return self._session

    def sign_out(self) -> None:
        """Drop the session; store and client stay open."""
        if self._session is not None:
            self._session.cancel()
        self._session = None
        self._ledger = None
        self.daily_award = 0

    async def teardown(self) -> None:
        """Drop the session and release store and client."""
        self.sign_out()
        await self.client.close()
        if self._connected:
            await self.store.disconnect()
            self._connected = False

    async def __aenter__(self) -> "AppContext":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.teardown()
