"""Configuration constants and environment-backed settings.

Centralizes magic numbers and the environment variables read by the CLI,
the server and the application context.
"""

import os
from datetime import timedelta, timezone

from pydantic import BaseModel, Field

# Credit policy
CREDITS_PER_MESSAGE = 2  # Charged before each chat request
DAILY_LOGIN_CREDITS = 10  # Granted once per IST calendar day
SIGNUP_BONUS_CREDITS = 20  # Starting balance for a new user

# Daily credits roll over at midnight India Standard Time
CREDIT_DAY_TIMEZONE = timezone(timedelta(hours=5, minutes=30), name="IST")

# Conversation windows
HISTORY_CONTEXT_WINDOW = 10  # Previous messages sent upstream with each request
HISTORY_LOAD_LIMIT = 30  # Stored messages loaded when a session opens

# Streaming
STREAM_IDLE_TIMEOUT = 60.0  # Seconds to wait for the next chunk
REQUEST_TIMEOUT = 30.0  # Seconds to wait for response headers

# Chat function
CHAT_FUNCTION_PATH = "/functions/v1/health-chat"
SEARCH_DISEASE_PATH = "/functions/v1/search-disease"
CLAIM_CREDITS_PATH = "/functions/v1/claim-daily-credits"
FIND_HOSPITALS_PATH = "/functions/v1/find-hospitals"
CHAT_MODE_CONCISE = "concise"

# Nearby places
OVERPASS_URL = "https://overpass-api.de/api/interpreter"

GREETING = (
    "Hello! I'm AKASHII, your AI Health Intelligence Agent. "
    "How can I help you today?"
)
FALLBACK_REPLY = "Sorry, I could not generate a response."


class Settings(BaseModel):
    """Runtime settings, usually built from the environment."""

    api_url: str = Field(default="http://localhost:8000", description="Base URL of the backend functions")
    api_key: str | None = Field(default=None, description="Bearer token for the backend functions")
    openrouter_api_key: str | None = Field(default=None, description="Key used by the assistant function")
    openrouter_model: str = Field(default="mistralai/mistral-7b-instruct:free")
    store_backend: str = Field(default="sqlite", description="'memory' or 'sqlite'")
    db_path: str = Field(default="./healthguard.db")
    overpass_url: str = Field(default=OVERPASS_URL, description="Overpass endpoint used by find-hospitals")
    stream_idle_timeout: float | None = Field(default=STREAM_IDLE_TIMEOUT, gt=0)
    log_level: str = Field(default="WARNING")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Environment variables:
            HEALTHGUARD_API_URL: Backend base URL (default: http://localhost:8000)
            HEALTHGUARD_API_KEY: Bearer token sent to the backend
            OPENROUTER_API_KEY: Key for the assistant's LLM provider
            OPENROUTER_MODEL: Model used by the assistant
            HEALTHGUARD_STORE: Store backend, 'memory' or 'sqlite' (default: sqlite)
            HEALTHGUARD_DB_PATH: SQLite file path (default: ./healthguard.db)
            HEALTHGUARD_OVERPASS_URL: Overpass API endpoint for find-hospitals
            HEALTHGUARD_STREAM_IDLE_TIMEOUT: Seconds between chunks (default: 60)
            HEALTHGUARD_LOG_LEVEL: Logging level name (default: WARNING)
        """
        return cls(
            api_url=os.getenv("HEALTHGUARD_API_URL", "http://localhost:8000"),
            api_key=os.getenv("HEALTHGUARD_API_KEY"),
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY"),
            openrouter_model=os.getenv("OPENROUTER_MODEL", "mistralai/mistral-7b-instruct:free"),
            store_backend=os.getenv("HEALTHGUARD_STORE", "sqlite"),
            db_path=os.getenv("HEALTHGUARD_DB_PATH", "./healthguard.db"),
            overpass_url=os.getenv("HEALTHGUARD_OVERPASS_URL", OVERPASS_URL),
            stream_idle_timeout=float(os.getenv("HEALTHGUARD_STREAM_IDLE_TIMEOUT", str(STREAM_IDLE_TIMEOUT))),
            log_level=os.getenv("HEALTHGUARD_LOG_LEVEL", "WARNING"),
        )
