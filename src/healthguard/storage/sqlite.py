"""SQLite health store backend.

Provides persistent storage of chat messages, credit balances and health
entries using a SQLite database file. Uses aiosqlite for async access.
"""

import logging
from datetime import date, datetime
from pathlib import Path

import aiosqlite

from .base import HealthStore
from .models import HealthEntry, StoredMessage, UserCredits

logger = logging.getLogger(__name__)

_ENTRY_COLUMNS = (
    "id",
    "user_id",
    "entry_date",
    "sleep_hours",
    "sleep_quality",
    "stress_level",
    "mood",
    "diet_quality",
    "physical_activity_minutes",
    "activity_intensity",
    "water_intake_liters",
    "heart_rate",
    "notes",
    "created_at",
)


class SQLiteHealthStore(HealthStore):
    """SQLite-backed health store.

    Stores rows in a SQLite database file.
    Supports persistent storage across sessions.
    """

    def __init__(self, path: str | Path = "./healthguard.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    @property
    def _conn(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("SQLite store is not connected; call connect() first")
        return self._connection

    async def connect(self) -> None:
        """Initialize database connection and schema."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        await self._create_schema()
        logger.debug("Opened SQLite store at %s", self._db_path)

    async def _create_schema(self) -> None:
        """Create database tables."""
        await self._conn.execute("""
            CREATE TABLE IF NOT EXISTS chat_messages (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                user_id TEXT NOT NULL,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        """)

        await self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_chat_messages_user
            ON chat_messages(user_id, created_at)
        """)

        await self._conn.execute("""
            CREATE TABLE IF NOT EXISTS user_credits (
                user_id TEXT PRIMARY KEY,
                credits INTEGER NOT NULL DEFAULT 0,
                total_earned INTEGER NOT NULL DEFAULT 0,
                total_spent INTEGER NOT NULL DEFAULT 0,
                last_login_credit_date TEXT
            )
        """)

        await self._conn.execute("""
            CREATE TABLE IF NOT EXISTS health_entries (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                user_id TEXT NOT NULL,
                entry_date TEXT NOT NULL,
                sleep_hours REAL,
                sleep_quality INTEGER,
                stress_level INTEGER,
                mood INTEGER,
                diet_quality INTEGER,
                physical_activity_minutes INTEGER,
                activity_intensity TEXT,
                water_intake_liters REAL,
                heart_rate INTEGER,
                notes TEXT,
                created_at TEXT NOT NULL
            )
        """)

        await self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_health_entries_user
            ON health_entries(user_id, entry_date)
        """)

        await self._conn.commit()

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def add_chat_message(self, message: StoredMessage) -> StoredMessage:
        await self._conn.execute("""
            INSERT INTO chat_messages (id, user_id, role, content, created_at)
            VALUES (?, ?, ?, ?, ?)
        """, (
            message.id,
            message.user_id,
            message.role,
            message.content,
            message.created_at.isoformat(),
        ))
        await self._conn.commit()
        return message

    async def get_chat_messages(self, user_id: str, limit: int = 30) -> list[StoredMessage]:
        # Newest rows first, then flipped so callers get chronological order
        async with self._conn.execute(
            """
            SELECT id, user_id, role, content, created_at
            FROM chat_messages
            WHERE user_id = ?
            ORDER BY created_at DESC, seq DESC
            LIMIT ?
            """,
            (user_id, max(limit, 0))
        ) as cursor:
            rows = await cursor.fetchall()

        return [
            StoredMessage(
                id=row[0],
                user_id=row[1],
                role=row[2],
                content=row[3],
                created_at=datetime.fromisoformat(row[4]),
            )
            for row in reversed(rows)
        ]

    async def clear_chat_messages(self, user_id: str) -> None:
        await self._conn.execute("DELETE FROM chat_messages WHERE user_id = ?", (user_id,))
        await self._conn.commit()

    async def get_credits(self, user_id: str) -> UserCredits | None:
        async with self._conn.execute(
            """
            SELECT user_id, credits, total_earned, total_spent, last_login_credit_date
            FROM user_credits
            WHERE user_id = ?
            """,
            (user_id,)
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None

        return UserCredits(
            user_id=row[0],
            credits=row[1],
            total_earned=row[2],
            total_spent=row[3],
            last_login_credit_date=date.fromisoformat(row[4]) if row[4] else None,
        )

    async def save_credits(self, credits: UserCredits) -> UserCredits:
        await self._conn.execute("""
            INSERT INTO user_credits
            (user_id, credits, total_earned, total_spent, last_login_credit_date)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                credits = excluded.credits,
                total_earned = excluded.total_earned,
                total_spent = excluded.total_spent,
                last_login_credit_date = excluded.last_login_credit_date
        """, (
            credits.user_id,
            credits.credits,
            credits.total_earned,
            credits.total_spent,
            credits.last_login_credit_date.isoformat() if credits.last_login_credit_date else None,
        ))
        await self._conn.commit()
        return credits

    async def add_health_entry(self, entry: HealthEntry) -> HealthEntry:
        await self._conn.execute(f"""
            INSERT INTO health_entries ({", ".join(_ENTRY_COLUMNS)})
            VALUES ({", ".join("?" for _ in _ENTRY_COLUMNS)})
        """, (
            entry.id,
            entry.user_id,
            entry.entry_date.isoformat(),
            entry.sleep_hours,
            entry.sleep_quality,
            entry.stress_level,
            entry.mood,
            entry.diet_quality,
            entry.physical_activity_minutes,
            entry.activity_intensity,
            entry.water_intake_liters,
            entry.heart_rate,
            entry.notes,
            entry.created_at.isoformat(),
        ))
        await self._conn.commit()
        return entry

    async def get_health_entries(self, user_id: str, limit: int = 30) -> list[HealthEntry]:
        async with self._conn.execute(
            f"""
            SELECT {", ".join(_ENTRY_COLUMNS)}
            FROM health_entries
            WHERE user_id = ?
            ORDER BY entry_date DESC, created_at DESC, seq DESC
            LIMIT ?
            """,
            (user_id, max(limit, 0))
        ) as cursor:
            rows = await cursor.fetchall()

        entries = []
        for row in rows:
            data = dict(zip(_ENTRY_COLUMNS, row))
            data["entry_date"] = date.fromisoformat(data["entry_date"])
            data["created_at"] = datetime.fromisoformat(data["created_at"])
            entries.append(HealthEntry(**data))
        return entries

    @property
    def backend_type(self) -> str:
        return "sqlite"
