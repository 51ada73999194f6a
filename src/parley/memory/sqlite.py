"""SQLite snapshot store.

Provides persistent conversation storage using a SQLite database.
Uses aiosqlite for async access.
"""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

try:
    import aiosqlite
    AIOSQLITE_AVAILABLE = True
except ImportError:
    AIOSQLITE_AVAILABLE = False
    aiosqlite = None

from ..config import CONVERSATION_KEY, DEFAULT_SQLITE_STORE_PATH
from ..conversation.models import Message
from ..errors import PersistenceFailure
from .base import MessageStore, dump_messages, load_messages


class SQLiteMessageStore(MessageStore):
    """SQLite-backed snapshot store.

    One row per conversation key holding the JSON message list.
    Supports persistent storage across sessions.
    """

    def __init__(
        self,
        path: str | Path = DEFAULT_SQLITE_STORE_PATH,
        key: str = CONVERSATION_KEY
    ) -> None:
        if not AIOSQLITE_AVAILABLE:
            raise ImportError(
                "SQLite store requires aiosqlite. "
                "Install with: pip install 'parley[sqlite]'"
            )

        super().__init__(key)
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open the database and create the schema."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = await aiosqlite.connect(self._db_path)
            await self._create_schema()
        except (OSError, sqlite3.Error) as e:
            raise PersistenceFailure(f"cannot open {self._db_path}: {e}", key=self._key) from e

    async def _create_schema(self) -> None:
        """Create database tables."""
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS conversations (
                key TEXT PRIMARY KEY,
                messages TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        await self._connection.commit()

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    def _require_connection(self) -> "aiosqlite.Connection":
        if self._connection is None:
            raise PersistenceFailure("store is not connected", key=self._key)
        return self._connection

    async def load(self) -> list[Message]:
        connection = self._require_connection()
        try:
            async with connection.execute(
                "SELECT messages FROM conversations WHERE key = ?",
                (self._key,)
            ) as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise PersistenceFailure(str(e), key=self._key) from e

        if row is None:
            return []
        return load_messages(row[0], key=self._key)

    async def save(self, messages: list[Message]) -> None:
        connection = self._require_connection()
        now = datetime.now(timezone.utc).isoformat()
        try:
            await connection.execute("""
                INSERT INTO conversations (key, messages, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    messages = excluded.messages,
                    updated_at = excluded.updated_at
            """, (self._key, dump_messages(messages), now))
            await connection.commit()
        except sqlite3.Error as e:
            raise PersistenceFailure(str(e), key=self._key) from e

    @property
    def backend_type(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> Path:
        return self._db_path
