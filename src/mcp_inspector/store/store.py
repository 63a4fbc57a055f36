"""Saved session stores."""

import sqlite3
from abc import ABC, abstractmethod
from collections import OrderedDict
from datetime import datetime
from pathlib import Path

from mcp_inspector.types import TransportKind

from .models import SavedConnection, SavedSession


class SavedSessionStore(ABC):
    """Abstract base class for saved session storage."""

    @abstractmethod
    async def save(self, session: SavedSession) -> None:
        """Insert or replace a saved session."""

    @abstractmethod
    async def get(self, session_id: str) -> SavedSession | None:
        """Get a saved session by ID."""

    @abstractmethod
    async def list(self) -> list[SavedSession]:
        """List saved sessions, newest first."""

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Delete a saved session. Returns False if it did not exist."""


class InMemorySavedSessionStore(SavedSessionStore):
    """In-memory store with LRU eviction."""

    def __init__(self, max_records: int = 1000):
        self.max_records = max_records
        self._sessions: OrderedDict[str, SavedSession] = OrderedDict()

    async def save(self, session: SavedSession) -> None:
        if session.id in self._sessions:
            self._sessions.move_to_end(session.id)
        self._sessions[session.id] = session

        while len(self._sessions) > self.max_records:
            self._sessions.popitem(last=False)

    async def get(self, session_id: str) -> SavedSession | None:
        return self._sessions.get(session_id)

    async def list(self) -> list[SavedSession]:
        sessions = list(self._sessions.values())
        sessions.sort(key=lambda s: s.created_at, reverse=True)
        return sessions

    async def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None


class SQLiteSavedSessionStore(SavedSessionStore):
    """SQLite-backed store; saved sessions survive restarts."""

    def __init__(self, db_path: str):
        """Initialize store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        # A private in-memory database only lives as long as its connection
        self._shared: sqlite3.Connection | None = None
        if db_path == ":memory:":
            self._shared = sqlite3.connect(db_path)
        else:
            Path(db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        if self._shared is not None:
            return self._shared
        return sqlite3.connect(str(Path(self.db_path).expanduser()))

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS saved_sessions (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT,
                    created_at TEXT NOT NULL,
                    url TEXT NOT NULL,
                    transport TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_saved_created ON saved_sessions(created_at)"
            )

    async def save(self, session: SavedSession) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO saved_sessions
                (id, name, description, created_at, url, transport)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    session.id,
                    session.name,
                    session.description,
                    session.created_at.isoformat(),
                    session.connection_info.url,
                    session.connection_info.transport.value,
                ),
            )

    async def get(self, session_id: str) -> SavedSession | None:
        with self._connect() as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(
                "SELECT * FROM saved_sessions WHERE id = ?", (session_id,)
            ).fetchone()

            if not row:
                return None

            return self._row_to_session(row)

    async def list(self) -> list[SavedSession]:
        with self._connect() as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                "SELECT * FROM saved_sessions ORDER BY created_at DESC"
            ).fetchall()
            return [self._row_to_session(row) for row in rows]

    async def delete(self, session_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM saved_sessions WHERE id = ?", (session_id,))
            return cursor.rowcount > 0

    def _row_to_session(self, row: sqlite3.Row) -> SavedSession:
        return SavedSession(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            created_at=datetime.fromisoformat(row["created_at"]),
            connection_info=SavedConnection(
                url=row["url"],
                transport=TransportKind(row["transport"]),
            ),
        )
