# persistence/db.py
"""
SQLite database connection and schema management.

Holds user accounts and server-side sessions in a file-based SQLite
database. Each thread gets its own connection and the schema is
created on every new connection.

A ":memory:" database only exists inside the connection that opened
it, so it is backed by a single connection shared by all threads and
serialized with a lock.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import Iterator, Optional, Union

_logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path("data") / "auth.db"

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        first_name TEXT,
        last_name TEXT,
        profile_picture TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        token_hash TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        issued_at TEXT NOT NULL,
        expires_at TEXT NOT NULL,
        ip_address TEXT,
        user_agent TEXT
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_sessions_user
    ON sessions(user_id)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_sessions_expires
    ON sessions(expires_at)
    """,
)


class Database:
    """
    Thread-local SQLite connections for one database file (one shared
    connection for ":memory:").

    Usage:
        db = Database("data/auth.db")
        with db.connect() as conn:
            cursor = conn.execute("SELECT ...")
    """

    def __init__(self, path: Union[str, Path] = DEFAULT_DB_PATH, timeout: float = 30.0):
        self.path = str(path)
        self.timeout = timeout
        self._local = threading.local()
        self._connections: list[sqlite3.Connection] = []
        self._lock = threading.Lock()
        self._memory_lock = threading.RLock()
        self._shared: Optional[sqlite3.Connection] = None

    @property
    def is_memory(self) -> bool:
        return self.path == ":memory:"

    def _open(self) -> sqlite3.Connection:
        if not self.is_memory:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            self.path,
            timeout=self.timeout,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        for statement in _SCHEMA:
            conn.execute(statement)
        conn.commit()

        with self._lock:
            self._connections.append(conn)
        _logger.debug(f"Opened database connection to {self.path}")
        return conn

    def _get_connection(self) -> sqlite3.Connection:
        """Get (or open) this thread's connection, or the shared one for ":memory:"."""
        if self.is_memory:
            if self._shared is None:
                self._shared = self._open()
            return self._shared

        conn = getattr(self._local, "connection", None)
        if conn is None:
            conn = self._open()
            self._local.connection = conn
        return conn

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection; commit on success, roll back on error."""
        # One transaction at a time on the shared ":memory:" connection
        guard = self._memory_lock if self.is_memory else nullcontext()
        with guard:
            conn = self._get_connection()
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def close(self) -> None:
        """Close every connection opened through this instance."""
        with self._memory_lock:
            with self._lock:
                connections, self._connections = self._connections, []
            for conn in connections:
                conn.close()
            self._shared = None
            self._local = threading.local()

    def reset(self) -> None:
        """Delete all rows (for testing)."""
        with self.connect() as conn:
            conn.execute("DELETE FROM sessions")
            conn.execute("DELETE FROM users")
