from __future__ import annotations

import logging
import os
import sqlite3
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Protocol

from usersvc.models import User

logger = logging.getLogger("usersvc.storage")


class UserStorage(Protocol):
    """Key-value view of the user table, keyed by username.

    Implementations do no locking of their own; the service serialises access.
    """

    def get(self, username: str) -> Optional[User]: ...

    def put(self, user: User) -> None: ...

    def delete(self, username: str) -> bool: ...

    def exists(self, username: str) -> bool: ...


class ReadWriteLock:
    """Many readers or one writer.

    Writers are preferred once waiting so a steady stream of GETs can't starve
    mutations.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class InMemoryUserStorage:
    """Process-local store. Cleared on restart, not shared across instances."""

    def __init__(self):
        self._users: Dict[str, User] = {}

    def get(self, username: str) -> Optional[User]:
        u = self._users.get(username)
        # Hand out copies so callers can't mutate the stored record.
        return u.model_copy() if u is not None else None

    def put(self, user: User) -> None:
        self._users[user.username] = user.model_copy()

    def delete(self, username: str) -> bool:
        return self._users.pop(username, None) is not None

    def exists(self, username: str) -> bool:
        return username in self._users

    def __len__(self) -> int:
        return len(self._users)


_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    username TEXT PRIMARY KEY,
    first_name TEXT NOT NULL DEFAULT '',
    last_name TEXT NOT NULL DEFAULT '',
    password TEXT NOT NULL DEFAULT '',
    email TEXT NOT NULL DEFAULT '',
    role TEXT NOT NULL DEFAULT '',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

_COLUMNS = ("username", "first_name", "last_name", "password", "email", "role")


class SqliteUserStorage:
    """Relational backend over a single ``users`` table.

    ``database_url`` is a filesystem path or ``:memory:``. One connection is
    kept open for the lifetime of the storage; the service lock already
    serialises writers, so the connection is shared across worker threads.
    """

    def __init__(self, database_url: str):
        self._path = database_url
        if database_url != ":memory:":
            parent = os.path.dirname(os.path.abspath(database_url))
            os.makedirs(parent, exist_ok=True)
        self._conn = sqlite3.connect(database_url, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        # The service's read lock allows concurrent readers; sqlite3 connection
        # objects are not safe for concurrent use, so guard the cursor too.
        self._conn_lock = threading.Lock()
        self._init_schema()

    def _init_schema(self) -> None:
        with self._cursor() as cur:
            cur.executescript(_SCHEMA)
        logger.info("users table ready", extra={"database": self._path})

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        with self._conn_lock:
            cur = self._conn.cursor()
            try:
                yield cur
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise
            finally:
                cur.close()

    def get(self, username: str) -> Optional[User]:
        with self._cursor() as cur:
            cur.execute(
                "SELECT username, first_name, last_name, password, email, role FROM users WHERE username = ?",
                (username,),
            )
            row = cur.fetchone()
        if row is None:
            return None
        return User(**{k: row[k] for k in _COLUMNS})

    def put(self, user: User) -> None:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO users (username, first_name, last_name, password, email, role)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(username) DO UPDATE SET
                    first_name = excluded.first_name,
                    last_name = excluded.last_name,
                    password = excluded.password,
                    email = excluded.email,
                    role = excluded.role,
                    updated_at = CURRENT_TIMESTAMP
                """,
                tuple(getattr(user, k) for k in _COLUMNS),
            )

    def delete(self, username: str) -> bool:
        with self._cursor() as cur:
            cur.execute("DELETE FROM users WHERE username = ?", (username,))
            return cur.rowcount > 0

    def exists(self, username: str) -> bool:
        with self._cursor() as cur:
            cur.execute("SELECT 1 FROM users WHERE username = ?", (username,))
            return cur.fetchone() is not None

    def close(self) -> None:
        with self._conn_lock:
            self._conn.close()


def open_storage(kind: str, *, database_url: str = "") -> UserStorage:
    k = (kind or "memory").lower().strip()
    if k == "memory":
        return InMemoryUserStorage()
    if k == "sqlite":
        if not database_url.strip():
            raise ValueError("sqlite storage requires a database URL")
        return SqliteUserStorage(database_url)
    raise ValueError(f"Unknown storage backend: {kind!r} (expected 'memory' or 'sqlite')")
