"""Storage backends for persisted screen-time state."""

from __future__ import annotations

from typing import Dict, List, Optional, Protocol
import sqlite3


class StorageWriteError(Exception):
    """Raised when a backend fails to persist a value."""
    pass


class StateStore(Protocol):
    """Key-value storage backend interface.

    Single-key writes are atomic. Multi-key sequences are not; callers
    serialize those themselves.
    """

    def get(self, key: str) -> Optional[str]:
        ...

    def put(self, key: str, value: str, durable: bool = False) -> None:
        ...

    def delete(self, key: str) -> bool:
        ...

    def keys(self) -> List[str]:
        ...


class InMemoryStorage:
    """In-memory storage backend (default)."""

    def __init__(self):
        self._values: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def put(self, key: str, value: str, durable: bool = False) -> None:
        self._values[key] = value

    def delete(self, key: str) -> bool:
        if key in self._values:
            del self._values[key]
            return True
        return False

    def keys(self) -> List[str]:
        return sorted(self._values)


class SQLiteStorage:
    """SQLite-backed storage backend."""

    def __init__(self, db_path: str = "screenbudget.db"):
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS state (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    def get(self, key: str) -> Optional[str]:
        row = self._conn.execute(
            "SELECT value FROM state WHERE key = ?",
            (key,),
        ).fetchone()
        if not row:
            return None
        return row["value"]

    def put(self, key: str, value: str, durable: bool = False) -> None:
        try:
            if durable:
                self._conn.execute("PRAGMA synchronous=FULL;")
            try:
                self._conn.execute(
                    """
                    INSERT INTO state (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value
                    """,
                    (key, value),
                )
                self._conn.commit()
            except sqlite3.Error:
                self._conn.rollback()
                raise
            finally:
                if durable:
                    self._conn.execute("PRAGMA synchronous=NORMAL;")
        except sqlite3.Error as exc:
            raise StorageWriteError(f"failed to write '{key}': {exc}") from exc

    def delete(self, key: str) -> bool:
        cur = self._conn.execute("DELETE FROM state WHERE key = ?", (key,))
        self._conn.commit()
        return cur.rowcount > 0

    def keys(self) -> List[str]:
        rows = self._conn.execute("SELECT key FROM state ORDER BY key ASC").fetchall()
        return [row["key"] for row in rows]

    def close(self) -> None:
        self._conn.close()
