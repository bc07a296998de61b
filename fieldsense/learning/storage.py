"""Key-value storage port for the learning store.

A narrow async get/set/remove interface scoped per logical key. There are
no cross-key transactions and no per-key locking: a read followed by a
write from two concurrent callers can lose one of the updates. Callers
that need atomic per-key updates must serialize above this layer.
"""

import asyncio
import copy
import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Protocol
import logging

from ..errors import PersistenceError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Persisted key-value storage consumed by the learning store."""

    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...


class MemoryKeyValueStore:
    """Process-local store. Values are deep-copied in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


class SQLiteKeyValueStore:
    """SQLite-backed store, one JSON value per key.

    Blocking sqlite3 calls run in the default executor so a slow disk only
    suspends the calling task.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Initialize database schema."""
        with self._connect() as conn:
            conn.executescript(SCHEMA)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connection."""
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _get(self, key: str) -> Optional[Any]:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return json.loads(row["value"])

    def _set(self, key: str, value: Any):
        payload = json.dumps(value)
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO kv (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                   ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                                  updated_at = excluded.updated_at""",
                (key, payload),
            )

    def _remove(self, key: str):
        with self._connect() as conn:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))

    async def _run(self, fn, *args):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, fn, *args)
        except (sqlite3.Error, ValueError, TypeError) as e:
            raise PersistenceError(f"{fn.__name__.lstrip('_')} failed on {self.path}: {e}") from e

    async def get(self, key: str) -> Optional[Any]:
        return await self._run(self._get, key)

    async def set(self, key: str, value: Any) -> None:
        await self._run(self._set, key, value)

    async def remove(self, key: str) -> None:
        await self._run(self._remove, key)
