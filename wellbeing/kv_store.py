import asyncio
import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import List, Optional

from wellbeing.config import DB_PATH
from wellbeing.errors import StorageIOError

logger = logging.getLogger(__name__)


class KeyValueStore:
    """
    Flat string -> string store backed by a single SQLite table.

    This is the only component that touches durable storage. Every public
    method is a coroutine; the blocking sqlite work runs on a worker thread.
    Any sqlite/OS failure surfaces as StorageIOError and is not retried.
    """

    def __init__(self, db_path: str = DB_PATH):
        self.db_path = db_path
        self._run(self._init_db)

    @contextmanager
    def _get_db(self):
        # Ensure directory exists
        if os.path.dirname(self.db_path):
            os.makedirs(os.path.dirname(self.db_path), exist_ok=True)

        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
        finally:
            conn.close()

    def _run(self, fn, *args):
        try:
            return fn(*args)
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Storage failure in {fn.__name__}: {e}")
            raise StorageIOError(str(e)) from e

    def _init_db(self):
        """Initialize the database schema."""
        with self._get_db() as conn:
            cursor = conn.cursor()

            # Write-Ahead Logging so readers don't block the single writer
            cursor.execute('PRAGMA journal_mode=WAL;')
            cursor.execute('PRAGMA synchronous = NORMAL;')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            ''')
            conn.commit()

    # --- Blocking primitives ---

    def _get(self, key: str) -> Optional[str]:
        with self._get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT value FROM kv_store WHERE key = ?', (key,))
            row = cursor.fetchone()
            return row[0] if row else None

    def _set(self, key: str, value: str):
        with self._get_db() as conn:
            conn.execute('''
                INSERT INTO kv_store (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
            ''', (key, value))
            conn.commit()

    def _remove(self, key: str):
        with self._get_db() as conn:
            conn.execute('DELETE FROM kv_store WHERE key = ?', (key,))
            conn.commit()

    def _clear(self):
        with self._get_db() as conn:
            conn.execute('DELETE FROM kv_store')
            conn.commit()

    def _list_keys(self) -> List[str]:
        with self._get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT key FROM kv_store ORDER BY key')
            return [row[0] for row in cursor.fetchall()]

    # --- Async API ---

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._run, self._get, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._run, self._set, key, value)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._run, self._remove, key)

    async def clear(self) -> None:
        await asyncio.to_thread(self._run, self._clear)

    async def list_keys(self) -> List[str]:
        return await asyncio.to_thread(self._run, self._list_keys)
