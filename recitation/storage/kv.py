"""KeyValueStore — aiosqlite-backed PersistenceStore."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import aiosqlite

from recitation.config import settings
from recitation.errors import PersistenceReadError, PersistenceWriteError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
)
"""


class KeyValueStore:
    """Persists string values by key in SQLite.

    Singleton accessed via ``KeyValueStore.get_instance()``.  Pass an explicit
    *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _instance: KeyValueStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    @classmethod
    def get_instance(cls) -> KeyValueStore:
        """Return the shared KeyValueStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        if not self._initialised:
            try:
                await db.execute(_CREATE_TABLE)
                await db.commit()
            except aiosqlite.Error:
                await db.close()
                raise
            self._initialised = True
        return db

    # -- PersistenceStore ------------------------------------------------------

    async def get(self, key: str) -> str | None:
        """Fetch the value for *key*, or None if absent."""
        try:
            db = await self._connect()
            try:
                cursor = await db.execute("SELECT value FROM kv WHERE key = ?", (key,))
                row = await cursor.fetchone()
                return row[0] if row else None
            finally:
                await db.close()
        except (aiosqlite.Error, OSError) as exc:
            msg = f"Failed to read {key!r}: {exc}"
            raise PersistenceReadError(msg) from exc

    async def set(self, key: str, value: str) -> None:
        """Insert or replace the value for *key*."""
        try:
            db = await self._connect()
            try:
                await db.execute(
                    """
                    INSERT INTO kv (key, value, updated_at)
                    VALUES (?, ?, datetime('now'))
                    ON CONFLICT(key) DO UPDATE
                        SET value = excluded.value, updated_at = excluded.updated_at
                    """,
                    (key, value),
                )
                await db.commit()
                logger.debug("Stored %s (%d chars)", key, len(value))
            finally:
                await db.close()
        except (aiosqlite.Error, OSError) as exc:
            msg = f"Failed to write {key!r}: {exc}"
            raise PersistenceWriteError(msg) from exc

    async def delete(self, key: str) -> bool:
        """Remove *key*. Returns True if a row was deleted."""
        try:
            db = await self._connect()
            try:
                cursor = await db.execute("DELETE FROM kv WHERE key = ?", (key,))
                await db.commit()
                return cursor.rowcount > 0
            finally:
                await db.close()
        except (aiosqlite.Error, OSError) as exc:
            msg = f"Failed to delete {key!r}: {exc}"
            raise PersistenceWriteError(msg) from exc
