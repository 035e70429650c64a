"""Async SQLite key-value store.

Uses ``aiosqlite`` for non-blocking database access with WAL mode. Values
are opaque strings (the history log is a single JSON document).
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

import aiosqlite


class SQLiteKeyValueStore:
    """Thin async key-value wrapper around an SQLite database.

    Parameters
    ----------
    db_path:
        Filesystem path to the SQLite database file.  The file (and any
        intermediate directories) will be created automatically on
        :meth:`connect` if they do not already exist.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._conn: Optional[aiosqlite.Connection] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the database connection, enable WAL mode, and run migrations."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(str(self.db_path))
        await self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.row_factory = sqlite3.Row
        await self._migrate()

    async def close(self) -> None:
        """Close the database connection gracefully."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    @property
    def connected(self) -> bool:
        return self._conn is not None

    # ------------------------------------------------------------------
    # KeyValueStore
    # ------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        conn = self._require()
        cursor = await conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = await cursor.fetchone()
        await cursor.close()
        if row is None:
            return None
        return row["value"]

    async def set(self, key: str, value: str) -> None:
        conn = self._require()
        await conn.execute(
            "INSERT INTO kv_store (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
            "updated_at = CURRENT_TIMESTAMP",
            (key, value),
        )
        await conn.commit()

    async def remove(self, key: str) -> None:
        conn = self._require()
        await conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        await conn.commit()

    def _require(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._conn

    # ------------------------------------------------------------------
    # Migrations
    # ------------------------------------------------------------------

    async def _migrate(self) -> None:
        """Create the key-value table if it does not already exist."""
        assert self._conn is not None

        await self._conn.executescript(
            """\
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
            """
        )
        await self._conn.commit()


# ------------------------------------------------------------------
# Convenience factory
# ------------------------------------------------------------------

def get_store(data_dir: Path) -> SQLiteKeyValueStore:
    """Return a :class:`SQLiteKeyValueStore` at ``data_dir/wallet.db``.

    The caller is responsible for calling :meth:`SQLiteKeyValueStore.connect`
    before using the returned instance.
    """
    return SQLiteKeyValueStore(Path(data_dir) / "wallet.db")
