"""Keyed persistence surface for remembered filter values and saved screeners."""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Protocol

from config.settings_pydantic import settings

logger = logging.getLogger("wheelscreener")


class KeyedStore(Protocol):
    """Synchronous string key/value store, namespaced by the caller."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryKeyedStore:
    """In-process store, used for tests and one-shot CLI runs."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def keys(self) -> list[str]:
        return sorted(self._data)


class SQLiteKeyedStore:
    """SQLite-backed keyed store that survives between sessions."""

    def __init__(self, store_path: Path | str | None = None) -> None:
        """Initialize store.

        Args:
            store_path: Path to SQLite database file. If None, uses settings default.
        """
        self.store_path = Path(store_path or settings.state_store_path)
        self.store_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with sqlite3.connect(self.store_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS keyed_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """,
            )
            conn.commit()

    def get(self, key: str) -> str | None:
        """Get a stored value.

        Args:
            key: Namespaced key, e.g. ``call_yieldRange``.

        Returns:
            Stored string, or None when the key was never written.
        """
        with sqlite3.connect(self.store_path) as conn:
            cursor = conn.execute(
                "SELECT value FROM keyed_store WHERE key = ?",
                (key,),
            )
            row = cursor.fetchone()

        if row is None:
            logger.debug(f"Store miss for {key}")
            return None
        return str(row[0])

    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one.

        Args:
            key: Namespaced key.
            value: Serialized value.
        """
        with sqlite3.connect(self.store_path) as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO keyed_store
                (key, value, updated_at)
                VALUES (?, ?, ?)
                """,
                (key, value, datetime.now().isoformat()),
            )
            conn.commit()

        logger.debug(f"Stored value for {key}")

    def keys(self) -> list[str]:
        """List every stored key."""
        with sqlite3.connect(self.store_path) as conn:
            cursor = conn.execute("SELECT key FROM keyed_store ORDER BY key")
            return [row[0] for row in cursor.fetchall()]

    def clear_all(self) -> None:
        """Remove every stored value."""
        with sqlite3.connect(self.store_path) as conn:
            conn.execute("DELETE FROM keyed_store")
            conn.commit()
        logger.info("Cleared all stored values")
