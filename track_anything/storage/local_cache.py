"""Durable local cache for entity snapshots and preference slots

One SQLite key-value table holds a full JSON snapshot per entity kind, the
last-sync timestamp and the preference overlay maps. The cache is best-effort:
every failure is logged and swallowed, never raised.
"""

import json
import logging
import sqlite3
import time
from contextlib import closing
from pathlib import Path
from typing import Any, Optional, TypedDict, Union

from track_anything.config import CACHE_DB_PATH
from track_anything.models.common import EntityKind

logger = logging.getLogger(__name__)

# Storage keys
STORAGE_KEYS = {
    EntityKind.EVENTS: "@track-anything:events",
    EntityKind.LOGS: "@track-anything:logs",
    EntityKind.NOTES: "@track-anything:notes",
}
LAST_SYNC_KEY = "@track-anything:last-sync"


class CacheEntry(TypedDict):
    """Full snapshot of one entity collection"""
    data: list[dict[str, Any]]
    timestamp: int  # epoch milliseconds


def now_ms() -> int:
    return int(time.time() * 1000)


class LocalCache:
    """SQLite-backed key-value store for the sync core"""

    def __init__(self, db_path: Union[str, Path] = CACHE_DB_PATH):
        self.db_path = Path(db_path)
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        if not self._initialized:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        if not self._initialized:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.commit()
            self._initialized = True
        return conn

    def _read(self, key: str) -> Optional[str]:
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def _write(self, key: str, value: str) -> None:
        with closing(self._connect()) as conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)",
                (key, value)
            )
            conn.commit()

    def _remove(self, *keys: str) -> None:
        with closing(self._connect()) as conn:
            conn.executemany("DELETE FROM kv WHERE key = ?", [(key,) for key in keys])
            conn.commit()

    # Entity snapshots

    async def get_entry(self, kind: EntityKind) -> Optional[CacheEntry]:
        """
        Read the cache entry for an entity kind.

        Returns:
            The entry, or None when nothing was ever written (cold cache)
        """
        key = STORAGE_KEYS[kind]
        try:
            raw = self._read(key)
            if raw is None:
                return None
            entry = json.loads(raw)
            if not isinstance(entry, dict) or not isinstance(entry.get("data"), list):
                logger.warning(f"Discarding malformed cache entry for {kind.value}")
                return None
            return entry
        except Exception as e:
            logger.error(f"Error reading {kind.value} from local cache: {e}", exc_info=True)
            return None

    async def get(self, kind: EntityKind) -> Optional[list[dict[str, Any]]]:
        """
        Read the cached collection for an entity kind.

        Returns:
            List of entity dicts, [] for a cached empty collection,
            None when the kind was never cached
        """
        entry = await self.get_entry(kind)
        return entry["data"] if entry is not None else None

    async def set(self, kind: EntityKind, items: list[dict[str, Any]]) -> bool:
        """
        Replace the cached collection for an entity kind.

        Returns:
            True if the snapshot was persisted
        """
        key = STORAGE_KEYS[kind]
        try:
            entry: CacheEntry = {"data": items, "timestamp": now_ms()}
            self._write(key, json.dumps(entry))
            logger.debug(f"Cached {len(items)} {kind.value}")
            return True
        except Exception as e:
            logger.error(f"Error saving {kind.value} to local cache: {e}", exc_info=True)
            return False

    # Last sync timestamp

    async def get_last_sync(self) -> Optional[int]:
        try:
            raw = self._read(LAST_SYNC_KEY)
            return int(raw) if raw is not None else None
        except Exception as e:
            logger.error(f"Error reading last sync timestamp: {e}", exc_info=True)
            return None

    async def set_last_sync(self, timestamp: int) -> bool:
        try:
            self._write(LAST_SYNC_KEY, str(int(timestamp)))
            return True
        except Exception as e:
            logger.error(f"Error saving last sync timestamp: {e}", exc_info=True)
            return False

    # Raw slots (preference overlays)

    async def get_slot(self, key: str) -> Optional[Any]:
        """Read a JSON slot; None if missing or unreadable"""
        try:
            raw = self._read(key)
            return json.loads(raw) if raw is not None else None
        except Exception as e:
            logger.error(f"Error reading slot '{key}': {e}", exc_info=True)
            return None

    async def set_slot(self, key: str, value: Any) -> bool:
        try:
            self._write(key, json.dumps(value))
            return True
        except Exception as e:
            logger.error(f"Error saving slot '{key}': {e}", exc_info=True)
            return False

    async def remove_slot(self, key: str) -> bool:
        try:
            self._remove(key)
            return True
        except Exception as e:
            logger.error(f"Error removing slot '{key}': {e}", exc_info=True)
            return False

    async def clear_all(self) -> bool:
        """
        Clear all cached entity data and the last-sync timestamp.

        Called on sign-out and when a different user signs in, so one
        account never sees another's cached rows. Preference overlays are
        keyed by entity id and are left in place.
        """
        try:
            self._remove(*STORAGE_KEYS.values(), LAST_SYNC_KEY)
            logger.info("Cleared local cache")
            return True
        except Exception as e:
            logger.error(f"Error clearing local cache: {e}", exc_info=True)
            return False
