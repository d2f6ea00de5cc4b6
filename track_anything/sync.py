"""
Data sync

Warms every repository at once, typically right after sign-in.
"""

import asyncio
import logging
from typing import Optional

from track_anything.repositories import EventRepository, LogRepository, NoteRepository
from track_anything.storage import LocalCache
from track_anything.storage.local_cache import now_ms
from track_anything.tasks import BackgroundTasks

logger = logging.getLogger(__name__)


class DataSync:
    """Preloads events, logs and notes into the local cache"""

    def __init__(
        self,
        events: EventRepository,
        logs: LogRepository,
        notes: NoteRepository,
        cache: LocalCache
    ):
        self.events = events
        self.logs = logs
        self.notes = notes
        self._cache = cache
        self.last_counts: Optional[dict[str, int]] = None

    async def preload_all(self) -> Optional[dict[str, int]]:
        """
        Load all three collections concurrently.

        Never raises; a failure is logged and None is returned.

        Returns:
            {"events": n, "logs": n, "notes": n}, or None on failure
        """
        try:
            events, logs, notes = await asyncio.gather(
                self.events.list(),
                self.logs.list(),
                self.notes.list(),
            )
        except Exception as e:
            logger.error(f"[DataSync] Preload failed: {e}", exc_info=True)
            return None

        counts = {"events": len(events), "logs": len(logs), "notes": len(notes)}
        await self._cache.set_last_sync(now_ms())
        self.last_counts = counts
        logger.info(
            f"[DataSync] Preloaded data: {counts['events']} events, "
            f"{counts['logs']} logs, {counts['notes']} notes"
        )
        return counts

    def sync_in_background(self, runner: BackgroundTasks) -> asyncio.Task:
        return runner.submit(self.preload_all(), name="data_sync.preload_all")

    async def on_session_changed(self, previous: Optional[str], current: Optional[str]) -> None:
        """Session listener: preload for the newly signed-in user"""
        if current is None:
            self.last_counts = None
            return
        await self.preload_all()
