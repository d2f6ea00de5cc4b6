"""Logs repository"""

import logging
from datetime import date, datetime
from typing import Optional, Union

from track_anything.models import EntityKind, Log, LogInsert, LogUpdate
from track_anything.repositories.base import CachedRepository
from track_anything.utils.datetime_helpers import inclusive_utc_range, now_utc, to_utc

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]


class LogRepository(CachedRepository[Log]):
    kind = EntityKind.LOGS
    table = "logs"
    model = Log

    async def list_by_event(self, event_id: str) -> list[Log]:
        return await self._list_filtered(
            lambda log: log.event_id == event_id,
            label=f"by_event:{event_id}",
            eq={"event_id": event_id},
        )

    async def list_by_event_name(self, event_name: str) -> list[Log]:
        return await self._list_filtered(
            lambda log: log.event_name == event_name,
            label=f"by_event_name:{event_name}",
            eq={"event_name": event_name},
        )

    async def list_by_date_range(self, start: DateLike, end: DateLike) -> list[Log]:
        """Logs whose created_at falls within [start, end]"""
        lower, upper = inclusive_utc_range(start, end)
        return await self._list_filtered(
            lambda log: lower <= to_utc(log.created_at) <= upper,
            label="by_date_range",
            gte={"created_at": lower},
            lte={"created_at": upper},
        )

    async def create(self, payload: LogInsert) -> Log:
        return await self._create(payload)

    async def update(self, id: str, patch: LogUpdate) -> Log:
        return await self._update(id, patch)

    async def apply_event_rename(
        self,
        event_id: str,
        new_name: str,
        updated_at: Optional[datetime] = None
    ) -> int:
        """
        Rename the parent event on cached logs.

        Returns:
            Number of cached logs touched (0 on a cold cache)
        """
        cached = await self._read_cache()
        if cached is None:
            return 0

        updated_at = updated_at or now_utc()
        touched = 0
        renamed = []
        for log in cached:
            if log.event_id == event_id:
                log = log.model_copy(update={"event_name": new_name, "updated_at": updated_at})
                touched += 1
            renamed.append(log)

        if touched:
            await self._write_cache(renamed)
            self._notifier.emit()
        logger.debug(f"Renamed event {event_id} on {touched} cached logs")
        return touched
