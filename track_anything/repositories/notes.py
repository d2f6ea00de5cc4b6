"""Notes repository"""

from track_anything.models import EntityKind, Note, NoteInsert, NoteUpdate
from track_anything.repositories.base import CachedRepository
from track_anything.repositories.logs import DateLike
from track_anything.utils.datetime_helpers import inclusive_utc_range, to_utc


class NoteRepository(CachedRepository[Note]):
    kind = EntityKind.NOTES
    table = "notes"
    model = Note

    async def list_by_event(self, event_id: str) -> list[Note]:
        return await self._list_filtered(
            lambda note: note.event_id == event_id,
            label=f"by_event:{event_id}",
            eq={"event_id": event_id},
        )

    async def list_by_date_range(self, start: DateLike, end: DateLike) -> list[Note]:
        """Notes whose start_date falls within [start, end]"""
        lower, upper = inclusive_utc_range(start, end)
        return await self._list_filtered(
            lambda note: lower <= to_utc(note.start_date) <= upper,
            label="by_date_range",
            gte={"start_date": lower},
            lte={"start_date": upper},
        )

    async def create(self, payload: NoteInsert) -> Note:
        return await self._create(payload)

    async def update(self, id: str, patch: NoteUpdate) -> Note:
        return await self._update(id, patch)
