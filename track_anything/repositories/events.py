"""
Events repository

Events are read through two local overlays: PositionPrefs and ColorPrefs.
An overlay value always wins over the backend row, and every read comes
back sorted by the composed position.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from track_anything.models import EntityKind, Event, EventInsert, EventUpdate
from track_anything.preferences import ColorPrefs, PositionPrefs
from track_anything.repositories.base import CachedRepository
from track_anything.repositories.merge import sort_by_position
from track_anything.utils.datetime_helpers import now_utc

if TYPE_CHECKING:
    from track_anything.repositories.logs import LogRepository

logger = logging.getLogger(__name__)


class EventRepository(CachedRepository[Event]):
    kind = EntityKind.EVENTS
    table = "events"
    model = Event
    order_by = "position"
    ascending = True

    def __init__(
        self,
        *args,
        positions: PositionPrefs,
        colors: ColorPrefs,
        logs: Optional["LogRepository"] = None,
        **kwargs
    ):
        super().__init__(*args, **kwargs)
        self._positions = positions
        self._colors = colors
        self._logs = logs

    def _sort(self, items: list[Event]) -> list[Event]:
        return sort_by_position(items)

    async def _compose(self, items: list[Event]) -> list[Event]:
        positions = await self._positions.get_all()
        colors = await self._colors.get_all()

        composed = []
        for event in items:
            overrides = {}
            if event.id in positions:
                overrides["position"] = positions[event.id]
            if event.id in colors:
                overrides["color"] = colors[event.id]
            composed.append(event.model_copy(update=overrides) if overrides else event)
        return sort_by_position(composed)

    async def get_by_name(self, name: str) -> Optional[Event]:
        name = name.strip()
        for event in await self.list():
            if event.event_name == name:
                return event
        return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, payload: EventInsert) -> Event:
        """
        Create an event. Without an explicit position it goes to the end of
        the current (composed) order.
        """
        if payload.position is None:
            cached = await self._read_cache()
            if cached:
                composed = await self._compose(cached)
                next_position = max(event.position for event in composed) + 1
                payload = payload.model_copy(update={"position": next_position})
        return await self._create(payload)

    async def update(self, id: str, patch: EventUpdate) -> Event:
        """
        Update an event on the backend and in the cache.

        Position and color changes are also recorded in the overlays so the
        composed view shows them. A rename starts a background backfill of
        the denormalized ``event_name`` on the event's logs.
        """
        previous = None
        for event in await self._read_cache() or []:
            if event.id == id:
                previous = event
                break

        updated = await self._update(id, patch)

        fields = patch.model_fields_set
        if "position" in fields and patch.position is not None:
            await self._positions.set(id, patch.position)
        if "color" in fields and patch.color is not None:
            await self._colors.set(id, patch.color, push=False)

        renamed = "event_name" in fields and (
            previous is None or previous.event_name != updated.event_name
        )
        if renamed:
            self._runner.submit(
                self._backfill_log_names(id, updated.event_name),
                name=f"events.backfill_log_names:{id}",
            )
        return updated

    async def _backfill_log_names(self, event_id: str, new_name: str) -> None:
        """Copy a new event name onto every log of the event, backend then cache"""
        now = now_utc()
        rows = await self._remote.update_where(
            "logs", "event_id", event_id,
            {"event_name": new_name, "updated_at": now},
        )
        logger.info(f"Backfilled event_name on {len(rows)} logs of event {event_id}")
        if self._logs is not None:
            await self._logs.apply_event_rename(event_id, new_name, updated_at=now)

    async def delete(self, id: str) -> None:
        """Delete the event. Its logs and notes are left alone."""
        await super().delete(id)
        await self._positions.remove(id)
        await self._colors.remove(id)

    async def set_color(self, id: str, color: str) -> None:
        """
        Set an event's chart color.

        Raises:
            ValidationError: color is not #RRGGBB
        """
        await self._colors.set(id, color)
        self._notifier.emit()

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    async def swap_positions(self, first_id: str, second_id: str) -> None:
        """
        Exchange the positions of two events.

        The overlay is written before this returns; the backend is updated
        in the background.
        """
        composed = {event.id: event for event in await self.list()}
        first = composed.get(first_id)
        second = composed.get(second_id)
        if first is None or second is None:
            logger.warning(f"Cannot swap positions, unknown event: {first_id if first is None else second_id}")
            return

        prefs = await self._positions.get_all()
        prefs[first_id] = second.position
        prefs[second_id] = first.position
        await self._positions.set_all(prefs)

        for event_id, position in ((first_id, second.position), (second_id, first.position)):
            self._runner.submit(
                self._update(event_id, EventUpdate(position=position)),
                name=f"events.push_position:{event_id}",
            )
        self._notifier.emit()

    async def move_up(self, events: list[Event], index: int) -> bool:
        """Move events[index] one slot up; False at the top or out of range"""
        if index <= 0 or index >= len(events):
            return False
        await self._move(events, index, index - 1)
        return True

    async def move_down(self, events: list[Event], index: int) -> bool:
        """Move events[index] one slot down; False at the bottom or out of range"""
        if index < 0 or index >= len(events) - 1:
            return False
        await self._move(events, index, index + 1)
        return True

    async def _move(self, events: list[Event], index: int, target: int) -> None:
        positions = [event.position for event in events]
        if any(a >= b for a, b in zip(positions, positions[1:])):
            # Duplicate or out-of-order positions: renumber by list order
            # first, otherwise the swap could leave the order unchanged.
            prefs = await self._positions.get_all()
            for i, event in enumerate(events):
                prefs[event.id] = i
            await self._positions.set_all(prefs)
            logger.debug(f"Renumbered positions of {len(events)} events")
        await self.swap_positions(events[index].id, events[target].id)

    async def sync_positions_to_database(self, events: Optional[list[Event]] = None) -> int:
        """
        Push composed positions that differ from the backend rows.

        Returns:
            Number of events whose position was written
        """
        if events is None:
            events = await self.list()
        stored = {event.id: event.position for event in await self._read_cache() or []}
        stale = [event for event in events if stored.get(event.id) != event.position]
        if not stale:
            return 0

        results = await asyncio.gather(
            *(self._update(event.id, EventUpdate(position=event.position)) for event in stale),
            return_exceptions=True,
        )
        synced = 0
        for event, result in zip(stale, results):
            if isinstance(result, Exception):
                logger.error(f"Failed to sync position of event {event.id}: {result}")
            else:
                synced += 1
        logger.info(f"Synced {synced}/{len(stale)} event positions to database")
        return synced
