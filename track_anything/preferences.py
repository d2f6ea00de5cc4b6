"""
Preference overlays

Small id -> value maps kept in the local cache. They are locally
authoritative: when an overlay has a value for an event, it wins over the
backend row when the events repository composes its view.
"""

import logging
from typing import Any, Generic, Optional, TypeVar

from track_anything.exceptions import ValidationError
from track_anything.models.common import ChartType, is_hex_color
from track_anything.storage import LocalCache
from track_anything.tasks import BackgroundTasks

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_COLORS = [
    '#000000',  # Black
    '#3B82F6',  # Blue
    '#10B981',  # Green
    '#F59E0B',  # Amber
    '#EF4444',  # Red
    '#8B5CF6',  # Purple
    '#EC4899',  # Pink
    '#06B6D4',  # Cyan
]


class PreferenceOverlay(Generic[T]):
    """id -> value map persisted in one cache slot"""

    slot: str = ""

    def __init__(self, cache: LocalCache):
        self._cache = cache

    def _decode(self, raw: Any) -> Optional[T]:
        """Turn a stored JSON value into T; None drops the entry"""
        return raw

    def _encode(self, value: T) -> Any:
        return value

    async def get_all(self) -> dict[str, T]:
        raw = await self._cache.get_slot(self.slot)
        if not isinstance(raw, dict):
            return {}

        prefs: dict[str, T] = {}
        for entity_id, stored in raw.items():
            value = self._decode(stored)
            if value is None:
                logger.warning(f"Ignoring unreadable {self.slot} value for {entity_id}: {stored!r}")
                continue
            prefs[entity_id] = value
        return prefs

    async def get(self, entity_id: str) -> Optional[T]:
        return (await self.get_all()).get(entity_id)

    async def set(self, entity_id: str, value: T) -> None:
        """Persist one value; the write is complete when this returns"""
        prefs = await self.get_all()
        prefs[entity_id] = value
        await self.set_all(prefs)

    async def set_all(self, prefs: dict[str, T]) -> None:
        encoded = {entity_id: self._encode(value) for entity_id, value in prefs.items()}
        if not await self._cache.set_slot(self.slot, encoded):
            logger.error(f"Error saving {self.slot} preferences")

    async def remove(self, entity_id: str) -> None:
        prefs = await self.get_all()
        if prefs.pop(entity_id, None) is not None:
            await self.set_all(prefs)

    async def clear(self) -> None:
        await self._cache.remove_slot(self.slot)


class PositionPrefs(PreferenceOverlay[int]):
    """Local sort order for events"""

    slot = "@event_positions"

    def _decode(self, raw: Any) -> Optional[int]:
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            return None
        return int(raw)


class ColorPrefs(PreferenceOverlay[str]):
    """Chart colors for events; also pushed to the events.color column"""

    slot = "@chart_colors"

    def __init__(
        self,
        cache: LocalCache,
        remote=None,
        runner: Optional[BackgroundTasks] = None
    ):
        super().__init__(cache)
        self._remote = remote
        self._runner = runner

    def _decode(self, raw: Any) -> Optional[str]:
        return raw if isinstance(raw, str) and is_hex_color(raw) else None

    async def get_or_default(self, entity_id: str) -> str:
        return await self.get(entity_id) or DEFAULT_COLORS[0]

    async def set(self, entity_id: str, value: str, push: bool = True) -> None:
        """
        Store a color locally, then push it to the backend without waiting.

        ``push=False`` only records the overlay (the backend already has it).

        Raises:
            ValidationError: value is not a #RRGGBB string
        """
        if not is_hex_color(value):
            raise ValidationError(
                "must be a #RRGGBB hex string",
                field="color",
                value=value,
                operation="set_color",
            )
        await super().set(entity_id, value)

        if push and self._remote is not None and self._runner is not None:
            self._runner.submit(self._push(entity_id, value), name=f"colors.push:{entity_id}")

    async def _push(self, entity_id: str, value: str) -> None:
        await self._remote.update("events", entity_id, {"color": value})
        logger.debug(f"Pushed color {value} for event {entity_id}")


class ChartPrefs(PreferenceOverlay[ChartType]):
    """Line or bar chart per event"""

    slot = "track_anything_chart_prefs_v1"

    def _decode(self, raw: Any) -> Optional[ChartType]:
        try:
            return ChartType(raw)
        except ValueError:
            return None

    def _encode(self, value: ChartType) -> Any:
        return ChartType(value).value
