"""
Cached repository base

Stale-while-revalidate reads over one entity collection:

- list() answers from the local cache and, at most once per cooldown,
  refreshes the whole collection in the background
- a cold cache blocks on the refresh instead
- concurrent refresh requests for the same kind and user share one
  in-flight task
- filtered reads answer from the cache and merge a narrower backend query
  back into it by id
- create/update/delete write to the backend first, then patch the cache
  and emit a change notification
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Generic, List, Optional, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from track_anything.config import REFRESH_COOLDOWN_SECONDS
from track_anything.exceptions import AuthenticationError, ValidationError
from track_anything.models.common import EntityKind
from track_anything.monitoring import track_cache_read, track_refresh, track_refresh_join
from track_anything.notifier import ChangeNotifier
from track_anything.remote.base import RemoteDataSource, Row
from track_anything.repositories.merge import (
    merge_by_id,
    remove_by_id,
    replace_by_id,
    sort_newest_first,
)
from track_anything.session import Session
from track_anything.storage import LocalCache
from track_anything.tasks import BackgroundTasks

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class RefreshState:
    """Refresh bookkeeping for one entity kind (process lifetime, not persisted)"""
    in_flight: Optional[asyncio.Task] = None
    user_id: Optional[str] = None
    last_started_at: Optional[float] = None

    @property
    def refreshing(self) -> bool:
        return self.in_flight is not None and not self.in_flight.done()


class CachedRepository(Generic[ModelT]):
    """Shared read/refresh/write pipeline for events, logs and notes"""

    kind: ClassVar[EntityKind]
    table: ClassVar[str]
    model: ClassVar[type]
    order_by: ClassVar[str] = "created_at"
    ascending: ClassVar[bool] = False

    def __init__(
        self,
        cache: LocalCache,
        remote: RemoteDataSource,
        notifier: ChangeNotifier,
        runner: BackgroundTasks,
        session: Session,
        state: Optional[RefreshState] = None,
        cooldown: float = REFRESH_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._cache = cache
        self._remote = remote
        self._notifier = notifier
        self._runner = runner
        self._session = session
        self._state = state or RefreshState()
        self._cooldown = cooldown
        self._clock = clock

    @property
    def refresh_state(self) -> RefreshState:
        return self._state

    # ------------------------------------------------------------------
    # Cache I/O
    # ------------------------------------------------------------------

    def _parse_rows(self, rows: List[Row]) -> List[ModelT]:
        items = []
        for row in rows:
            try:
                items.append(self.model.model_validate(row))
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed {self.kind.value} row {row.get('id')}: {e}")
        return items

    async def _read_cache(self) -> Optional[List[ModelT]]:
        rows = await self._cache.get(self.kind)
        if rows is None:
            return None
        return self._parse_rows(rows)

    async def _write_cache(self, items: List[ModelT]) -> None:
        await self._cache.set(self.kind, [item.model_dump(mode="json") for item in items])

    def _sort(self, items: List[ModelT]) -> List[ModelT]:
        return sort_newest_first(items)

    async def _compose(self, items: List[ModelT]) -> List[ModelT]:
        """Hook for read-time overlays"""
        return items

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list(self) -> List[ModelT]:
        """
        Return the collection, preferring the local cache.

        Warm cache: returns immediately; starts (or joins) a background
        refresh when the cooldown has elapsed. Cold cache: waits for the
        refresh, so this is the one read that can raise when offline.
        """
        cached = await self._read_cache()
        if cached is not None:
            track_cache_read(self.kind.value, hit=True)
            if self._cooldown_elapsed():
                self._ensure_refresh()
            return await self._compose(cached)

        track_cache_read(self.kind.value, hit=False)
        logger.debug(f"Cold cache for {self.kind.value}, waiting for refresh")
        await self.refresh()
        return await self._compose(await self._read_cache() or [])

    async def get_by_id(self, id: str) -> Optional[ModelT]:
        for item in await self.list():
            if item.id == id:
                return item
        return None

    async def refresh(self) -> List[ModelT]:
        """Start (or join) a full refresh and wait for it to settle"""
        task = self._ensure_refresh()
        # Failures are raised to this caller instead of the runner handler
        self._runner.claim(task)
        # shield: a caller that stops waiting must not cancel the shared refresh
        return await asyncio.shield(task)

    def _cooldown_elapsed(self) -> bool:
        last = self._state.last_started_at
        return last is None or self._clock() - last >= self._cooldown

    def _ensure_refresh(self) -> asyncio.Task:
        state = self._state
        user_id = self._session.user_id
        if state.refreshing and state.user_id == user_id:
            track_refresh_join(self.kind.value)
            logger.debug(f"Joining in-flight {self.kind.value} refresh")
            return state.in_flight

        state.last_started_at = self._clock()
        state.user_id = user_id
        task = self._runner.submit(self._refresh(user_id), name=f"{self.kind.value}.refresh")
        state.in_flight = task
        task.add_done_callback(self._clear_in_flight)
        return task

    def _clear_in_flight(self, task: asyncio.Task) -> None:
        if self._state.in_flight is task:
            self._state.in_flight = None

    async def _refresh(self, user_id: Optional[str]) -> List[ModelT]:
        if user_id is None:
            logger.debug(f"No signed-in user, skipping {self.kind.value} refresh")
            return []

        try:
            rows = await self._remote.select(
                self.table,
                user_id=user_id,
                order_by=self.order_by,
                ascending=self.ascending,
            )
        except Exception:
            track_refresh(self.kind.value, "full", "error")
            raise

        items = self._parse_rows(rows)
        if self._session.user_id != user_id:
            logger.info(f"Session changed during {self.kind.value} refresh, discarding result")
            track_refresh(self.kind.value, "full", "discarded")
            return []

        await self._write_cache(items)
        track_refresh(self.kind.value, "full", "success")
        logger.info(f"Refreshed {len(items)} {self.kind.value}")
        self._notifier.emit()
        return items

    async def _list_filtered(
        self,
        predicate: Callable[[ModelT], bool],
        label: str,
        eq: Optional[dict[str, Any]] = None,
        gte: Optional[dict[str, Any]] = None,
        lte: Optional[dict[str, Any]] = None,
    ) -> List[ModelT]:
        """
        Filter the cached collection in memory and reconcile in the background.

        The narrower backend query is not coalesced with anything; its result
        is merged into the full collection by id.
        """
        cached = await self._read_cache()
        if cached is None:
            return [item for item in await self.list() if predicate(item)]

        track_cache_read(self.kind.value, hit=True)
        self._runner.submit(
            self._refresh_filtered(label, eq=eq, gte=gte, lte=lte),
            name=f"{self.kind.value}.{label}",
        )
        return [item for item in self._sort(cached) if predicate(item)]

    async def _refresh_filtered(
        self,
        label: str,
        eq: Optional[dict[str, Any]] = None,
        gte: Optional[dict[str, Any]] = None,
        lte: Optional[dict[str, Any]] = None,
    ) -> None:
        user_id = self._session.user_id
        if user_id is None:
            return

        try:
            rows = await self._remote.select(
                self.table,
                user_id=user_id,
                eq=eq,
                gte=gte,
                lte=lte,
                order_by="created_at",
                ascending=False,
            )
        except Exception:
            track_refresh(self.kind.value, "filtered", "error")
            raise

        incoming = self._parse_rows(rows)
        if self._session.user_id != user_id:
            track_refresh(self.kind.value, "filtered", "discarded")
            return

        await self.merge(incoming)
        track_refresh(self.kind.value, "filtered", "success")
        logger.debug(f"Merged {len(incoming)} {self.kind.value} from {label} query")

    async def merge(self, incoming: List[ModelT]) -> None:
        """
        Merge items into the cached collection by id and notify.

        Additive only: ids absent from ``incoming`` are kept. Does nothing
        on a cold cache, so a partial result never poses as the full
        collection.
        """
        current = await self._read_cache()
        if current is None:
            logger.debug(f"Cold {self.kind.value} cache, skipping merge")
            return
        merged = self._sort(merge_by_id(current, incoming))
        await self._write_cache(merged)
        self._notifier.emit()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _require_user(self, operation: str) -> str:
        user_id = self._session.user_id
        if user_id is None:
            raise AuthenticationError(
                f"Cannot {operation} {self.kind.value} without a signed-in user",
                operation=operation,
            )
        return user_id

    async def _create(self, payload: BaseModel) -> ModelT:
        row = payload.model_dump(mode="json", exclude_none=True)
        if not row.get("user_id"):
            row["user_id"] = self._require_user("create")

        created = self.model.model_validate(await self._remote.insert(self.table, row))
        logger.info(f"Created {self.kind.value} {created.id}")

        cached = await self._read_cache()
        if cached is not None:
            await self._write_cache(self._sort(cached + [created]))
        self._notifier.emit()
        return created

    async def _update(self, id: str, patch: BaseModel) -> ModelT:
        fields = patch.model_dump(mode="json", exclude_unset=True)
        if not fields:
            raise ValidationError(
                "no fields to update",
                field="patch",
                operation=f"update_{self.kind.value}",
            )

        updated = self.model.model_validate(await self._remote.update(self.table, id, fields))
        logger.info(f"Updated {self.kind.value} {id}: {sorted(fields)}")

        cached = await self._read_cache()
        if cached is not None:
            await self._write_cache(self._sort(replace_by_id(cached, updated)))
        self._notifier.emit()
        return updated

    async def delete(self, id: str) -> None:
        """Delete on the backend, then drop from the cache. Never cascades."""
        await self._remote.delete(self.table, id)
        logger.info(f"Deleted {self.kind.value} {id}")

        cached = await self._read_cache()
        if cached is not None:
            await self._write_cache(remove_by_id(cached, id))
        self._notifier.emit()
