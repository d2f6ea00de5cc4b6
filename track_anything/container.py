"""
Sync Container - Dependency Injection Container

Owns the infrastructure (cache, remote, notifier, task runner, session) and
lazily builds the repositories, preference overlays and DataSync on top of
it. Each repository is built once, so each entity kind has exactly one
refresh slot.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from track_anything.config import CACHE_DB_PATH, REFRESH_COOLDOWN_SECONDS
from track_anything.notifier import ChangeNotifier
from track_anything.remote import RemoteDataSource, SupabaseDataSource
from track_anything.session import Session
from track_anything.storage import LocalCache
from track_anything.tasks import BackgroundTasks

logger = logging.getLogger(__name__)


@dataclass
class SyncContainer:
    """
    Wiring for the data sync core.

    Infrastructure is injected; repositories and overlays are lazy-loaded on
    first access via properties.
    """

    # Infrastructure dependencies (injected)
    cache: LocalCache
    remote: RemoteDataSource
    session: Session
    notifier: ChangeNotifier = field(default_factory=ChangeNotifier)
    runner: BackgroundTasks = field(default_factory=BackgroundTasks)
    cooldown: float = REFRESH_COOLDOWN_SECONDS
    clock: Callable[[], float] = time.monotonic

    # Lazy-loaded
    _events: Optional[object] = field(default=None, init=False, repr=False)
    _logs: Optional[object] = field(default=None, init=False, repr=False)
    _notes: Optional[object] = field(default=None, init=False, repr=False)
    _positions: Optional[object] = field(default=None, init=False, repr=False)
    _colors: Optional[object] = field(default=None, init=False, repr=False)
    _charts: Optional[object] = field(default=None, init=False, repr=False)
    _data_sync: Optional[object] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        self.session.subscribe(self._on_session_changed)

    async def _on_session_changed(self, previous: Optional[str], current: Optional[str]) -> None:
        await self.data_sync.on_session_changed(previous, current)

    def _repo_args(self) -> dict:
        return dict(
            cache=self.cache,
            remote=self.remote,
            notifier=self.notifier,
            runner=self.runner,
            session=self.session,
            cooldown=self.cooldown,
            clock=self.clock,
        )

    @property
    def positions(self):
        """Get PositionPrefs instance (lazy-loaded)"""
        if self._positions is None:
            from track_anything.preferences import PositionPrefs
            self._positions = PositionPrefs(self.cache)
        return self._positions

    @property
    def colors(self):
        """Get ColorPrefs instance (lazy-loaded)"""
        if self._colors is None:
            from track_anything.preferences import ColorPrefs
            self._colors = ColorPrefs(self.cache, remote=self.remote, runner=self.runner)
        return self._colors

    @property
    def charts(self):
        """Get ChartPrefs instance (lazy-loaded)"""
        if self._charts is None:
            from track_anything.preferences import ChartPrefs
            self._charts = ChartPrefs(self.cache)
        return self._charts

    @property
    def logs(self):
        """Get LogRepository instance (lazy-loaded)"""
        if self._logs is None:
            from track_anything.repositories import LogRepository
            self._logs = LogRepository(**self._repo_args())
            logger.debug("LogRepository instantiated")
        return self._logs

    @property
    def notes(self):
        """Get NoteRepository instance (lazy-loaded)"""
        if self._notes is None:
            from track_anything.repositories import NoteRepository
            self._notes = NoteRepository(**self._repo_args())
            logger.debug("NoteRepository instantiated")
        return self._notes

    @property
    def events(self):
        """Get EventRepository instance (lazy-loaded)"""
        if self._events is None:
            from track_anything.repositories import EventRepository
            self._events = EventRepository(
                **self._repo_args(),
                positions=self.positions,
                colors=self.colors,
                logs=self.logs,
            )
            logger.debug("EventRepository instantiated")
        return self._events

    @property
    def data_sync(self):
        """Get DataSync instance (lazy-loaded)"""
        if self._data_sync is None:
            from track_anything.sync import DataSync
            self._data_sync = DataSync(self.events, self.logs, self.notes, self.cache)
        return self._data_sync

    async def aclose(self) -> None:
        """Let background work finish, then close the remote client"""
        await self.runner.drain()
        close = getattr(self.remote, "aclose", None)
        if close is not None:
            await close()


def build_container(
    cache: Optional[LocalCache] = None,
    remote: Optional[RemoteDataSource] = None,
    **kwargs
) -> SyncContainer:
    """
    Build a container with the default SQLite cache and Supabase client.

    The Supabase client reads the access token from the session on every
    request.
    """
    cache = cache or LocalCache(CACHE_DB_PATH)
    session = Session(cache)
    if remote is None:
        remote = SupabaseDataSource(token_provider=lambda: session.access_token)
    return SyncContainer(cache=cache, remote=remote, session=session, **kwargs)


# Global container instance (initialized in main.py)
_container: Optional[SyncContainer] = None


def get_container() -> SyncContainer:
    """
    Get the global sync container.

    Raises:
        RuntimeError: If container not initialized (call init_container first)
    """
    if _container is None:
        raise RuntimeError(
            "Sync container not initialized. "
            "Call init_container() before using repositories."
        )
    return _container


def init_container(
    cache: Optional[LocalCache] = None,
    remote: Optional[RemoteDataSource] = None,
    **kwargs
) -> SyncContainer:
    """Initialize the global sync container"""
    global _container

    _container = build_container(cache=cache, remote=remote, **kwargs)
    logger.info("Sync container initialized")
    return _container
