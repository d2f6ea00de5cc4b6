"""Global test fixtures for the sync core tests"""
import pytest
from unittest.mock import MagicMock

from track_anything.container import SyncContainer
from track_anything.notifier import ChangeNotifier
from track_anything.preferences import ChartPrefs, ColorPrefs, PositionPrefs
from track_anything.repositories import EventRepository, LogRepository, NoteRepository
from track_anything.session import Session
from track_anything.storage import LocalCache
from track_anything.tasks import BackgroundTasks

from tests.fakes import FakeClock, FakeRemote, TEST_USER_ID


# ============================================================================
# Infrastructure
# ============================================================================

@pytest.fixture
def cache(tmp_path):
    """LocalCache on a throwaway SQLite file"""
    return LocalCache(tmp_path / "cache.db")


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return ChangeNotifier()


@pytest.fixture
def on_change(notifier):
    """Mock listener counting data-updated notifications"""
    listener = MagicMock()
    notifier.subscribe(listener)
    return listener


@pytest.fixture
def task_errors():
    """Captures (name, error) for every failed background task"""
    return []


@pytest.fixture
async def runner(task_errors):
    runner = BackgroundTasks(on_error=lambda name, error: task_errors.append((name, error)))
    yield runner
    await runner.drain()


@pytest.fixture
async def session(cache):
    """Session signed in as the test user"""
    session = Session(cache)
    await session.sign_in(TEST_USER_ID, "token-1")
    return session


# ============================================================================
# Overlays & Repositories
# ============================================================================

@pytest.fixture
def positions(cache):
    return PositionPrefs(cache)


@pytest.fixture
def colors(cache, remote, runner):
    return ColorPrefs(cache, remote=remote, runner=runner)


@pytest.fixture
def charts(cache):
    return ChartPrefs(cache)


@pytest.fixture
def repo_deps(cache, remote, notifier, runner, session, clock):
    return dict(
        cache=cache,
        remote=remote,
        notifier=notifier,
        runner=runner,
        session=session,
        cooldown=10,
        clock=clock,
    )


@pytest.fixture
def logs_repo(repo_deps):
    return LogRepository(**repo_deps)


@pytest.fixture
def notes_repo(repo_deps):
    return NoteRepository(**repo_deps)


@pytest.fixture
def events_repo(repo_deps, positions, colors, logs_repo):
    return EventRepository(**repo_deps, positions=positions, colors=colors, logs=logs_repo)


@pytest.fixture
def container(cache, remote, notifier, runner, clock):
    """Fully wired container with nobody signed in yet"""
    return SyncContainer(
        cache=cache,
        remote=remote,
        session=Session(cache),
        notifier=notifier,
        runner=runner,
        cooldown=10,
        clock=clock,
    )
