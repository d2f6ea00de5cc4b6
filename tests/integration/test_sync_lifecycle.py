"""
Integration tests: full sign-in / use / sign-out lifecycle through the container

Uses the in-memory backend and a real SQLite cache file.
"""
import asyncio
from datetime import date

import pytest

from track_anything.models import EntityKind, EventInsert, EventUpdate, LogInsert, NoteInsert
from track_anything.storage import LocalCache

from tests.fakes import OTHER_USER_ID, TEST_USER_ID


@pytest.mark.asyncio
async def test_day_in_the_life(container, remote, runner, clock):
    await container.session.sign_in(TEST_USER_ID, "token")
    assert container.data_sync.last_counts == {"events": 0, "logs": 0, "notes": 0}

    run = await container.events.create(EventInsert(event_name="Run", event_type="Count"))
    mood = await container.events.create(
        EventInsert(event_name="Mood", event_type="Scale", scale_max=5)
    )
    assert [e.id for e in await container.events.list()] == [run.id, mood.id]

    await container.logs.create(LogInsert.for_event(run))
    await container.logs.create(LogInsert.for_event(mood, value=4, log_date=date(2026, 1, 2)))
    await container.notes.create(NoteInsert(title="New shoes", event_id=run.id))

    await container.events.swap_positions(run.id, mood.id)
    await container.events.update(run.id, EventUpdate(event_name="Jog"))
    await runner.drain()

    events = await container.events.list()
    assert [e.event_name for e in events] == ["Mood", "Jog"]
    assert {log.event_name for log in await container.logs.list_by_event(run.id)} == {"Jog"}
    await runner.drain()

    # Backend saw every write
    assert {row["event_name"] for row in remote.tables["logs"]} == {"Jog", "Mood"}
    assert remote.row("events", mood.id)["position"] < remote.row("events", run.id)["position"]

    # Every read so far was served by the startup preload
    assert remote.count("select", "events") == 1


@pytest.mark.asyncio
async def test_sign_out_forces_fresh_fetch(container, remote, cache):
    remote.add("events", event_name="Run")
    await container.session.sign_in(TEST_USER_ID)
    assert remote.count("select", "events") == 1

    await container.session.sign_out()
    assert await cache.get(EntityKind.EVENTS) is None

    await container.session.sign_in(TEST_USER_ID)
    assert remote.count("select", "events") == 2
    assert len(await container.events.list()) == 1


@pytest.mark.asyncio
async def test_switching_accounts_never_leaks_rows(container, remote):
    remote.add("logs", event_id="e1", event_name="Run", value=1)
    remote.add("logs", event_id="e9", event_name="Swim", value=1, user_id=OTHER_USER_ID)

    await container.session.sign_in(TEST_USER_ID)
    assert [log.event_name for log in await container.logs.list()] == ["Run"]

    await container.session.sign_in(OTHER_USER_ID)
    assert [log.event_name for log in await container.logs.list()] == ["Swim"]


@pytest.mark.asyncio
async def test_cache_survives_restart(tmp_path, remote, runner, clock, notifier):
    from track_anything.container import SyncContainer
    from track_anything.session import Session

    path = tmp_path / "cache.db"

    def build():
        cache = LocalCache(path)
        return SyncContainer(cache=cache, remote=remote, session=Session(cache),
                             notifier=notifier, runner=runner, clock=clock)

    remote.add("notes", title="Started meds", event_id="e1",
               start_date="2026-01-01T00:00:00+00:00")
    first = build()
    await first.session.sign_in(TEST_USER_ID)
    assert remote.count("select", "notes") == 1

    # Same user in a new process: answered from the warm cache, then revalidated
    remote.gate = asyncio.Event()
    second = build()
    await second.session.sign_in(TEST_USER_ID)
    notes = await second.notes.list()

    assert [note.title for note in notes] == ["Started meds"]
    remote.gate.set()
    await runner.drain()
    assert remote.count("select", "notes") == 2


@pytest.mark.asyncio
async def test_account_switch_during_background_refresh_still_preloads(container, remote, runner, clock, cache):
    remote.add("events", event_name="Run")
    remote.add("events", event_name="Swim", user_id=OTHER_USER_ID)
    await container.session.sign_in(TEST_USER_ID)
    clock.advance(10)
    remote.gate = asyncio.Event()
    await container.events.list()  # first user's refresh now held at the gate

    switching = asyncio.ensure_future(container.session.sign_in(OTHER_USER_ID))
    while remote.count("select", "events") < 3:
        await asyncio.sleep(0)
    remote.gate.set()
    await switching
    await runner.drain()

    assert container.data_sync.last_counts["events"] == 1
    assert [row["event_name"] for row in await cache.get(EntityKind.EVENTS)] == ["Swim"]
