"""Unit tests for LogRepository and the shared cached-repository pipeline"""
import asyncio
from datetime import date, datetime, timezone

import pytest

from track_anything.exceptions import (
    AuthenticationError,
    BackendError,
    BackendUnavailableError,
    ValidationError,
)
from track_anything.models import EntityKind, LogInsert, LogUpdate

from tests.fakes import OTHER_USER_ID


def seed_logs(remote, count=2, event_id="e1", event_name="Run"):
    return [remote.add("logs", event_id=event_id, event_name=event_name, value=1) for _ in range(count)]


# ============================================================================
# list(): cold and warm cache
# ============================================================================

@pytest.mark.asyncio
async def test_cold_list_fetches_and_caches(logs_repo, remote, cache, on_change):
    seeded = seed_logs(remote)

    logs = await logs_repo.list()

    assert [log.id for log in logs] == [seeded[1]["id"], seeded[0]["id"]]  # newest first
    assert remote.count("select", "logs") == 1
    assert len(await cache.get(EntityKind.LOGS)) == 2
    on_change.assert_called_once()


@pytest.mark.asyncio
async def test_warm_list_within_cooldown_makes_no_request(logs_repo, remote):
    seed_logs(remote)
    await logs_repo.list()

    logs = await logs_repo.list()

    assert len(logs) == 2
    assert remote.count("select") == 1


@pytest.mark.asyncio
async def test_warm_list_returns_stale_then_revalidates(logs_repo, remote, runner, clock):
    seed_logs(remote)
    await logs_repo.list()
    remote.add("logs", event_id="e1", event_name="Run", value=1)
    clock.advance(10)

    stale = await logs_repo.list()
    assert len(stale) == 2

    await runner.drain()
    assert remote.count("select") == 2
    assert len(await logs_repo.list()) == 3


@pytest.mark.asyncio
async def test_warm_list_does_not_wait_for_slow_backend(logs_repo, remote, runner, clock):
    seed_logs(remote)
    await logs_repo.list()
    remote.gate = asyncio.Event()
    clock.advance(30)

    logs = await asyncio.wait_for(logs_repo.list(), timeout=1)

    assert len(logs) == 2
    assert logs_repo.refresh_state.refreshing
    remote.gate.set()
    await runner.drain()
    assert not logs_repo.refresh_state.refreshing


@pytest.mark.asyncio
async def test_concurrent_cold_lists_share_one_request(logs_repo, remote):
    seed_logs(remote)

    first, second = await asyncio.gather(logs_repo.list(), logs_repo.list())

    assert remote.count("select", "logs") == 1
    assert first == second


@pytest.mark.asyncio
async def test_refresh_joins_in_flight_refresh(logs_repo, remote, runner, clock):
    seed_logs(remote)
    await logs_repo.list()
    remote.gate = asyncio.Event()
    clock.advance(10)
    await logs_repo.list()  # starts a background refresh

    waiter = asyncio.ensure_future(logs_repo.refresh())
    await asyncio.sleep(0)
    remote.gate.set()
    await waiter

    assert remote.count("select") == 2


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_refresh(logs_repo, remote, runner, cache):
    seed_logs(remote)
    remote.gate = asyncio.Event()

    waiter = asyncio.ensure_future(logs_repo.list())
    await asyncio.sleep(0)
    waiter.cancel()
    remote.gate.set()
    await runner.drain()

    assert len(await cache.get(EntityKind.LOGS)) == 2


@pytest.mark.asyncio
async def test_cold_list_offline_raises(logs_repo, remote, runner, cache, task_errors):
    remote.failures["select"] = BackendUnavailableError()

    with pytest.raises(BackendUnavailableError):
        await logs_repo.list()

    assert await cache.get(EntityKind.LOGS) is None
    assert not logs_repo.refresh_state.refreshing
    await runner.drain()
    assert task_errors == []  # raised to the caller only


@pytest.mark.asyncio
async def test_background_refresh_failure_keeps_stale_data(logs_repo, remote, runner, clock, task_errors):
    seed_logs(remote)
    await logs_repo.list()
    remote.failures["select"] = BackendUnavailableError()
    clock.advance(10)

    assert len(await logs_repo.list()) == 2
    await runner.drain()

    assert [name for name, _ in task_errors] == ["logs.refresh"]
    del remote.failures["select"]
    assert len(await logs_repo.list()) == 2


@pytest.mark.asyncio
async def test_list_without_user_is_empty(logs_repo, remote, session):
    seed_logs(remote)
    await session.sign_out()

    assert await logs_repo.list() == []
    assert remote.count("select") == 0


@pytest.mark.asyncio
async def test_refresh_result_discarded_after_sign_out(logs_repo, remote, runner, session, cache):
    seed_logs(remote)
    remote.gate = asyncio.Event()

    pending = asyncio.ensure_future(logs_repo.list())
    while remote.count("select") == 0:
        await asyncio.sleep(0)
    await session.sign_out()
    remote.gate.set()

    assert await pending == []
    assert await cache.get(EntityKind.LOGS) is None


@pytest.mark.asyncio
async def test_refresh_started_for_previous_user_is_not_joined(logs_repo, remote, runner, session):
    seed_logs(remote, count=1)
    theirs = remote.add("logs", event_id="e9", event_name="Swim", value=1, user_id=OTHER_USER_ID)
    remote.gate = asyncio.Event()

    first = asyncio.ensure_future(logs_repo.refresh())
    while remote.count("select") == 0:
        await asyncio.sleep(0)
    await session.sign_in(OTHER_USER_ID)
    second = asyncio.ensure_future(logs_repo.list())
    while remote.count("select") < 2:
        await asyncio.sleep(0)
    remote.gate.set()

    assert await first == []
    assert [log.id for log in await second] == [theirs["id"]]


@pytest.mark.asyncio
async def test_rows_of_other_users_are_not_fetched(logs_repo, remote):
    seed_logs(remote, count=1)
    remote.add("logs", event_id="e1", event_name="Run", value=1, user_id=OTHER_USER_ID)

    assert len(await logs_repo.list()) == 1


# ============================================================================
# Filtered reads
# ============================================================================

@pytest.mark.asyncio
async def test_list_by_event_filters_cache_and_merges(logs_repo, remote, runner, cache):
    first = remote.add("logs", event_id="e1", event_name="Run", value=1)
    remote.add("logs", event_id="e2", event_name="Mood", value=3)
    await logs_repo.list()
    added = remote.add("logs", event_id="e1", event_name="Run", value=1)

    logs = await logs_repo.list_by_event("e1")
    assert [log.id for log in logs] == [first["id"]]

    await runner.drain()
    cached_ids = [row["id"] for row in await cache.get(EntityKind.LOGS)]
    assert added["id"] == cached_ids[0]
    assert len(cached_ids) == 3


@pytest.mark.asyncio
async def test_filtered_merge_never_deletes(logs_repo, remote, runner, cache):
    first, second = seed_logs(remote)
    await logs_repo.list()
    remote.tables["logs"] = [r for r in remote.tables["logs"] if r["id"] != first["id"]]

    await logs_repo.list_by_event("e1")
    await runner.drain()

    cached_ids = {row["id"] for row in await cache.get(EntityKind.LOGS)}
    assert cached_ids == {first["id"], second["id"]}


@pytest.mark.asyncio
async def test_filtered_merge_is_idempotent(logs_repo, remote, runner, cache):
    seed_logs(remote)
    await logs_repo.list()

    await logs_repo.list_by_event("e1")
    await runner.drain()
    once = await cache.get(EntityKind.LOGS)
    await logs_repo.list_by_event("e1")
    await runner.drain()

    assert await cache.get(EntityKind.LOGS) == once


@pytest.mark.asyncio
async def test_filtered_read_on_cold_cache_does_full_refresh(logs_repo, remote):
    seed_logs(remote, count=1, event_id="e1")
    seed_logs(remote, count=1, event_id="e2", event_name="Mood")

    logs = await logs_repo.list_by_event("e2")

    assert [log.event_id for log in logs] == ["e2"]
    assert remote.count("select") == 1


@pytest.mark.asyncio
async def test_list_by_event_name(logs_repo, remote, runner):
    seed_logs(remote, count=1, event_name="Run")
    seed_logs(remote, count=1, event_id="e2", event_name="Mood")
    await logs_repo.list()

    logs = await logs_repo.list_by_event_name("Mood")
    await runner.drain()

    assert [log.event_name for log in logs] == ["Mood"]


@pytest.mark.asyncio
async def test_list_by_date_range_is_inclusive(logs_repo, remote, runner):
    inside = remote.add("logs", event_id="e1", event_name="Run", value=1,
                        created_at=datetime(2026, 2, 1, 23, 30, tzinfo=timezone.utc))
    remote.add("logs", event_id="e1", event_name="Run", value=1,
               created_at=datetime(2026, 2, 2, 0, 30, tzinfo=timezone.utc))
    await logs_repo.list()

    logs = await logs_repo.list_by_date_range(date(2026, 2, 1), date(2026, 2, 1))
    await runner.drain()

    assert [log.id for log in logs] == [inside["id"]]


# ============================================================================
# Writes
# ============================================================================

@pytest.mark.asyncio
async def test_create_writes_through(logs_repo, remote, on_change):
    await logs_repo.list()
    on_change.reset_mock()

    created = await logs_repo.create(LogInsert(event_id="e1", event_name="Run", value=2))

    assert remote.row("logs", created.id)["user_id"] == "user-1"
    assert [log.id for log in await logs_repo.list()] == [created.id]
    assert remote.count("select") == 1
    on_change.assert_called_once()


@pytest.mark.asyncio
async def test_create_on_cold_cache_leaves_cache_cold(logs_repo, cache):
    await logs_repo.create(LogInsert(event_id="e1", event_name="Run", value=1))

    assert await cache.get(EntityKind.LOGS) is None


@pytest.mark.asyncio
async def test_create_failure_changes_nothing(logs_repo, remote, cache, on_change):
    await logs_repo.list()
    on_change.reset_mock()
    remote.failures["insert"] = BackendError("insert rejected", table="logs")

    with pytest.raises(BackendError):
        await logs_repo.create(LogInsert(event_id="e1", event_name="Run", value=1))

    assert await cache.get(EntityKind.LOGS) == []
    on_change.assert_not_called()


@pytest.mark.asyncio
async def test_create_requires_signed_in_user(logs_repo, remote, session):
    await session.sign_out()

    with pytest.raises(AuthenticationError):
        await logs_repo.create(LogInsert(event_id="e1", event_name="Run", value=1))
    assert remote.count("insert") == 0


@pytest.mark.asyncio
async def test_update_replaces_cached_row(logs_repo, remote):
    (seeded,) = seed_logs(remote, count=1)
    await logs_repo.list()

    updated = await logs_repo.update(seeded["id"], LogUpdate(value=7))

    assert updated.value == 7
    assert (await logs_repo.list())[0].value == 7


@pytest.mark.asyncio
async def test_update_with_empty_patch_is_rejected(logs_repo, remote):
    (seeded,) = seed_logs(remote, count=1)

    with pytest.raises(ValidationError):
        await logs_repo.update(seeded["id"], LogUpdate())
    assert remote.count("update") == 0


@pytest.mark.asyncio
async def test_delete_removes_from_cache(logs_repo, remote):
    first, second = seed_logs(remote)
    await logs_repo.list()

    await logs_repo.delete(first["id"])

    assert [log.id for log in await logs_repo.list()] == [second["id"]]
    assert remote.row("logs", first["id"]) is None


@pytest.mark.asyncio
async def test_apply_event_rename_updates_cache(logs_repo, remote, on_change):
    seed_logs(remote, count=2, event_id="e1", event_name="Run")
    seed_logs(remote, count=1, event_id="e2", event_name="Mood")
    await logs_repo.list()
    on_change.reset_mock()

    touched = await logs_repo.apply_event_rename("e1", "Jog")

    assert touched == 2
    names = sorted(log.event_name for log in await logs_repo.list())
    assert names == ["Jog", "Jog", "Mood"]
    on_change.assert_called_once()


@pytest.mark.asyncio
async def test_apply_event_rename_on_cold_cache(logs_repo):
    assert await logs_repo.apply_event_rename("e1", "Jog") == 0
