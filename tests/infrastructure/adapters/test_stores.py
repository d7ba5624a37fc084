"""Contract tests shared by every ProgressStore adapter."""

from dataclasses import replace
from datetime import timedelta

import pytest
import pytest_asyncio

from kioku.application.progress.engine import ProgressEngine, new_progress
from kioku.domain.progress.errors import ConcurrencyConflict
from kioku.domain.progress.models import ItemKey
from kioku.infrastructure.adapters.stores import InMemoryProgressStore, SqliteProgressStore


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryProgressStore()
    else:
        async with SqliteProgressStore(tmp_path / "db" / "progress.db") as s:
            yield s


@pytest.fixture
def populated(t0):
    engine = ProgressEngine()
    progress = new_progress("u1", "n5", t0)
    progress = engine.apply_attempt(progress, 0, 1, True, 10, t0).progress
    progress = engine.apply_attempt(progress, 2, 0, False, 3, t0).progress
    return engine.complete_session(progress, 12, t0)


@pytest.mark.asyncio
async def test_load_missing(store):
    assert await store.load("u1", "n5") is None


@pytest.mark.asyncio
async def test_save_and_load(store, populated):
    saved = await store.save(populated)
    loaded = await store.load("u1", "n5")

    assert saved.version == 1
    assert loaded == saved
    assert loaded.item_progress[ItemKey(2, 0)].incorrect_attempts == 1
    assert loaded.overall_stats.total_study_time_minutes == 12


@pytest.mark.asyncio
async def test_save_increments_version(store, populated):
    first = await store.save(populated)
    second = await store.save(first)

    assert second.version == 2
    assert (await store.load("u1", "n5")).version == 2


@pytest.mark.asyncio
async def test_stale_save_conflicts(store, populated):
    saved = await store.save(populated)
    await store.save(saved)

    with pytest.raises(ConcurrencyConflict) as exc:
        await store.save(saved)

    assert exc.value.expected == 1
    assert exc.value.actual == 2


@pytest.mark.asyncio
async def test_second_create_conflicts(store, t0):
    await store.save(new_progress("u1", "n5", t0))

    with pytest.raises(ConcurrencyConflict):
        await store.save(new_progress("u1", "n5", t0))


@pytest.mark.asyncio
async def test_loaded_copies_are_independent(store, populated):
    await store.save(populated)
    loaded = await store.load("u1", "n5")
    loaded.item_progress.clear()

    assert len((await store.load("u1", "n5")).item_progress) == 2


@pytest.mark.asyncio
async def test_list_for_user_most_recent_first(store, t0):
    for deck, offset in [("a", 1), ("b", 3), ("c", 2)]:
        progress = replace(
            new_progress("u1", deck, t0), last_studied_at=t0 + timedelta(days=offset)
        )
        await store.save(progress)
    await store.save(new_progress("u2", "a", t0))

    decks = [p.deck_id for p in await store.list_for_user("u1")]
    assert decks == ["b", "c", "a"]


@pytest.mark.asyncio
async def test_sqlite_persists_across_connections(tmp_path, populated):
    path = tmp_path / "progress.db"
    async with SqliteProgressStore(path) as first:
        await first.save(populated)

    async with SqliteProgressStore(path) as second:
        loaded = await second.load("u1", "n5")

    assert loaded.version == 1
    assert loaded.id == populated.id


@pytest.mark.asyncio
async def test_sqlite_writers_on_separate_engines_never_lose_updates(tmp_path, populated):
    path = tmp_path / "progress.db"
    async with SqliteProgressStore(path) as first, SqliteProgressStore(path) as second:
        base = await first.save(populated)

        stale = await second.load("u1", "n5")
        await first.save(base)

        with pytest.raises(ConcurrencyConflict) as exc:
            await second.save(stale)
        assert exc.value.actual == 2

        fresh = await second.load("u1", "n5")
        assert (await second.save(fresh)).version == 3

    async with SqliteProgressStore(path) as reader:
        assert (await reader.load("u1", "n5")).version == 3


@pytest.mark.asyncio
async def test_store_close_is_safe_to_call(store, t0):
    await store.save(new_progress("u1", "n5", t0))
    await store.close()
