"""
tests.test_live

Live reads: first materialization and refresh after relevant commits.
"""

from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from openevent_store.db.handles import StoreHandle
from openevent_store.db.models import Track
from openevent_store.errors import StoreError
from openevent_store.schemas import SessionPayload, TrackPayload
from openevent_store.services.live import LiveQuery
from openevent_store.services.repository import DataRepository


async def _until(predicate, timeout: float = 5.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout)


@pytest.mark.asyncio
async def test_live_query_loads_then_refreshes(repo: DataRepository) -> None:
    live = repo.watch_tracks()
    assert live.value == []

    assert await asyncio.wait_for(live.wait_loaded(), 5) == []

    seen: list[list[Track]] = []
    remove = live.add_listener(seen.append)

    await repo.save_tracks([TrackPayload(id=1, name="Web")])
    await _until(lambda: bool(seen))

    assert [t.name for t in live.value] == ["Web"]
    assert [t.name for t in seen[-1]] == ["Web"]

    remove()
    await live.close()
    assert not live.running


@pytest.mark.asyncio
async def test_live_single_entity_follows_bookmark(repo: DataRepository) -> None:
    await repo.save_sessions([SessionPayload(id=1, title="Keynote")])
    live = repo.watch_session(1)
    loaded = await asyncio.wait_for(live.wait_loaded(), 5)
    assert loaded is not None and loaded.bookmarked is False

    await repo.set_bookmark(1, True)
    await _until(lambda: live.value is not None and live.value.bookmarked)

    await live.close()


@pytest.mark.asyncio
async def test_snapshots_stream_current_value_then_refreshes(repo: DataRepository) -> None:
    live = repo.watch_event_dates()
    await asyncio.wait_for(live.wait_loaded(), 5)

    collected: list[list[str]] = []

    async def consume() -> None:
        async for dates in live.snapshots():
            collected.append([d.date for d in dates])
            if len(collected) == 2:
                return

    consumer = asyncio.create_task(consume())
    await asyncio.sleep(0)

    await repo.save_event_dates(datetime(2024, 3, 1), datetime(2024, 3, 3))
    await asyncio.wait_for(consumer, 5)

    assert collected == [[], ["2024-03-01", "2024-03-02"]]
    await live.close()


@pytest.mark.asyncio
async def test_closed_live_queries_release_their_handles(repo: DataRepository) -> None:
    live = repo.watch_sponsors()
    await asyncio.wait_for(live.wait_loaded(), 5)
    await live.close()

    assert repo.store.open_handles() == []
    assert repo.store.changes.subscriber_count == 0


@pytest.mark.asyncio
async def test_failing_listener_does_not_stop_refreshes(repo: DataRepository) -> None:
    live = repo.watch_tracks()
    await asyncio.wait_for(live.wait_loaded(), 5)

    def broken(_tracks: list[Track]) -> None:
        raise RuntimeError("listener bug")

    seen: list[list[Track]] = []
    live.add_listener(broken)
    live.add_listener(seen.append)

    await repo.save_tracks([TrackPayload(id=1, name="Web")])
    await _until(lambda: len(seen) == 1)
    assert live.running

    await repo.save_tracks([TrackPayload(id=2, name="AI")])
    await _until(lambda: len(seen) == 2)

    assert live.running
    assert [t.name for t in live.value] == ["AI", "Web"]
    await live.close()


@pytest.mark.asyncio
async def test_wait_loaded_raises_when_first_load_fails(repo: DataRepository) -> None:
    async def failing_loader(handle: StoreHandle) -> list[Track]:
        raise RuntimeError("query failed")

    live: LiveQuery[list[Track]] = LiveQuery(
        repo.store, name="broken", loader=failing_loader, tables={"tracks"}, initial=[]
    )
    live.start()

    with pytest.raises(RuntimeError, match="query failed"):
        await asyncio.wait_for(live.wait_loaded(), 5)

    assert not live.loaded
    assert isinstance(live.error, RuntimeError)
    assert live.running
    await live.close()
    assert repo.store.open_handles() == []


@pytest.mark.asyncio
async def test_wait_loaded_raises_after_close(repo: DataRepository) -> None:
    live = repo.watch_tracks()
    await live.close()

    with pytest.raises(StoreError):
        await asyncio.wait_for(live.wait_loaded(), 5)
    assert repo.store.changes.subscriber_count == 0
