"""
tests.test_handles

Store handle confinement and the store lifecycle.
"""

from __future__ import annotations

import asyncio
import copy
import pickle

import pytest

from openevent_store.db.models import Track
from openevent_store.db.store import StoreContext
from openevent_store.errors import HandleConfinementError, StoreBusyError, StoreNotInitializedError
from openevent_store.schemas import TrackPayload
from openevent_store.services.repository import DataRepository
from openevent_store.settings import StoreSettings


@pytest.mark.asyncio
async def test_handle_rejects_use_from_another_thread(store: StoreContext) -> None:
    handle = store.default_handle

    def use_elsewhere() -> None:
        async def _read() -> None:
            await handle.get(Track, 1)

        asyncio.run(_read())

    with pytest.raises(HandleConfinementError):
        await asyncio.to_thread(use_elsewhere)


@pytest.mark.asyncio
async def test_handle_cannot_be_copied_or_pickled(store: StoreContext) -> None:
    async with store.open_handle(name="probe") as handle:
        with pytest.raises(TypeError):
            copy.copy(handle)
        with pytest.raises(TypeError):
            copy.deepcopy(handle)
        with pytest.raises(TypeError):
            pickle.dumps(handle)


@pytest.mark.asyncio
async def test_released_handle_is_unusable(store: StoreContext) -> None:
    async with store.open_handle(name="probe") as handle:
        assert store.handles_for_current_context() == [handle]

    assert handle.released
    assert store.open_handles() == []
    with pytest.raises(HandleConfinementError):
        await handle.get(Track, 1)


@pytest.mark.asyncio
async def test_handle_released_when_body_raises(store: StoreContext) -> None:
    with pytest.raises(RuntimeError):
        async with store.open_handle(name="probe"):
            raise RuntimeError("reader failed")

    assert store.open_handles() == []


@pytest.mark.asyncio
async def test_compaction_refuses_while_handle_open(repo: DataRepository) -> None:
    await repo.save_tracks([TrackPayload(id=1, name="Web")])

    async with repo.store.open_handle(name="held"):
        with pytest.raises(StoreBusyError):
            await repo.compact_database()

    await repo.compact_database()
    assert [t.name for t in await repo.get_tracks()] == ["Web"]


@pytest.mark.asyncio
async def test_store_requires_start(settings: StoreSettings) -> None:
    store = StoreContext(settings)

    with pytest.raises(StoreNotInitializedError):
        store.default_handle
    with pytest.raises(StoreNotInitializedError):
        async with store.open_handle(name="early"):
            pass

    await store.start()
    await store.close()
    assert not store.started
