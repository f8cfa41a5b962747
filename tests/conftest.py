"""
tests.conftest

Shared fixtures: one SQLite file per test, a started store context and the façade.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio

from openevent_store.db.store import StoreContext
from openevent_store.services.notifications import BookmarkChanged
from openevent_store.services.repository import DataRepository
from openevent_store.settings import StoreSettings


class RecordingNotifier:
    def __init__(self) -> None:
        self.events: list[BookmarkChanged] = []

    def post(self, event: BookmarkChanged) -> None:
        self.events.append(event)


@pytest.fixture
def settings(tmp_path: Path) -> StoreSettings:
    return StoreSettings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'openevent.db'}",
        busy_timeout=5.0,
        log_json=False,
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def store(settings: StoreSettings) -> AsyncIterator[StoreContext]:
    async with StoreContext(settings) as ctx:
        yield ctx


@pytest_asyncio.fixture
async def repo(store: StoreContext, notifier: RecordingNotifier) -> AsyncIterator[DataRepository]:
    repository = DataRepository(store, notifier=notifier)
    try:
        yield repository
    finally:
        await repository.close()
