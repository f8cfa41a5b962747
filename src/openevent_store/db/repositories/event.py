"""
openevent_store.db.repositories.event

Repository for the singleton `Event` and `Version` rows.
"""

from __future__ import annotations

from openevent_store.db.handles import StoreHandle
from openevent_store.db.models import EVENT_KEY, VERSION_KEY, Event, Version


class EventRepo:
    tables = frozenset({Event.__tablename__})

    def __init__(self, handle: StoreHandle) -> None:
        self._handle = handle

    async def get(self) -> Event | None:
        return await self._handle.get(Event, EVENT_KEY)


class VersionRepo:
    tables = frozenset({Version.__tablename__})

    def __init__(self, handle: StoreHandle) -> None:
        self._handle = handle

    async def get(self) -> Version | None:
        return await self._handle.get(Version, VERSION_KEY)
