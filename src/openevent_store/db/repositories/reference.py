"""
openevent_store.db.repositories.reference

Repositories for flat reference data: sponsors, microlocations and event dates.
"""

from __future__ import annotations

from sqlalchemy import select

from openevent_store.db.handles import StoreHandle
from openevent_store.db.models import EventDates, Microlocation, Sponsor


class SponsorRepo:
    tables = frozenset({Sponsor.__tablename__})

    def __init__(self, handle: StoreHandle) -> None:
        self._handle = handle

    async def list_ranked(self) -> list[Sponsor]:
        # Most prominent sponsors first.
        stmt = select(Sponsor).order_by(Sponsor.level.desc(), Sponsor.name.asc(), Sponsor.id)
        return await self._handle.scalars(stmt)


class LocationRepo:
    tables = frozenset({Microlocation.__tablename__})

    def __init__(self, handle: StoreHandle) -> None:
        self._handle = handle

    async def list_sorted(self) -> list[Microlocation]:
        stmt = select(Microlocation).order_by(Microlocation.name, Microlocation.id)
        return await self._handle.scalars(stmt)


class EventDatesRepo:
    tables = frozenset({EventDates.__tablename__})

    def __init__(self, handle: StoreHandle) -> None:
        self._handle = handle

    async def list_sorted(self) -> list[EventDates]:
        return await self._handle.scalars(select(EventDates).order_by(EventDates.date))
