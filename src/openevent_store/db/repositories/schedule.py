"""
openevent_store.db.repositories.schedule

Repositories for the relational core: tracks, sessions and speakers.

Responsibilities:
- Lookups by identity and by exact attribute.
- Case-insensitive substring filters and caller-chosen sort order.
"""

from __future__ import annotations

from sqlalchemy import select

from openevent_store.db.handles import StoreHandle
from openevent_store.db.models import Microlocation, Session, Speaker, Track, session_speakers
from openevent_store.db.repositories.queries import contains, sort_column

# Session rows embed their track, microlocation and speakers.
_SESSION_TABLES = frozenset(
    {
        Session.__tablename__,
        Track.__tablename__,
        Microlocation.__tablename__,
        Speaker.__tablename__,
        session_speakers.name,
    }
)


class TrackRepo:
    tables = frozenset({Track.__tablename__, Session.__tablename__})

    def __init__(self, handle: StoreHandle) -> None:
        self._handle = handle

    async def get(self, track_id: int) -> Track | None:
        return await self._handle.get(Track, track_id)

    async def list_sorted(self) -> list[Track]:
        return await self._handle.scalars(select(Track).order_by(Track.name, Track.id))

    async def filtered(self, query: str) -> list[Track]:
        stmt = select(Track).where(contains(Track.name, query)).order_by(Track.name, Track.id)
        return await self._handle.scalars(stmt)


class SessionRepo:
    tables = _SESSION_TABLES

    def __init__(self, handle: StoreHandle) -> None:
        self._handle = handle

    async def get(self, session_id: int) -> Session | None:
        return await self._handle.get(Session, session_id)

    async def by_title(self, title: str) -> Session | None:
        return await self._handle.first(
            select(Session).where(Session.title == title).order_by(Session.id)
        )

    async def filtered(self, *, track_id: int, query: str) -> list[Session]:
        stmt = (
            select(Session)
            .where(Session.track_id == track_id, contains(Session.title, query))
            .order_by(Session.start_time, Session.id)
        )
        return await self._handle.scalars(stmt)

    async def by_location(self, location_name: str) -> list[Session]:
        stmt = (
            select(Session)
            .join(Session.microlocation)
            .where(Microlocation.name == location_name)
            .order_by(Session.start_time, Session.id)
        )
        return await self._handle.scalars(stmt)

    async def by_date(self, date: str, *, sort: str = "start_time") -> list[Session]:
        stmt = (
            select(Session)
            .where(Session.start_date == date)
            .order_by(sort_column(Session, sort), Session.id)
        )
        return await self._handle.scalars(stmt)

    async def by_date_filtered(
        self, date: str, query: str, *, sort: str = "start_time"
    ) -> list[Session]:
        stmt = (
            select(Session)
            .where(Session.start_date == date, contains(Session.title, query))
            .order_by(sort_column(Session, sort), Session.id)
        )
        return await self._handle.scalars(stmt)

    async def bookmarked(self) -> list[Session]:
        stmt = (
            select(Session)
            .where(Session.bookmarked.is_(True))
            .order_by(Session.start_time, Session.id)
        )
        return await self._handle.scalars(stmt)


class SpeakerRepo:
    tables = frozenset({Speaker.__tablename__, Session.__tablename__, session_speakers.name})

    def __init__(self, handle: StoreHandle) -> None:
        self._handle = handle

    async def by_name(self, name: str) -> Speaker | None:
        return await self._handle.first(
            select(Speaker).where(Speaker.name == name).order_by(Speaker.id)
        )

    async def list_sorted(self, *, sort: str = "name") -> list[Speaker]:
        stmt = select(Speaker).order_by(sort_column(Speaker, sort), Speaker.id)
        return await self._handle.scalars(stmt)

    async def filtered(self, query: str, *, sort: str = "name") -> list[Speaker]:
        stmt = (
            select(Speaker)
            .where(contains(Speaker.name, query))
            .order_by(sort_column(Speaker, sort), Speaker.id)
        )
        return await self._handle.scalars(stmt)


# --- Module Notes -----------------------------------------------------------
# Id is the final tiebreaker in every ordering so results are stable across refreshes.
