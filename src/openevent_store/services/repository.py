"""
openevent_store.services.repository

Public façade over the local store.

Responsibilities:
- Expose every write as a cold `DeferredAction` that runs through the transaction
  coordinator on the write worker.
- Expose every read twice: `get_*` (awaited on the default handle, fully materialized)
  and `watch_*` (a `LiveQuery` that keeps itself current).
- Post `BookmarkChanged` after a bookmark toggle commits.
- Compact the database on request.
"""

from __future__ import annotations

import weakref
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime
from typing import Any, Protocol, TypeVar

from openevent_store.db.handles import StoreHandle
from openevent_store.db.models import (
    Event,
    EventDates,
    Microlocation,
    Session,
    Speaker,
    Sponsor,
    Track,
    Version,
)
from openevent_store.db.repositories.event import EventRepo, VersionRepo
from openevent_store.db.repositories.queries import sort_column
from openevent_store.db.repositories.reference import EventDatesRepo, LocationRepo, SponsorRepo
from openevent_store.db.repositories.schedule import SessionRepo, SpeakerRepo, TrackRepo
from openevent_store.db.store import StoreContext
from openevent_store.db.view import TransactionView
from openevent_store.observability.logging import get_logger
from openevent_store.reconcile.dates import replace_event_dates
from openevent_store.reconcile.merge import merge_sessions, merge_speakers, merge_tracks
from openevent_store.reconcile.records import (
    write_bookmark,
    write_event,
    write_locations,
    write_sponsors,
)
from openevent_store.schemas import (
    EventPayload,
    MicrolocationPayload,
    SessionPayload,
    SpeakerPayload,
    SponsorPayload,
    TrackPayload,
)
from openevent_store.services.deferred import DeferredAction, WriteWorker
from openevent_store.services.live import LiveQuery
from openevent_store.services.notifications import BookmarkChanged, Notifier, NullNotifier
from openevent_store.services.transactions import TransactionCoordinator

log = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class _Repo(Protocol):
    tables: frozenset[str]

    def __init__(self, handle: StoreHandle) -> None: ...


class DataRepository:
    def __init__(
        self,
        store: StoreContext,
        *,
        worker: WriteWorker | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._store = store
        self._worker = worker or WriteWorker(concurrency=store.settings.write_concurrency)
        self._notifier = notifier or NullNotifier()
        self._tx = TransactionCoordinator(store)
        self._live: weakref.WeakSet[LiveQuery[Any]] = weakref.WeakSet()

    @property
    def store(self) -> StoreContext:
        return self._store

    @property
    def worker(self) -> WriteWorker:
        return self._worker

    # --- plumbing ----------------------------------------------------------------------

    def _write(self, operation: str, work: Callable[[TransactionView], T]) -> DeferredAction[T]:
        async def _run() -> T:
            return await self._tx.run(operation, work)

        return DeferredAction(operation, _run, worker=self._worker)

    async def _get(
        self,
        repo_cls: Callable[[StoreHandle], R],
        query: Callable[[R], Awaitable[T]],
    ) -> T:
        async def _load(handle: StoreHandle) -> T:
            return await query(repo_cls(handle))

        return await self._store.read(_load)

    def _watch(
        self,
        name: str,
        repo_cls: type[_Repo],
        query: Callable[[Any], Awaitable[T]],
        initial: T,
    ) -> LiveQuery[T]:
        async def _load(handle: StoreHandle) -> T:
            return await query(repo_cls(handle))

        live = LiveQuery(
            self._store, name=name, loader=_load, tables=repo_cls.tables, initial=initial
        )
        live.start()
        self._live.add(live)
        return live

    async def close(self) -> None:
        for live in list(self._live):
            await live.close()
        await self._worker.drain()

    # --- writes ------------------------------------------------------------------------

    def save_event(self, event: EventPayload) -> DeferredAction[None]:
        def _work(view: TransactionView) -> None:
            write_event(view, event)
            log.info("saved_event")

        return self._write("save_event", _work)

    def save_tracks(self, tracks: Iterable[TrackPayload]) -> DeferredAction[int]:
        batch = list(tracks)

        def _work(view: TransactionView) -> int:
            count = merge_tracks(view, batch)
            log.info("saved_tracks", count=count)
            return count

        return self._write("save_tracks", _work)

    def save_sessions(self, sessions: Iterable[SessionPayload]) -> DeferredAction[int]:
        batch = list(sessions)

        def _work(view: TransactionView) -> int:
            count = merge_sessions(view, batch)
            log.info("saved_sessions", count=count)
            return count

        return self._write("save_sessions", _work)

    def save_speakers(self, speakers: Iterable[SpeakerPayload]) -> DeferredAction[int]:
        batch = list(speakers)

        def _work(view: TransactionView) -> int:
            count = merge_speakers(view, batch)
            log.info("saved_speakers", count=count)
            return count

        return self._write("save_speakers", _work)

    def save_sponsors(self, sponsors: Iterable[SponsorPayload]) -> DeferredAction[int]:
        batch = list(sponsors)

        def _work(view: TransactionView) -> int:
            count = write_sponsors(view, batch)
            log.info("saved_sponsors", count=count)
            return count

        return self._write("save_sponsors", _work)

    def save_locations(self, locations: Iterable[MicrolocationPayload]) -> DeferredAction[int]:
        batch = list(locations)

        def _work(view: TransactionView) -> int:
            count = write_locations(view, batch)
            log.info("saved_locations", count=count)
            return count

        return self._write("save_locations", _work)

    def save_event_dates(self, start: datetime, end: datetime) -> DeferredAction[list[str]]:
        def _work(view: TransactionView) -> list[str]:
            days = replace_event_dates(view, start, end)
            log.info("saved_event_dates", count=len(days))
            return days

        return self._write("save_event_dates", _work)

    def set_bookmark(self, session_id: int, bookmarked: bool) -> DeferredAction[None]:
        operation = "set_bookmark"

        async def _run() -> None:
            await self._tx.run(operation, lambda view: write_bookmark(view, session_id, bookmarked))
            log.info("bookmark_set", session_id=session_id, bookmarked=bookmarked)
            # Only after the commit; a rolled-back toggle is never announced.
            self._notifier.post(BookmarkChanged(session_id=session_id, bookmarked=bookmarked))

        return DeferredAction(operation, _run, worker=self._worker)

    async def compact_database(self) -> None:
        # New writes queue up behind the compaction instead of racing it.
        async with self._worker.pause():
            await self._store.compact()
        log.info("database_compacted")

    # --- event -------------------------------------------------------------------------

    async def get_event(self) -> Event | None:
        return await self._get(EventRepo, lambda r: r.get())

    def watch_event(self) -> LiveQuery[Event | None]:
        return self._watch("event", EventRepo, lambda r: r.get(), None)

    async def get_version_ids(self) -> Version | None:
        return await self._get(VersionRepo, lambda r: r.get())

    # --- tracks ------------------------------------------------------------------------

    async def get_tracks(self) -> list[Track]:
        return await self._get(TrackRepo, lambda r: r.list_sorted())

    def watch_tracks(self) -> LiveQuery[list[Track]]:
        return self._watch("tracks", TrackRepo, lambda r: r.list_sorted(), [])

    async def get_tracks_filtered(self, query: str) -> list[Track]:
        return await self._get(TrackRepo, lambda r: r.filtered(query))

    def watch_tracks_filtered(self, query: str) -> LiveQuery[list[Track]]:
        return self._watch("tracks_filtered", TrackRepo, lambda r: r.filtered(query), [])

    async def get_track(self, track_id: int) -> Track | None:
        return await self._get(TrackRepo, lambda r: r.get(track_id))

    def watch_track(self, track_id: int) -> LiveQuery[Track | None]:
        return self._watch("track", TrackRepo, lambda r: r.get(track_id), None)

    # --- sessions ----------------------------------------------------------------------

    async def get_session(self, session_id: int) -> Session | None:
        return await self._get(SessionRepo, lambda r: r.get(session_id))

    def watch_session(self, session_id: int) -> LiveQuery[Session | None]:
        return self._watch("session", SessionRepo, lambda r: r.get(session_id), None)

    async def get_session_by_title(self, title: str) -> Session | None:
        return await self._get(SessionRepo, lambda r: r.by_title(title))

    def watch_session_by_title(self, title: str) -> LiveQuery[Session | None]:
        return self._watch("session_by_title", SessionRepo, lambda r: r.by_title(title), None)

    async def get_sessions_filtered(self, track_id: int, query: str) -> list[Session]:
        return await self._get(SessionRepo, lambda r: r.filtered(track_id=track_id, query=query))

    def watch_sessions_filtered(self, track_id: int, query: str) -> LiveQuery[list[Session]]:
        return self._watch(
            "sessions_filtered",
            SessionRepo,
            lambda r: r.filtered(track_id=track_id, query=query),
            [],
        )

    async def get_sessions_by_location(self, location_name: str) -> list[Session]:
        return await self._get(SessionRepo, lambda r: r.by_location(location_name))

    def watch_sessions_by_location(self, location_name: str) -> LiveQuery[list[Session]]:
        return self._watch(
            "sessions_by_location", SessionRepo, lambda r: r.by_location(location_name), []
        )

    async def get_sessions_by_date(self, date: str, sort: str = "start_time") -> list[Session]:
        return await self._get(SessionRepo, lambda r: r.by_date(date, sort=sort))

    def watch_sessions_by_date(
        self, date: str, sort: str = "start_time"
    ) -> LiveQuery[list[Session]]:
        # Reject a bad sort field here rather than on the background refresh.
        sort_column(Session, sort)
        return self._watch(
            "sessions_by_date", SessionRepo, lambda r: r.by_date(date, sort=sort), []
        )

    async def get_sessions_by_date_filtered(
        self, date: str, query: str, sort: str = "start_time"
    ) -> list[Session]:
        return await self._get(SessionRepo, lambda r: r.by_date_filtered(date, query, sort=sort))

    def watch_sessions_by_date_filtered(
        self, date: str, query: str, sort: str = "start_time"
    ) -> LiveQuery[list[Session]]:
        sort_column(Session, sort)
        return self._watch(
            "sessions_by_date_filtered",
            SessionRepo,
            lambda r: r.by_date_filtered(date, query, sort=sort),
            [],
        )

    async def get_bookmarked_sessions(self) -> list[Session]:
        return await self._get(SessionRepo, lambda r: r.bookmarked())

    def watch_bookmarked_sessions(self) -> LiveQuery[list[Session]]:
        return self._watch("bookmarked_sessions", SessionRepo, lambda r: r.bookmarked(), [])

    # --- speakers ----------------------------------------------------------------------

    async def get_speaker_by_name(self, name: str) -> Speaker | None:
        return await self._get(SpeakerRepo, lambda r: r.by_name(name))

    def watch_speaker_by_name(self, name: str) -> LiveQuery[Speaker | None]:
        return self._watch("speaker_by_name", SpeakerRepo, lambda r: r.by_name(name), None)

    async def get_speakers(self, sort: str = "name") -> list[Speaker]:
        return await self._get(SpeakerRepo, lambda r: r.list_sorted(sort=sort))

    def watch_speakers(self, sort: str = "name") -> LiveQuery[list[Speaker]]:
        sort_column(Speaker, sort)
        return self._watch("speakers", SpeakerRepo, lambda r: r.list_sorted(sort=sort), [])

    async def get_speakers_filtered(self, query: str, sort: str = "name") -> list[Speaker]:
        return await self._get(SpeakerRepo, lambda r: r.filtered(query, sort=sort))

    def watch_speakers_filtered(self, query: str, sort: str = "name") -> LiveQuery[list[Speaker]]:
        sort_column(Speaker, sort)
        return self._watch(
            "speakers_filtered", SpeakerRepo, lambda r: r.filtered(query, sort=sort), []
        )

    # --- reference data ----------------------------------------------------------------

    async def get_sponsors(self) -> list[Sponsor]:
        return await self._get(SponsorRepo, lambda r: r.list_ranked())

    def watch_sponsors(self) -> LiveQuery[list[Sponsor]]:
        return self._watch("sponsors", SponsorRepo, lambda r: r.list_ranked(), [])

    async def get_locations(self) -> list[Microlocation]:
        return await self._get(LocationRepo, lambda r: r.list_sorted())

    def watch_locations(self) -> LiveQuery[list[Microlocation]]:
        return self._watch("locations", LocationRepo, lambda r: r.list_sorted(), [])

    async def get_event_dates(self) -> list[EventDates]:
        return await self._get(EventDatesRepo, lambda r: r.list_sorted())

    def watch_event_dates(self) -> LiveQuery[list[EventDates]]:
        return self._watch("event_dates", EventDatesRepo, lambda r: r.list_sorted(), [])


# --- Module Notes -----------------------------------------------------------
# Batches are copied when the action is created; later mutation of the caller's list does
# not change what gets written.
