"""
openevent_store.db.store

Process-wide store context with an explicit lifecycle.

Responsibilities:
- Own the engine, session factories, change feed and the default handle.
- Open dedicated handles (reader or writer) and track which context owns each one.
- Guarantee release of every handle it hands out.
- Compact the database file.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from openevent_store.db.changes import ChangeFeed
from openevent_store.db.handles import HandleOwner, StoreHandle
from openevent_store.db.init_db import init_db
from openevent_store.db.session import (
    create_engine,
    create_sessionmaker,
    no_transaction_options,
    writer_bind,
)
from openevent_store.errors import StoreBusyError, StoreNotInitializedError
from openevent_store.observability.logging import get_logger
from openevent_store.settings import StoreSettings

log = get_logger(__name__)

T = TypeVar("T")


class StoreContext:
    """
    Lifecycle:
    - `start()` once at start-up, from the context that will own the default handle
    - `close()` at shutdown; also available as `async with StoreContext(...)`
    """

    def __init__(self, settings: StoreSettings) -> None:
        self._settings = settings
        self._engine: AsyncEngine | None = None
        self._readers: async_sessionmaker[AsyncSession] | None = None
        self._writers: async_sessionmaker[AsyncSession] | None = None
        self._default: StoreHandle | None = None
        self._default_lock = asyncio.Lock()
        self._handles: dict[HandleOwner, list[StoreHandle]] = {}
        self._changes = ChangeFeed()
        # Cleared while maintenance holds the database file.
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def settings(self) -> StoreSettings:
        return self._settings

    @property
    def changes(self) -> ChangeFeed:
        return self._changes

    @property
    def started(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise StoreNotInitializedError("store context has not been started")
        return self._engine

    @property
    def default_handle(self) -> StoreHandle:
        if self._default is None:
            raise StoreNotInitializedError("store context has not been started")
        return self._default

    async def start(self) -> None:
        if self._engine is not None:
            return
        engine = create_engine(self._settings)
        await init_db(engine)
        self._engine = engine
        self._readers = create_sessionmaker(engine)
        self._writers = create_sessionmaker(writer_bind(engine))
        # The default handle is owned by whoever starts the store; it is never registered
        # as a secondary handle.
        self._default = StoreHandle(self._readers(), name="default", on_release=lambda _: None)
        log.info("store_started", database_url=self._settings.database_url)

    async def close(self) -> None:
        if self._engine is None:
            return
        leaked = self.open_handles()
        if leaked:
            # Secondary handles belong to other contexts; they cannot be closed from here.
            log.warning("store_closed_with_open_handles", handles=[h.name for h in leaked])
        if self._default is not None:
            await self._default.release()
            self._default = None
        await self._engine.dispose()
        self._engine = None
        self._readers = None
        self._writers = None
        log.info("store_closed")

    async def __aenter__(self) -> StoreContext:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @asynccontextmanager
    async def open_handle(self, *, name: str, write: bool = False) -> AsyncIterator[StoreHandle]:
        """
        A dedicated handle for one operation. Released on every exit path.
        """

        while not self._idle.is_set():
            await self._idle.wait()
        factory = self._writers if write else self._readers
        if factory is None:
            raise StoreNotInitializedError("store context has not been started")

        handle = StoreHandle(factory(), name=name, on_release=self._forget)
        self._handles.setdefault(handle.owner, []).append(handle)
        try:
            yield handle
        finally:
            await handle.release()

    def _forget(self, handle: StoreHandle) -> None:
        owned = self._handles.get(handle.owner)
        if owned is None:
            return
        if handle in owned:
            owned.remove(handle)
        if not owned:
            del self._handles[handle.owner]

    def open_handles(self) -> list[StoreHandle]:
        return [h for owned in self._handles.values() for h in owned]

    def handles_for_current_context(self) -> list[StoreHandle]:
        return list(self._handles.get(HandleOwner.current(), ()))

    async def read(self, loader: Callable[[StoreHandle], Awaitable[T]]) -> T:
        """
        Run a read on the default handle from the context that owns it.
        Readers are serialized; the handle is reset afterwards so returned objects are
        detached and no read transaction stays open.
        """

        handle = self.default_handle
        async with self._default_lock:
            try:
                return await loader(handle)
            finally:
                await handle.reset()

    async def compact(self) -> None:
        """
        Reclaim free pages in the database file.
        Every secondary handle must be released first; new ones wait until it finishes.
        """

        engine = self.engine
        async with self._default_lock:
            # No await between the check and closing the gate, so no handle can slip in.
            busy = self.open_handles()
            if busy:
                raise StoreBusyError(
                    f"cannot compact while {len(busy)} handle(s) are open: "
                    + ", ".join(h.name for h in busy)
                )
            self._idle.clear()
            try:
                await self.default_handle.reset()
                log.info("store_vacuum")
                async with engine.connect() as conn:
                    conn = await conn.execution_options(**no_transaction_options())
                    await conn.exec_driver_sql("VACUUM")
            finally:
                self._idle.set()


# --- Module Notes -----------------------------------------------------------
# Replaces a static "default instance + per-thread cache" pattern: the context is created
# by the composition root (`openevent_store.app`) and injected into the façade.
