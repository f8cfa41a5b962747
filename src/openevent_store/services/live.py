"""
openevent_store.services.live

Live (observable) reads.

Responsibilities:
- Materialize a query off the caller's path on a dedicated reader handle.
- Re-run it whenever a committed write touched one of its tables.
- Deliver the first materialization and every refresh through the same listener channel.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from typing import Generic, TypeVar

from openevent_store.db.handles import StoreHandle
from openevent_store.db.store import StoreContext
from openevent_store.errors import StoreError
from openevent_store.observability.context import bind_operation
from openevent_store.observability.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class LiveQuery(Generic[T]):
    """
    A placeholder that fills itself in.

    `value` holds `initial` until the first load completes; after that it is always the
    latest materialization. The query never writes.
    """

    def __init__(
        self,
        store: StoreContext,
        *,
        name: str,
        loader: Callable[[StoreHandle], Awaitable[T]],
        tables: Iterable[str],
        initial: T,
    ) -> None:
        self._store = store
        self._name = name
        self._loader = loader
        self._tables = frozenset(tables)
        self._value = initial
        self._loaded = False
        self._error: BaseException | None = None
        self._listeners: list[Listener[T]] = []
        self._task: asyncio.Task[None] | None = None
        self._queue: asyncio.Queue[frozenset[str]] | None = None
        self._updated = asyncio.Event()
        self._generation = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def value(self) -> T:
        return self._value

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_listener(self, listener: Listener[T]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _remove

    def start(self) -> None:
        if self.running:
            return
        # Subscribe before the first read so a commit racing the initial load is not lost.
        self._queue = self._store.changes.subscribe()
        self._task = asyncio.get_running_loop().create_task(
            self._follow(self._queue), name=f"live:{self._name}"
        )

    async def close(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        # A task cancelled before its first step never reaches its own cleanup.
        if self._queue is not None:
            self._store.changes.unsubscribe(self._queue)
            self._queue = None
        # Wake waiters so they observe the stop.
        self._wake()

    def _wake(self) -> None:
        self._updated.set()
        self._updated = asyncio.Event()

    async def _follow(self, queue: asyncio.Queue[frozenset[str]]) -> None:
        try:
            await self._refresh()
            while True:
                tables = await queue.get()
                # Coalesce notifications that queued up during the previous refresh.
                while not queue.empty():
                    tables = tables | queue.get_nowait()
                if tables & self._tables:
                    await self._refresh()
        finally:
            self._store.changes.unsubscribe(queue)

    async def _refresh(self) -> None:
        with bind_operation("live_refresh", query=self._name):
            try:
                async with self._store.open_handle(name=f"live:{self._name}") as handle:
                    value = await self._loader(handle)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self._error = exc
                log.error("live_refresh_failed", error=repr(exc))
                self._wake()
                return

            self._value = value
            self._loaded = True
            self._error = None
            self._generation += 1
            for listener in list(self._listeners):
                try:
                    listener(value)
                except Exception as exc:
                    # Other listeners and later refreshes still run.
                    log.error("live_listener_failed", error=repr(exc))
            self._wake()

    async def wait_loaded(self) -> T:
        """
        First materialization. Raises the refresh error if loading failed, or
        `StoreError` if the query stopped before it ever loaded.
        """

        while not self._loaded:
            if self._error is not None:
                raise self._error
            if not self.running:
                raise StoreError(f"live query {self._name!r} stopped before its first load")
            await self._updated.wait()
        return self._value

    async def snapshots(self) -> AsyncIterator[T]:
        """Current value (once loaded), then every later refresh until `close()`."""
        seen = self._generation
        if self._loaded:
            yield self._value
        while self.running:
            await self._updated.wait()
            if not self.running:
                return
            # Failed refreshes wake waiters too; only new values are yielded.
            if self._generation != seen:
                seen = self._generation
                yield self._value

    def __repr__(self) -> str:
        state = "loaded" if self._loaded else "pending"
        return f"<LiveQuery {self._name!r} {state}>"


# --- Module Notes -----------------------------------------------------------
# A failed refresh keeps the previous value and records the error; the next relevant
# commit triggers another attempt. Listener failures are logged and skipped.
