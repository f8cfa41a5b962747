"""
openevent_store.services.deferred

Cold, start-once write actions and the worker that runs them.

Responsibilities:
- `DeferredAction`: describe a write without running it; nothing happens until the
  caller starts it, subscribes to it or awaits it.
- `WriteWorker`: run started actions as asyncio tasks off the caller's path, with bounded
  concurrency, and let shutdown wait for in-flight writes.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
from collections.abc import AsyncIterator, Awaitable, Callable, Generator
from typing import Any, Generic, TypeVar

from openevent_store.observability.context import bind_operation
from openevent_store.observability.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class ActionState(enum.StrEnum):
    pending = "pending"
    running = "running"
    succeeded = "succeeded"
    failed = "failed"


class WriteWorker:
    def __init__(self, *, concurrency: int = 1) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._slots = asyncio.Semaphore(concurrency)
        self._tasks: set[asyncio.Task[Any]] = set()
        self._running: set[asyncio.Task[Any]] = set()
        self._open = asyncio.Event()
        self._open.set()
        self._pause_lock = asyncio.Lock()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    @property
    def paused(self) -> bool:
        return not self._open.is_set()

    def submit(self, name: str, fn: Callable[[], Awaitable[T]]) -> asyncio.Task[T]:
        async def _run() -> T:
            # Re-check after waking: a pause may have started before this task resumed.
            while not self._open.is_set():
                await self._open.wait()
            task = asyncio.current_task()
            self._running.add(task)
            try:
                async with self._slots:
                    with bind_operation(name):
                        log.debug("write_started")
                        return await fn()
            finally:
                self._running.discard(task)

        task = asyncio.get_running_loop().create_task(_run(), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every submitted write; failures stay with their actions."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @contextlib.asynccontextmanager
    async def pause(self) -> AsyncIterator[None]:
        """
        Hold back new writes and wait out the ones already running.
        Writes submitted meanwhile stay queued and start when the block exits.
        """

        async with self._pause_lock:
            self._open.clear()
            try:
                while self._running:
                    await asyncio.gather(*list(self._running), return_exceptions=True)
                log.debug("writes_paused")
                yield
            finally:
                self._open.set()


class DeferredAction(Generic[T]):
    """
    One write, started at most once.

    Terminal signal: exactly one of on_complete(result) / on_error(exc) per subscriber,
    or the result/exception of `await action`.
    """

    def __init__(
        self,
        name: str,
        work: Callable[[], Awaitable[T]],
        *,
        worker: WriteWorker,
    ) -> None:
        self._name = name
        self._work = work
        self._worker = worker
        self._task: asyncio.Task[T] | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> ActionState:
        task = self._task
        if task is None:
            return ActionState.pending
        if not task.done():
            return ActionState.running
        if task.cancelled() or task.exception() is not None:
            return ActionState.failed
        return ActionState.succeeded

    def start(self) -> asyncio.Task[T]:
        if self._task is None:
            self._task = self._worker.submit(self._name, self._work)
        return self._task

    def subscribe(
        self,
        on_complete: Callable[[T], None] | None = None,
        on_error: Callable[[BaseException], None] | None = None,
    ) -> asyncio.Task[T]:
        """Start the action (if needed) and deliver its terminal signal to the callbacks."""

        task = self.start()

        def _deliver(done: asyncio.Task[T]) -> None:
            if done.cancelled():
                exc: BaseException | None = asyncio.CancelledError()
            else:
                exc = done.exception()
            if exc is not None:
                if on_error is not None:
                    on_error(exc)
                else:
                    log.error("write_failed", operation=self._name, error=str(exc))
                return
            if on_complete is not None:
                on_complete(done.result())

        task.add_done_callback(_deliver)
        return task

    def __await__(self) -> Generator[Any, None, T]:
        return self.start().__await__()

    def __repr__(self) -> str:
        return f"<DeferredAction {self._name!r} {self.state}>"


# --- Module Notes -----------------------------------------------------------
# Started actions are not cancelled by this layer; shutdown drains them instead.
# The background worker is an asyncio task on the loop that created the façade, not a
# separate thread: the caller never waits on a write, but the reconciler's ORM work runs
# on that loop (inside `run_sync`) and SQLite I/O runs on aiosqlite's connection threads.
# `drain()` must not be called inside `pause()`; queued writes would never start.
