"""
openevent_store.db.handles

Context-confined store handles.

Responsibilities:
- Wrap an AsyncSession so it can only be used from the thread + event loop that opened it.
- Refuse copying/pickling so a handle cannot be smuggled into another context.
- Expose the small set of primitives repositories and the transaction coordinator need.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

from openevent_store.db.session import take_changed
from openevent_store.errors import HandleConfinementError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class HandleOwner:
    # An execution context: one thread running one event loop.
    thread_id: int
    loop_id: int

    @classmethod
    def current(cls) -> HandleOwner:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            raise HandleConfinementError("store handles require a running event loop") from None
        return cls(thread_id=threading.get_ident(), loop_id=id(loop))


class StoreHandle:
    """
    Created only by `StoreContext`; used, then released, within one execution context.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        name: str,
        on_release: Callable[[StoreHandle], None],
    ) -> None:
        self._session = session
        self._name = name
        self._owner = HandleOwner.current()
        self._on_release = on_release
        self._released = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def owner(self) -> HandleOwner:
        return self._owner

    @property
    def released(self) -> bool:
        return self._released

    def _check(self) -> AsyncSession:
        if self._released:
            raise HandleConfinementError(f"store handle {self._name!r} was already released")
        try:
            current = HandleOwner.current()
        except HandleConfinementError:
            current = None
        if current != self._owner:
            raise HandleConfinementError(
                f"store handle {self._name!r} is owned by another execution context"
            )
        return self._session

    async def get(self, model: type[T], key: Any) -> T | None:
        return await self._check().get(model, key)

    async def scalars(self, stmt: Select[Any]) -> list[Any]:
        return list((await self._check().scalars(stmt)).all())

    async def first(self, stmt: Select[Any]) -> Any | None:
        return (await self._check().scalars(stmt.limit(1))).first()

    async def run_sync(self, fn: Callable[..., T], *args: Any) -> T:
        # fn receives the underlying ORM Session; lazy loads are allowed inside.
        return await self._check().run_sync(fn, *args)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        # Commit on normal exit, rollback on any exception.
        async with self._check().begin():
            yield

    def take_changed(self) -> frozenset[str]:
        return take_changed(self._check().sync_session)

    async def reset(self) -> None:
        # Ends any open transaction and detaches loaded objects without expiring them.
        await self._check().close()

    async def release(self) -> None:
        if self._released:
            return
        session = self._check()
        self._released = True
        try:
            await session.close()
        finally:
            self._on_release(self)

    def __copy__(self) -> StoreHandle:
        raise TypeError("store handles cannot be copied")

    def __deepcopy__(self, memo: dict[int, Any]) -> StoreHandle:
        raise TypeError("store handles cannot be copied")

    def __reduce__(self) -> Any:
        raise TypeError("store handles cannot be pickled")

    def __repr__(self) -> str:
        state = "released" if self._released else "open"
        return f"<StoreHandle {self._name!r} {state}>"


# --- Module Notes -----------------------------------------------------------
# Python cannot forbid sharing an object reference; confinement is enforced on every use
# instead, which turns cross-context use into an immediate, typed error.
