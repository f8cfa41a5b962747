"""
openevent_store.errors

Typed failures raised by the store, the transaction boundary and the façade.

Responsibilities:
- Give callers one base class (`StoreError`) to catch.
- Carry structured context (operation, entity kind, key) instead of bare messages.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class StoreError(Exception):
    """Base class for every failure surfaced by this package."""


class StoreNotInitializedError(StoreError):
    """The store context was used before `start()` or after `close()`."""


class HandleConfinementError(StoreError):
    """A store handle was used outside the thread/event loop that opened it, or after release."""


class StoreBusyError(StoreError):
    """Maintenance was requested while secondary handles are still open."""


@dataclass(eq=False)
class TransactionError(StoreError):
    """
    A write transaction was rolled back.
    The original failure is chained as `__cause__`.
    """

    operation: str

    def __str__(self) -> str:
        cause = self.__cause__
        if cause is None:
            return f"transaction {self.operation!r} failed"
        return f"transaction {self.operation!r} failed: {cause}"


@dataclass(eq=False)
class EntityNotFoundError(StoreError):
    kind: str
    key: Any

    def __str__(self) -> str:
        return f"{self.kind} {self.key!r} not found"


# --- Module Notes -----------------------------------------------------------
# Lookups that miss during merge reconciliation are not errors; they mean "insert new".
