"""
openevent_store.services.transactions

Transaction coordinator (transaction + handle owner for every write).

Responsibilities:
- Open a dedicated writer handle per call and release it on every exit path.
- Run the write inside one transaction: the batch commits as a whole or not at all.
- Turn any failure into a typed `TransactionError`.
- Publish the committed tables to the change feed.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.orm import Session as OrmSession

from openevent_store.db.store import StoreContext
from openevent_store.db.view import TransactionView
from openevent_store.errors import StoreError, TransactionError
from openevent_store.observability.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class TransactionCoordinator:
    def __init__(self, store: StoreContext) -> None:
        self._store = store

    async def run(self, operation: str, work: Callable[[TransactionView], T]) -> T:
        """
        `work` runs synchronously against the transaction's ORM session (via run_sync),
        so the reconciler can follow relationships without async plumbing.
        """

        def _apply(session: OrmSession) -> T:
            return work(TransactionView(session))

        async with self._store.open_handle(name=operation, write=True) as handle:
            try:
                async with handle.transaction():
                    result = await handle.run_sync(_apply)
            except StoreError as exc:
                log.warning("transaction_rolled_back", operation=operation, error=str(exc))
                raise
            except Exception as exc:
                log.warning("transaction_rolled_back", operation=operation, error=repr(exc))
                raise TransactionError(operation) from exc
            changed = handle.take_changed()

        # Handle is released before anyone is told about the commit.
        self._store.changes.publish(changed)
        log.info("transaction_committed", operation=operation, tables=sorted(changed))
        return result


# --- Module Notes -----------------------------------------------------------
# Atomicity itself comes from the store: the coordinator's job is scoping the handle and
# never letting a failed batch commit.
