"""
openevent_store.db.view

Synchronous view of one write transaction, used by the merge reconciler.

Responsibilities:
- Identity lookup that also sees rows staged earlier in the same transaction.
- The insert-or-update primitive (scalar columns only, sticky fields respected).
- Bulk clearing of a table with change tracking.
"""

from __future__ import annotations

from typing import Any, TypeVar

from sqlalchemy import delete, inspect
from sqlalchemy.orm import Session as OrmSession

from openevent_store.db.base import Base
from openevent_store.db.models import STICKY_FIELDS
from openevent_store.db.session import mark_changed
from openevent_store.schemas import Payload

M = TypeVar("M", bound=Base)


def column_names(model: type[Base]) -> frozenset[str]:
    # Plain data columns: no primary key, no foreign keys (those follow relationships).
    mapper = inspect(model)
    return frozenset(
        attr.key
        for attr in mapper.column_attrs
        if not any(col.primary_key or col.foreign_keys for col in attr.columns)
    )


class TransactionView:
    """
    Wraps the ORM session of a running transaction (inside `AsyncSession.run_sync`).
    autoflush is off, so pending objects are tracked here until the commit flushes them.
    """

    def __init__(self, session: OrmSession) -> None:
        self._session = session
        self._staged: dict[tuple[type[Base], Any], Base] = {}

    @property
    def session(self) -> OrmSession:
        return self._session

    def lookup(self, model: type[M], key: Any) -> M | None:
        staged = self._staged.get((model, key))
        if staged is not None:
            return staged  # type: ignore[return-value]
        return self._session.get(model, key)

    def stage(self, obj: M, key: Any) -> M:
        self._session.add(obj)
        self._staged[(type(obj), key)] = obj
        return obj

    def insert_or_update(self, model: type[M], payload: Payload, *, key: Any = None) -> M:
        """
        Write the payload's supplied scalar fields to the row with this identity.
        Remote values win, except that sticky fields are never cleared.
        """

        key = payload.id if key is None else key  # type: ignore[attr-defined]
        values = payload.supplied(column_names(model))
        for name in STICKY_FIELDS.get(model, ()):
            if not values.get(name):
                values.pop(name, None)

        obj = self.lookup(model, key)
        if obj is None:
            obj = model(**values)
            pk = inspect(model).primary_key[0].key
            setattr(obj, pk, key)
            return self.stage(obj, key)

        for name, value in values.items():
            setattr(obj, name, value)
        return obj

    def clear(self, model: type[Base]) -> None:
        self._session.execute(delete(model))
        self._staged = {k: v for k, v in self._staged.items() if k[0] is not model}
        mark_changed(self._session, model.__table__.name)
