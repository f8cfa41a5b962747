"""
openevent_store.db.session

Async SQLAlchemy engine + session factory helpers.

Responsibilities:
- Create the async engine from settings, tuned for an on-device SQLite file.
- Take over SQLite transaction control so reads and writes share one real transaction.
- Create the async sessionmaker whose sessions record which tables they changed.
"""

from __future__ import annotations

from itertools import chain
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Session as OrmSession

from openevent_store.settings import StoreSettings

# session.info key holding the set of table names written in the current transaction.
CHANGED_TABLES = "changed_tables"

# Execution option selecting the SQLite BEGIN flavour for a connection.
BEGIN_MODE = "sqlite_begin_mode"


class StoreSession(OrmSession):
    """ORM session class used behind every AsyncSession of the store."""


@event.listens_for(StoreSession, "after_flush")
def _record_changed_tables(session: OrmSession, _flush_context: Any) -> None:
    # new/dirty/deleted still describe the pre-flush state inside after_flush.
    changed = session.info.setdefault(CHANGED_TABLES, set())
    for obj in chain(session.new, session.dirty, session.deleted):
        changed.add(obj.__table__.name)


@event.listens_for(StoreSession, "after_soft_rollback")
def _forget_changed_tables(session: OrmSession, _previous_transaction: Any) -> None:
    session.info.pop(CHANGED_TABLES, None)


def mark_changed(session: OrmSession, table_name: str) -> None:
    # Bulk statements bypass the flush; callers record them explicitly.
    session.info.setdefault(CHANGED_TABLES, set()).add(table_name)


def take_changed(session: OrmSession) -> frozenset[str]:
    return frozenset(session.info.pop(CHANGED_TABLES, ()))


def create_engine(settings: StoreSettings) -> AsyncEngine:
    url = make_url(settings.database_url)
    connect_args: dict[str, Any] = {}
    if url.get_backend_name() == "sqlite":
        connect_args["timeout"] = settings.busy_timeout

    engine = create_async_engine(
        url,
        echo=settings.echo_sql,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    if url.get_backend_name() == "sqlite":
        _install_sqlite_transaction_control(engine)
    return engine


def _install_sqlite_transaction_control(engine: AsyncEngine) -> None:
    """
    The sqlite3 driver delays BEGIN until the first DML statement, which would leave the
    merge lookups outside the write transaction. Disable that and emit BEGIN ourselves.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        # WAL keeps readers (live queries) from blocking the background writer.
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Connection) -> None:
        mode = conn.get_execution_options().get(BEGIN_MODE, "DEFERRED")
        if mode is None:
            # Statements that must run outside a transaction (VACUUM).
            return
        conn.exec_driver_sql(f"BEGIN {mode}")


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: objects handed to callers outlive the handle that loaded them.
    # autoflush=False: the merge reconciler decides when pending rows become visible.
    return async_sessionmaker(
        bind=engine,
        sync_session_class=StoreSession,
        expire_on_commit=False,
        autoflush=False,
    )


def writer_bind(engine: AsyncEngine) -> AsyncEngine:
    # Writers take the RESERVED lock up front so concurrent batches queue on the busy
    # timeout instead of failing on lock upgrade.
    return engine.execution_options(**{BEGIN_MODE: "IMMEDIATE"})


def no_transaction_options() -> dict[str, Any]:
    return {BEGIN_MODE: None}


# --- Module Notes -----------------------------------------------------------
# The BEGIN handling follows SQLAlchemy's documented recipe for pysqlite/aiosqlite
# serializable transactions.
