"""
openevent_store.app

Composition root for the local store.

Responsibilities:
- Configure structured logging once, before the store starts.
- Start the store context and hand out the repository façade.
- Tear down in order: live queries, in-flight writes, then the store.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from openevent_store.db.store import StoreContext
from openevent_store.observability.logging import configure_logging, get_logger
from openevent_store.services.notifications import Notifier
from openevent_store.services.repository import DataRepository
from openevent_store.settings import StoreSettings, get_settings

log = get_logger(__name__)


@asynccontextmanager
async def open_repository(
    settings: StoreSettings | None = None,
    *,
    notifier: Notifier | None = None,
) -> AsyncIterator[DataRepository]:
    settings = settings or get_settings()
    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        json_logs=settings.log_json,
    )

    store = StoreContext(settings)
    await store.start()
    repo = DataRepository(store, notifier=notifier)
    log.info("startup", database_url=settings.database_url)
    try:
        yield repo
    finally:
        await repo.close()
        await store.close()
        log.info("shutdown")


# --- Module Notes -----------------------------------------------------------
# The default handle belongs to the task that enters `open_repository`; awaited reads must
# come from that same thread and event loop.
