"""
openevent_store.db.init_db

Schema bootstrap.

Responsibilities:
- Create tables on first start-up of a device database.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from openevent_store.db import models  # noqa: F401  # ensure models are registered on Base.metadata
from openevent_store.db.base import Base


async def init_db(engine: AsyncEngine) -> None:
    """
    Idempotent: existing tables are left alone.
    There is no migration step; the cached dataset can always be re-fetched.
    """

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
