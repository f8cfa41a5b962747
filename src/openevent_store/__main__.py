"""
openevent_store.__main__

Maintenance entrypoint: `python -m openevent_store`.

Responsibilities:
- Load settings.
- Create the schema if needed and compact the database file.
"""

from __future__ import annotations

import asyncio

from openevent_store.app import open_repository
from openevent_store.settings import get_settings


async def _compact() -> None:
    async with open_repository(get_settings()) as repo:
        await repo.compact_database()


def main() -> None:
    asyncio.run(_compact())


if __name__ == "__main__":
    main()
