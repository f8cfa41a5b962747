"""
openevent_store.db.changes

In-process change notifications.

Responsibilities:
- Fan out "these tables were committed" events to live queries.
"""

from __future__ import annotations

import asyncio


class ChangeFeed:
    """
    One queue per subscriber; publishing never blocks the writer.
    Subscribers filter by the table names they read from.
    """

    def __init__(self) -> None:
        self._subscribers: set[asyncio.Queue[frozenset[str]]] = set()

    def subscribe(self) -> asyncio.Queue[frozenset[str]]:
        queue: asyncio.Queue[frozenset[str]] = asyncio.Queue()
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[frozenset[str]]) -> None:
        self._subscribers.discard(queue)

    def publish(self, tables: frozenset[str]) -> None:
        if not tables:
            return
        for queue in list(self._subscribers):
            queue.put_nowait(tables)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
