"""
openevent_store.services.notifications

Signals the store emits to the host application.

Responsibilities:
- Define the `BookmarkChanged` event and the `Notifier` boundary it is posted through.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from openevent_store.observability.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class BookmarkChanged:
    session_id: int
    bookmarked: bool


class Notifier(Protocol):
    # Delivery (UI thread, event bus, ...) is the host's concern.
    def post(self, event: BookmarkChanged) -> None: ...


class NullNotifier:
    def post(self, event: BookmarkChanged) -> None:
        log.debug("notification_dropped", event=type(event).__name__)
