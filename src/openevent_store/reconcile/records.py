"""
openevent_store.reconcile.records

Writes for kinds without nested relationships, plus the bookmark toggle.

Responsibilities:
- Insert-or-update the singleton event row, sponsors and microlocations.
- Apply the explicit bookmark change, the only write allowed to clear a bookmark.
"""

from __future__ import annotations

from collections.abc import Iterable

from openevent_store.db.models import EVENT_KEY, Event, Microlocation, Session, Sponsor
from openevent_store.db.view import TransactionView
from openevent_store.errors import EntityNotFoundError
from openevent_store.schemas import EventPayload, MicrolocationPayload, SponsorPayload


def write_event(view: TransactionView, payload: EventPayload) -> Event:
    return view.insert_or_update(Event, payload, key=EVENT_KEY)


def write_sponsors(view: TransactionView, payloads: Iterable[SponsorPayload]) -> int:
    count = 0
    for payload in payloads:
        view.insert_or_update(Sponsor, payload)
        count += 1
    return count


def write_locations(view: TransactionView, payloads: Iterable[MicrolocationPayload]) -> int:
    count = 0
    for payload in payloads:
        view.insert_or_update(Microlocation, payload)
        count += 1
    return count


def write_bookmark(view: TransactionView, session_id: int, bookmarked: bool) -> Session:
    session = view.lookup(Session, session_id)
    if session is None:
        raise EntityNotFoundError(kind="session", key=session_id)
    # Direct assignment: this path is exempt from the sticky-field rule.
    session.bookmarked = bookmarked
    return session
