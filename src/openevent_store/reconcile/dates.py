"""
openevent_store.reconcile.dates

Event date range materializer.

Responsibilities:
- Expand [start, end) into one ISO date per calendar day.
- Replace the stored EventDates set wholesale inside the caller's transaction.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta

from openevent_store.db.models import EventDates
from openevent_store.db.view import TransactionView


def event_days(start: datetime, end: datetime) -> Iterator[str]:
    """
    Days are stepped by wall-clock calendar day from `start`; `end` is exclusive.
    Aware datetimes keep their tzinfo, so DST changes do not shift the day boundary.
    """

    current = start
    while current < end:
        yield current.date().isoformat()
        current = current + timedelta(days=1)


def replace_event_dates(view: TransactionView, start: datetime, end: datetime) -> list[str]:
    view.clear(EventDates)
    days = list(event_days(start, end))
    for day in days:
        view.stage(EventDates(date=day), day)
    return days
