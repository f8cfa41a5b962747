"""
openevent_store.reconcile.merge

Merge reconciler for the relational kinds.

Incoming payloads carry fully populated nested copies (a track embeds its sessions, a
session embeds its speakers and track, a speaker embeds its sessions). Writing those copies
blindly would overwrite sibling relationships that are not part of the batch, e.g. a track
batch whose embedded sessions lack speakers would detach every speaker.

Rules, per nested reference of the entity being saved:
- a row with the same id is already stored (or staged earlier in this transaction):
  the stored instance is referenced as-is, the incoming copy's fields are ignored
- no such row: the incoming copy is inserted

Only one level is reconciled. A net-new child is inserted together with the grandchildren
it embeds; each grandchild goes through insert-or-update (remote wins on its fields) and
its own relationships are not walked. Session -> microlocation is always insert-or-update.
Track -> sessions only links the sessions it lists; sessions it omits keep their track.
Identity lookups over staged rows break the Track <-> Session <-> Speaker cycles.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeVar

from openevent_store.db.base import Base
from openevent_store.db.models import Microlocation, Session, Speaker, Track
from openevent_store.db.view import TransactionView
from openevent_store.observability.logging import get_logger
from openevent_store.schemas import Payload, SessionPayload, SpeakerPayload, TrackPayload

log = get_logger(__name__)

M = TypeVar("M", bound=Base)
P = TypeVar("P", bound=Payload)


def _unique(objs: Iterable[M]) -> list[M]:
    # The same child may be listed twice by the server; association rows must stay unique.
    seen: set[int] = set()
    out: list[M] = []
    for obj in objs:
        if id(obj) not in seen:
            seen.add(id(obj))
            out.append(obj)
    return out


def _canonical(
    view: TransactionView,
    model: type[M],
    payload: P,
    insert_new: Callable[[TransactionView, P], M],
) -> M:
    stored = view.lookup(model, payload.id)  # type: ignore[attr-defined]
    if stored is not None:
        return stored
    return insert_new(view, payload)


def _attach_sessions(track: Track, sessions: Iterable[Session]) -> None:
    # Track.sessions is the inverse of Session.track: link the listed sessions one by one,
    # never replace the collection, so stored sessions left out of the payload keep their track.
    for session in _unique(sessions):
        session.track = track


# --- insert path for children that are not stored yet --------------------------------


def _insert_session(view: TransactionView, payload: SessionPayload) -> Session:
    session = view.insert_or_update(Session, payload)
    if "speakers" in payload.model_fields_set:
        session.speakers = _unique(view.insert_or_update(Speaker, sp) for sp in payload.speakers)
    if payload.track is not None:
        session.track = view.insert_or_update(Track, payload.track)
    if payload.microlocation is not None:
        session.microlocation = view.insert_or_update(Microlocation, payload.microlocation)
    return session


def _insert_speaker(view: TransactionView, payload: SpeakerPayload) -> Speaker:
    speaker = view.insert_or_update(Speaker, payload)
    if "sessions" in payload.model_fields_set:
        speaker.sessions = _unique(view.insert_or_update(Session, s) for s in payload.sessions)
    return speaker


def _insert_track(view: TransactionView, payload: TrackPayload) -> Track:
    track = view.insert_or_update(Track, payload)
    if "sessions" in payload.model_fields_set:
        _attach_sessions(track, (view.insert_or_update(Session, s) for s in payload.sessions))
    return track


# --- reconcilers ---------------------------------------------------------------------


def reconcile_track(view: TransactionView, payload: TrackPayload) -> Track:
    sessions = [_canonical(view, Session, s, _insert_session) for s in payload.sessions]

    track = view.insert_or_update(Track, payload)
    if "sessions" in payload.model_fields_set:
        _attach_sessions(track, sessions)
    return track


def reconcile_session(view: TransactionView, payload: SessionPayload) -> Session:
    speakers = [_canonical(view, Speaker, sp, _insert_speaker) for sp in payload.speakers]
    track = (
        _canonical(view, Track, payload.track, _insert_track) if payload.track is not None else None
    )
    microlocation = (
        view.insert_or_update(Microlocation, payload.microlocation)
        if payload.microlocation is not None
        else None
    )

    # A stored bookmark survives: bookmarked is a sticky field, so an incoming False is
    # dropped by insert_or_update while an incoming True is applied.
    session = view.insert_or_update(Session, payload)
    if "speakers" in payload.model_fields_set:
        session.speakers = _unique(speakers)
    if track is not None:
        session.track = track
    if microlocation is not None:
        session.microlocation = microlocation
    return session


def reconcile_speaker(view: TransactionView, payload: SpeakerPayload) -> Speaker:
    sessions = [_canonical(view, Session, s, _insert_session) for s in payload.sessions]

    speaker = view.insert_or_update(Speaker, payload)
    if "sessions" in payload.model_fields_set:
        speaker.sessions = _unique(sessions)
    return speaker


# --- batches -------------------------------------------------------------------------
# Applied in the order given; the caller's transaction makes each batch atomic.


def merge_tracks(view: TransactionView, payloads: Iterable[TrackPayload]) -> int:
    count = 0
    for payload in payloads:
        reconcile_track(view, payload)
        count += 1
    log.debug("merged_tracks", count=count)
    return count


def merge_sessions(view: TransactionView, payloads: Iterable[SessionPayload]) -> int:
    count = 0
    for payload in payloads:
        reconcile_session(view, payload)
        count += 1
    log.debug("merged_sessions", count=count)
    return count


def merge_speakers(view: TransactionView, payloads: Iterable[SpeakerPayload]) -> int:
    count = 0
    for payload in payloads:
        reconcile_speaker(view, payload)
        count += 1
    log.debug("merged_speakers", count=count)
    return count
