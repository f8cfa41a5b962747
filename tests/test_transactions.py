"""
tests.test_transactions

Transaction scoping and deferred write actions.

Responsibilities:
- A failing batch leaves no trace and reports one typed failure.
- Every write releases its dedicated handle on success and on failure.
- Deferred actions are cold and start at most once.
"""

from __future__ import annotations

import asyncio

import pytest

from openevent_store.errors import TransactionError
from openevent_store.reconcile import merge
from openevent_store.schemas import SessionPayload, SponsorPayload, TrackPayload
from openevent_store.services.deferred import ActionState
from openevent_store.services.repository import DataRepository


def _sessions(count: int) -> list[SessionPayload]:
    return [SessionPayload(id=i, title=f"Session {i}") for i in range(1, count + 1)]


@pytest.mark.asyncio
async def test_failed_batch_is_rolled_back_entirely(
    repo: DataRepository, monkeypatch: pytest.MonkeyPatch
) -> None:
    original = merge.reconcile_session
    calls = {"n": 0}

    def failing_on_third(view, payload):
        calls["n"] += 1
        if calls["n"] == 3:
            raise RuntimeError("disk full")
        return original(view, payload)

    monkeypatch.setattr(merge, "reconcile_session", failing_on_third)

    with pytest.raises(TransactionError) as exc_info:
        await repo.save_sessions(_sessions(5))

    assert exc_info.value.operation == "save_sessions"
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    for session_id in range(1, 6):
        assert await repo.get_session(session_id) is None
    assert repo.store.open_handles() == []


@pytest.mark.asyncio
async def test_failed_batch_keeps_previous_state(
    repo: DataRepository, monkeypatch: pytest.MonkeyPatch
) -> None:
    await repo.save_sessions([SessionPayload(id=1, title="Original")])

    def always_fail(view, payload):
        raise ValueError("bad payload")

    monkeypatch.setattr(merge, "reconcile_session", always_fail)
    with pytest.raises(TransactionError):
        await repo.save_sessions([SessionPayload(id=1, title="Changed")])

    session = await repo.get_session(1)
    assert session is not None and session.title == "Original"


@pytest.mark.asyncio
async def test_handles_released_after_success(repo: DataRepository) -> None:
    count = await repo.save_tracks([TrackPayload(id=1, name="Web"), TrackPayload(id=2, name="AI")])

    assert count == 2
    assert repo.store.open_handles() == []


@pytest.mark.asyncio
async def test_unstarted_action_never_runs(repo: DataRepository) -> None:
    action = repo.save_tracks([TrackPayload(id=1, name="Web")])

    await asyncio.sleep(0.05)

    assert action.state is ActionState.pending
    assert repo.worker.pending == 0
    assert await repo.get_tracks() == []


@pytest.mark.asyncio
async def test_batch_is_copied_when_action_is_created(repo: DataRepository) -> None:
    batch = [TrackPayload(id=1, name="Web")]
    action = repo.save_tracks(batch)
    batch.append(TrackPayload(id=2, name="AI"))

    assert await action == 1
    assert [t.id for t in await repo.get_tracks()] == [1]


@pytest.mark.asyncio
async def test_start_is_idempotent(repo: DataRepository) -> None:
    action = repo.save_sponsors([SponsorPayload(id=1, name="Acme", level=1)])

    first = action.start()
    second = action.start()

    assert first is second
    assert await action == 1
    assert action.state is ActionState.succeeded


@pytest.mark.asyncio
async def test_subscribe_delivers_single_terminal_signal(
    repo: DataRepository, monkeypatch: pytest.MonkeyPatch
) -> None:
    results: list[int] = []
    errors: list[BaseException] = []

    task = repo.save_tracks([TrackPayload(id=1, name="Web")]).subscribe(
        results.append, errors.append
    )
    await task
    await asyncio.sleep(0)
    assert results == [1]
    assert errors == []

    def always_fail(view, payload):
        raise RuntimeError("boom")

    monkeypatch.setattr(merge, "reconcile_session", always_fail)
    failing = repo.save_sessions(_sessions(1))
    task = failing.subscribe(results.append, errors.append)
    with pytest.raises(TransactionError):
        await task
    await asyncio.sleep(0)

    assert results == [1]
    assert len(errors) == 1 and isinstance(errors[0], TransactionError)
    assert failing.state is ActionState.failed
    assert repo.store.open_handles() == []


@pytest.mark.asyncio
async def test_concurrent_writes_both_commit(repo: DataRepository) -> None:
    tracks = repo.save_tracks([TrackPayload(id=i, name=f"Track {i}") for i in range(1, 21)])
    sessions = repo.save_sessions(_sessions(20))

    assert await asyncio.gather(tracks, sessions) == [20, 20]
    assert len(await repo.get_tracks()) == 20
    assert repo.store.open_handles() == []


@pytest.mark.asyncio
async def test_writes_submitted_while_paused_wait_for_resume(repo: DataRepository) -> None:
    async with repo.worker.pause():
        assert repo.worker.paused
        action = repo.save_tracks([TrackPayload(id=1, name="Web")])
        action.start()
        await asyncio.sleep(0.05)

        assert action.state is ActionState.running
        assert await repo.get_tracks() == []

    assert not repo.worker.paused
    assert await action == 1
    assert [t.name for t in await repo.get_tracks()] == ["Web"]


@pytest.mark.asyncio
async def test_write_started_during_compaction_runs_after_it(repo: DataRepository) -> None:
    await repo.save_tracks([TrackPayload(id=1, name="Web")])

    compaction = asyncio.create_task(repo.compact_database())
    await asyncio.sleep(0)
    write = repo.save_tracks([TrackPayload(id=2, name="AI")])

    await asyncio.gather(compaction, write)

    assert [t.name for t in await repo.get_tracks()] == ["AI", "Web"]
    assert repo.store.open_handles() == []
