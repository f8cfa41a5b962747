"""
tests.test_queries

Read surface: filters, sort orders and exact lookups.
"""

from __future__ import annotations

from datetime import datetime

import pytest

from openevent_store.db.repositories.queries import escape_like
from openevent_store.schemas import (
    MicrolocationPayload,
    SessionPayload,
    SpeakerPayload,
    SponsorPayload,
    TrackPayload,
)
from openevent_store.services.repository import DataRepository


def test_escape_like_escapes_wildcards() -> None:
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"


@pytest.mark.asyncio
async def test_track_filter_is_case_insensitive_contains(repo: DataRepository) -> None:
    await repo.save_tracks([TrackPayload(id=1, name="XabcY"), TrackPayload(id=2, name="xyz")])

    assert [t.name for t in await repo.get_tracks_filtered("abc")] == ["XabcY"]
    assert [t.name for t in await repo.get_tracks_filtered("ABC")] == ["XabcY"]
    assert await repo.get_tracks_filtered("%") == []
    assert [t.name for t in await repo.get_tracks()] == ["XabcY", "xyz"]


@pytest.mark.asyncio
async def test_sponsors_sorted_by_level_then_name(repo: DataRepository) -> None:
    await repo.save_sponsors(
        [
            SponsorPayload(id=1, name="Acme", level=1),
            SponsorPayload(id=2, name="Zeta", level=3),
            SponsorPayload(id=3, name="Beta", level=3),
            SponsorPayload(id=4, name="Gamma", level=2),
        ]
    )

    assert [s.name for s in await repo.get_sponsors()] == ["Beta", "Zeta", "Gamma", "Acme"]


@pytest.mark.asyncio
async def test_sessions_by_date_sorted_and_filtered(repo: DataRepository) -> None:
    await repo.save_sessions(
        [
            SessionPayload(
                id=1,
                title="Late Talk",
                start_date="2024-03-01",
                start_time=datetime(2024, 3, 1, 16, 0),
            ),
            SessionPayload(
                id=2,
                title="Early Talk",
                start_date="2024-03-01",
                start_time=datetime(2024, 3, 1, 9, 0),
            ),
            SessionPayload(id=3, title="Other Day", start_date="2024-03-02"),
        ]
    )

    by_time = await repo.get_sessions_by_date("2024-03-01")
    assert [s.id for s in by_time] == [2, 1]

    by_title = await repo.get_sessions_by_date("2024-03-01", sort="title")
    assert [s.title for s in by_title] == ["Early Talk", "Late Talk"]

    filtered = await repo.get_sessions_by_date_filtered("2024-03-01", "late")
    assert [s.id for s in filtered] == [1]


@pytest.mark.asyncio
async def test_unknown_sort_field_is_rejected(repo: DataRepository) -> None:
    with pytest.raises(ValueError):
        await repo.get_sessions_by_date("2024-03-01", sort="popularity")
    with pytest.raises(ValueError):
        repo.watch_speakers(sort="speakers")

    # The default handle is still usable after a failed read.
    assert await repo.get_speakers() == []


@pytest.mark.asyncio
async def test_sessions_filtered_by_track_and_title(repo: DataRepository) -> None:
    await repo.save_tracks(
        [
            TrackPayload(
                id=1,
                name="Web",
                sessions=[
                    SessionPayload(id=1, title="Intro to CSS"),
                    SessionPayload(id=2, title="Advanced css"),
                    SessionPayload(id=3, title="HTTP/3"),
                ],
            ),
            TrackPayload(id=2, name="Design", sessions=[SessionPayload(id=4, title="CSS art")]),
        ]
    )

    matches = await repo.get_sessions_filtered(1, "css")
    assert sorted(s.id for s in matches) == [1, 2]


@pytest.mark.asyncio
async def test_sessions_by_location_and_title(repo: DataRepository) -> None:
    hall = MicrolocationPayload(id=1, name="Hall A", floor=0)
    await repo.save_sessions(
        [
            SessionPayload(id=1, title="Opening", microlocation=hall),
            SessionPayload(id=2, title="Closing", microlocation=hall),
            SessionPayload(
                id=3, title="Workshop", microlocation=MicrolocationPayload(id=2, name="Lab")
            ),
        ]
    )

    assert [s.id for s in await repo.get_sessions_by_location("Hall A")] == [1, 2]
    by_title = await repo.get_session_by_title("Workshop")
    assert by_title is not None and by_title.id == 3
    assert await repo.get_session_by_title("workshop") is None
    assert [loc.name for loc in await repo.get_locations()] == ["Hall A", "Lab"]


@pytest.mark.asyncio
async def test_speakers_sorted_and_filtered(repo: DataRepository) -> None:
    await repo.save_speakers(
        [
            SpeakerPayload(id=1, name="Carol", country="NZ"),
            SpeakerPayload(id=2, name="alice", country="DE"),
            SpeakerPayload(id=3, name="Bob", country="AR"),
        ]
    )

    assert [s.name for s in await repo.get_speakers(sort="country")] == ["Bob", "alice", "Carol"]
    assert [s.name for s in await repo.get_speakers_filtered("AL")] == ["alice"]
    assert (await repo.get_speaker_by_name("Bob")) is not None


@pytest.mark.asyncio
async def test_missing_singletons_read_as_none(repo: DataRepository) -> None:
    assert await repo.get_event() is None
    assert await repo.get_version_ids() is None
    assert await repo.get_track(1) is None
