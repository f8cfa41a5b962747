"""
openevent_store.schemas

Inbound payload models handed to the store by the fetch layer.

Responsibilities:
- Describe one fetched entity together with the nested copies it embeds.
- Keep track of which fields the producer actually supplied, so updates never blank out
  columns a sparse nested copy simply did not carry.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def supplied(self, columns: frozenset[str]) -> dict[str, Any]:
        """Fields the producer set explicitly, restricted to the given column names."""
        return {name: getattr(self, name) for name in self.model_fields_set & columns}


class EventPayload(Payload):
    name: str
    description: str | None = None
    location_name: str | None = None
    logo_url: str | None = Field(default=None, alias="logo")
    email: str | None = None
    timezone: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None


class MicrolocationPayload(Payload):
    id: int
    name: str
    floor: int | None = None
    latitude: float | None = None
    longitude: float | None = None


class SponsorPayload(Payload):
    id: int
    name: str
    level: int = 0
    sponsor_type: str | None = Field(default=None, alias="type")
    url: str | None = None
    logo_url: str | None = None


class TrackPayload(Payload):
    id: int
    name: str
    description: str | None = None
    color: str | None = None
    sessions: list[SessionPayload] = Field(default_factory=list)


class SessionPayload(Payload):
    id: int
    title: str
    subtitle: str | None = None
    short_abstract: str | None = None
    long_abstract: str | None = None
    level: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    start_date: str | None = None
    # Remote copies normally omit this; it is user-local.
    bookmarked: bool = False

    track: TrackPayload | None = None
    microlocation: MicrolocationPayload | None = None
    speakers: list[SpeakerPayload] = Field(default_factory=list)


class SpeakerPayload(Payload):
    id: int
    name: str
    position: str | None = None
    organisation: str | None = None
    short_biography: str | None = None
    photo_url: str | None = Field(default=None, alias="photo")
    email: str | None = None
    country: str | None = None
    sessions: list[SessionPayload] = Field(default_factory=list)


TrackPayload.model_rebuild()
SessionPayload.model_rebuild()
SpeakerPayload.model_rebuild()


# --- Module Notes -----------------------------------------------------------
# Aliases follow the event server's JSON keys where they differ from column names.
