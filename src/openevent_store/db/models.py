"""
openevent_store.db.models

Persistence schema for the cached conference dataset.

Responsibilities:
- Define ORM models for the entities fetched from the event server:
  - Event / Version: singleton metadata rows
  - Track, Session, Speaker: the relational core (cyclic graph)
  - Sponsor, Microlocation: flat reference data
  - EventDates: derived per-day rows
- Declare which fields are user-local and must survive remote overwrites.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from openevent_store.db.base import Base

# Fixed keys for singleton rows; callers never see them.
EVENT_KEY = 1
VERSION_KEY = 1


session_speakers = Table(
    "session_speakers",
    Base.metadata,
    Column("session_id", ForeignKey("sessions.id", ondelete="CASCADE"), primary_key=True),
    Column("speaker_id", ForeignKey("speakers.id", ondelete="CASCADE"), primary_key=True),
)


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False, default=EVENT_KEY)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    email: Mapped[str | None] = mapped_column(String(256), nullable=True)
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    start_time: Mapped[datetime | None] = mapped_column(nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(nullable=True)


class Version(Base):
    # Written by the fetch layer when it records which server versions are cached.
    __tablename__ = "versions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False, default=VERSION_KEY)
    event_ver: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tracks_ver: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sessions_ver: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    speakers_ver: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sponsors_ver: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    microlocations_ver: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Track(Base):
    __tablename__ = "tracks"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str | None] = mapped_column(String(16), nullable=True)

    sessions: Mapped[list[Session]] = relationship(
        back_populates="track",
        lazy="selectin",
        order_by="[Session.start_time, Session.id]",
    )


class Microlocation(Base):
    __tablename__ = "microlocations"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    floor: Mapped[int | None] = mapped_column(Integer, nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)


class Session(Base):
    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False, index=True)
    subtitle: Mapped[str | None] = mapped_column(String(512), nullable=True)
    short_abstract: Mapped[str | None] = mapped_column(Text, nullable=True)
    long_abstract: Mapped[str | None] = mapped_column(Text, nullable=True)
    level: Mapped[str | None] = mapped_column(String(64), nullable=True)
    start_time: Mapped[datetime | None] = mapped_column(nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(nullable=True)
    # ISO day (YYYY-MM-DD) the session starts on; matches EventDates.date.
    start_date: Mapped[str | None] = mapped_column(String(10), nullable=True, index=True)

    # User-local: set only through the bookmark operation, sticky under remote overwrite.
    bookmarked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    track_id: Mapped[int | None] = mapped_column(ForeignKey("tracks.id"), nullable=True, index=True)
    microlocation_id: Mapped[int | None] = mapped_column(
        ForeignKey("microlocations.id"), nullable=True, index=True
    )

    track: Mapped[Track | None] = relationship(back_populates="sessions", lazy="selectin")
    microlocation: Mapped[Microlocation | None] = relationship(lazy="selectin")
    speakers: Mapped[list[Speaker]] = relationship(
        secondary=session_speakers,
        back_populates="sessions",
        lazy="selectin",
        order_by="Speaker.name",
    )


class Speaker(Base):
    __tablename__ = "speakers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    position: Mapped[str | None] = mapped_column(String(256), nullable=True)
    organisation: Mapped[str | None] = mapped_column(String(256), nullable=True)
    short_biography: Mapped[str | None] = mapped_column(Text, nullable=True)
    photo_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    email: Mapped[str | None] = mapped_column(String(256), nullable=True)
    country: Mapped[str | None] = mapped_column(String(128), nullable=True)

    sessions: Mapped[list[Session]] = relationship(
        secondary=session_speakers,
        back_populates="speakers",
        lazy="selectin",
        order_by="[Session.start_time, Session.id]",
    )


class Sponsor(Base):
    __tablename__ = "sponsors"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    # Higher level = more prominent placement.
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sponsor_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)


class EventDates(Base):
    __tablename__ = "event_dates"

    date: Mapped[str] = mapped_column(String(10), primary_key=True)


# Fields that a remote overwrite may set but never clear.
STICKY_FIELDS: dict[type[Base], tuple[str, ...]] = {Session: ("bookmarked",)}


# --- Module Notes -----------------------------------------------------------
# Ids come from the event server, hence autoincrement=False everywhere.
# Every relationship is selectin-loaded so objects returned from a released handle still
# carry their first-level graph; deeper cycles stop where the loader revisits a mapper.
