"""
openevent_store.db.base

SQLAlchemy declarative base.

Responsibilities:
- Provide a shared DeclarativeBase for all entity models.
- Name constraints deterministically so SQLite files stay comparable across builds.
"""

from __future__ import annotations

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


# --- Module Notes -----------------------------------------------------------
# All entity models inherit from `Base` so `init_db` discovers them through Base.metadata.
