"""
openevent_store.db.repositories.queries

Shared query-building helpers.

Responsibilities:
- Case-insensitive "contains" filters with LIKE wildcards in the user's text escaped.
- Validate caller-supplied sort fields against the mapped columns.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import inspect
from sqlalchemy.orm import InstrumentedAttribute

from openevent_store.db.base import Base

LIKE_ESCAPE = "\\"


def escape_like(text: str) -> str:
    return (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def contains(column: InstrumentedAttribute[Any], query: str) -> Any:
    # ILIKE compiles to lower(x) LIKE lower(y) on SQLite.
    return column.ilike(f"%{escape_like(query)}%", escape=LIKE_ESCAPE)


def sort_column(model: type[Base], field: str) -> InstrumentedAttribute[Any]:
    """Ascending sort key for a named column; unknown names are a caller error."""
    if field not in inspect(model).column_attrs:
        raise ValueError(f"cannot sort {model.__name__} by unknown field {field!r}")
    return getattr(model, field)
