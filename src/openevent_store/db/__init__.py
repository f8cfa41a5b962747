"""
openevent_store.db

Persistence package (SQLAlchemy asyncio over SQLite).

Responsibilities:
- Provide ORM models, engine/session setup, store handles and read repositories.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Nothing outside this package touches AsyncSession directly; everything goes through
# `StoreHandle` so confinement checks always apply.
