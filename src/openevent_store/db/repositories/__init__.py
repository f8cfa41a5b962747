"""
openevent_store.db.repositories

Read repositories.

Responsibilities:
- One query class per entity kind, constructed around a store handle.
- Each class declares the tables its queries read, for live-query refresh filtering.
"""

# Package marker; repositories are imported directly from submodules.


# --- Module Notes -----------------------------------------------------------
# Repositories only read. Every write goes through the transaction coordinator.
