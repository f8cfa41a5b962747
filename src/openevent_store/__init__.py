"""
openevent_store

Local store for a conference-event client: cached event data, merge reconciliation of
fetched batches, deferred writes and live reads.

Responsibilities:
- Expose package version metadata.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"


# --- Module Notes -----------------------------------------------------------
# Entry point for callers is `openevent_store.app.open_repository`; nothing is imported
# here so that `import openevent_store` stays free of database setup.
