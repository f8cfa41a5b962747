"""
openevent_store.services

Service-layer package.

Responsibilities:
- Own transaction boundaries and when writes run.
- Compose read repositories, the reconciler and live queries into the public façade.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services never hold a store handle longer than one operation, except the façade's
# reads through the default handle.
