"""
openevent_store.observability

Observability package.

Responsibilities:
- Structured logging configuration and logger access.
- Operation-scoped logging context for background writes.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Metrics/tracing are out of scope; everything observable goes through structlog.
