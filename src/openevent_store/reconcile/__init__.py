"""
openevent_store.reconcile

Write-side logic that runs inside one store transaction.

Responsibilities:
- Merge reconciliation of the relational kinds (tracks, sessions, speakers).
- Plain insert-or-update for flat kinds and the bookmark toggle.
- Event date range materialization.
"""

# Package marker; functions are imported directly from submodules.
