"""
openevent_store.observability.context

Operation-scoped logging context.

Responsibilities:
- Generate an id per store operation (deferred write, live refresh).
- Bind operation metadata into structlog contextvars for the duration of the operation.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog


@contextmanager
def bind_operation(operation: str, **fields: Any) -> Iterator[str]:
    """
    - Every operation gets a short id for log correlation
    - Bindings are reset on exit, so concurrent tasks never see each other's context
    """

    operation_id = uuid.uuid4().hex[:12]
    tokens = structlog.contextvars.bind_contextvars(
        operation=operation,
        operation_id=operation_id,
        **fields,
    )
    try:
        yield operation_id
    finally:
        structlog.contextvars.reset_contextvars(**tokens)


# --- Module Notes -----------------------------------------------------------
# asyncio tasks copy the context at creation; binding inside the task keeps the
# metadata local to that task.
