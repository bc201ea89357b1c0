"""Correlation ID propagation for request tracing."""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

CORRELATION_ID_HEADER = "X-Correlation-ID"

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def new_correlation_id() -> str:
    """Generate a new correlation ID."""
    return uuid.uuid4().hex


def get_correlation_id() -> str:
    """Return the correlation ID bound to the current context ("" if none)."""
    return _correlation_id.get()


@contextmanager
def correlation_scope(cid: str) -> Iterator[str]:
    """Bind *cid* for the duration of the block, restoring the previous value."""
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)
