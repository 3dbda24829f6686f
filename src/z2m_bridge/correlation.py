"""Correlation IDs for inbound MQTT messages.

The platform handles every bus message inside its own ``correlation_context``
so all log lines written while classifying, reconciling and applying that
message share one ID. ``main`` opens an outer context for the process
lifecycle.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

__all__ = [
    "correlation_context",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]

_current_id: ContextVar[str | None] = ContextVar("z2m_correlation_id", default=None)


def generate_correlation_id() -> str:
    return uuid.uuid4().hex


def get_correlation_id() -> str | None:
    return _current_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    """Replace the ID for the rest of the current context (no automatic restore)."""
    _ = _current_id.set(correlation_id)


@contextmanager
def correlation_context(correlation_id: str | None = None) -> Iterator[str]:
    """Run a block under ``correlation_id`` (a fresh one when omitted).

    The previous ID is back in place when the block exits, also on error.

    Example:
        with correlation_context() as corr_id:
            logger.info("%s handling message", lp)  # rendered with corr_id

    """
    active_id = correlation_id or generate_correlation_id()
    token = _current_id.set(active_id)
    try:
        yield active_id
    finally:
        _current_id.reset(token)
