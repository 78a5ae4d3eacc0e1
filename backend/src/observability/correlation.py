"""Correlation ID management for listing processing.

Every listing that flows through extraction and matching carries its
listing id in a context variable, so log lines emitted deep inside the
pipeline can be joined back to the listing they belong to.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

# Context variable for the correlation id (async-safe)
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def generate_correlation_id() -> str:
    """Generate a new unique correlation ID.

    Returns:
        str: UUID v4 correlation ID
    """
    return str(uuid.uuid4())


def get_correlation_id() -> str:
    """Get current correlation ID from context.

    Returns:
        str: Current correlation ID or "no-correlation-id" if not set
    """
    return correlation_id_var.get() or "no-correlation-id"


def set_correlation_id(correlation_id: str) -> None:
    """Set correlation ID in current context.

    Args:
        correlation_id: Correlation ID to set
    """
    correlation_id_var.set(correlation_id)


@contextmanager
def correlation_scope(correlation_id: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of a block.

    Args:
        correlation_id: ID to bind (a fresh one is generated when omitted)

    Yields:
        str: The bound correlation ID
    """
    value = correlation_id or generate_correlation_id()
    token = correlation_id_var.set(value)
    try:
        yield value
    finally:
        correlation_id_var.reset(token)
