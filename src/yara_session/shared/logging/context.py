"""
Context management for structured logging.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, Optional

import structlog

_scan_id: ContextVar[Optional[str]] = ContextVar("scan_id", default=None)


def generate_scan_id() -> str:
    """Generate a unique scan ID."""
    return f"scan_{uuid.uuid4().hex[:12]}"


def get_scan_id() -> Optional[str]:
    """Get the current scan ID from context."""
    return _scan_id.get()


@contextmanager
def scan_context(scan_id: Optional[str] = None, **fields: Any) -> Iterator[str]:
    """
    Bind a scan ID (and extra fields) to every log event inside the block.

    Args:
        scan_id: Scan identifier; generated when not provided
        **fields: Additional context such as session_id or buffer size

    Yields:
        The scan ID in effect
    """
    current = scan_id or generate_scan_id()
    token = _scan_id.set(current)
    bound = structlog.contextvars.bind_contextvars(scan_id=current, **fields)
    try:
        yield current
    finally:
        structlog.contextvars.reset_contextvars(**bound)
        _scan_id.reset(token)

