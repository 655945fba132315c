"""
Sanitizers that keep scanned data and rule sources out of log output.
"""

import re
from typing import Any

from structlog.types import EventDict, WrappedLogger

# Fields that carry scanned content and are never logged
REDACTED_FIELDS = [
    r"^data$",
    r"buffer",
    r"payload",
    r"matched_data",
    r"secret",
    r"token",
    r"password",
]

# Fields that are logged, but only as a bounded preview
TRUNCATED_FIELDS = {"source", "rule_source", "native_error", "message"}

MAX_PREVIEW_CHARS = 120


class ScanDataProcessor:
    """
    Structlog processor that redacts scan buffers in log events.

    Binary values are replaced by their size, whatever the field name.
    """

    def __call__(
        self,
        logger: WrappedLogger,
        name: str,
        event_dict: EventDict,
    ) -> EventDict:
        """Process log event and redact scanned data."""
        return sanitize_for_log(event_dict)


def sanitize_for_log(data: dict[str, Any]) -> dict[str, Any]:
    """
    Sanitize a dictionary for logging.

    Args:
        data: Dictionary to sanitize

    Returns:
        Sanitized dictionary with redacted or truncated values
    """
    sanitized = {}

    for key, value in data.items():
        if isinstance(value, (bytes, bytearray, memoryview)):
            sanitized[key] = f"<{len(value)} bytes>"
        elif _is_redacted_field(key):
            sanitized[key] = "***REDACTED***"
        elif key in TRUNCATED_FIELDS and isinstance(value, str):
            sanitized[key] = truncate(value)
        elif isinstance(value, dict):
            sanitized[key] = sanitize_for_log(value)
        elif isinstance(value, list):
            sanitized[key] = [
                sanitize_for_log(item) if isinstance(item, dict) else item for item in value
            ]
        else:
            sanitized[key] = value

    return sanitized


def truncate(value: str, limit: int = MAX_PREVIEW_CHARS) -> str:
    """Shorten a string to ``limit`` characters, noting how much was cut."""
    if len(value) <= limit:
        return value
    return f"{value[:limit]}... ({len(value) - limit} more chars)"


def _is_redacted_field(field_name: str) -> bool:
    """Check if a field name indicates scanned content."""
    field_lower = field_name.lower()
    return any(re.search(pattern, field_lower) for pattern in REDACTED_FIELDS)
