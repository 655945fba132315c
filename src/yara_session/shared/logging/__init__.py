"""
Structured logging for the YARA-X session layer.

This module provides structured logging capabilities with:
- Redaction of scanned buffers and truncation of rule sources
- Per-scan context tracking
"""

from .factory import configure_logging, get_logger
from .sanitizers import sanitize_for_log, truncate
from .context import scan_context, get_scan_id, generate_scan_id

__all__ = [
    "configure_logging",
    "get_logger",
    "sanitize_for_log",
    "truncate",
    "scan_context",
    "get_scan_id",
    "generate_scan_id",
]
