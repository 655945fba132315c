"""
Logging factory with structured logging and scan data redaction.
"""

import logging
from typing import Optional

import structlog
from structlog.contextvars import merge_contextvars
from structlog.processors import (
    TimeStamper,
    add_log_level,
    CallsiteParameter,
    CallsiteParameterAdder,
    ExceptionPrettyPrinter,
    JSONRenderer,
    KeyValueRenderer,
    UnicodeDecoder,
)
from structlog.stdlib import (
    ProcessorFormatter,
    add_logger_name,
    BoundLogger,
)

from .sanitizers import ScanDataProcessor

SERVICE_NAME = "yara_session"


def get_logger(name: str) -> BoundLogger:
    """
    Get a structured logger bound to the package context.

    Args:
        name: Logger name (e.g., "engine.scanner", "infrastructure.native.library")

    Returns:
        Structured logger; events are rendered by whatever configure_logging set up
    """
    return structlog.get_logger(name, service=SERVICE_NAME)


def configure_logging(
    environment: Optional[str] = None,
    log_level: Optional[str] = None,
    json_logs: Optional[bool] = None,
    include_caller_info: bool = True,
) -> None:
    """
    Configure structured logging for the session layer.

    Arguments left as None are taken from the package configuration.

    Args:
        environment: Environment name (development, test, production)
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Whether to output JSON formatted logs
        include_caller_info: Include file, function, and line number
    """
    from yara_session.config import get_config

    config = get_config()
    environment = environment or config.environment.value
    log_level = log_level or config.log_level
    if json_logs is None:
        json_logs = config.json_logs

    shared_processors = [
        merge_contextvars,
        TimeStamper(fmt="ISO", utc=True),
        add_log_level,
        add_logger_name,
        # Raw scan buffers and rule sources never reach the output verbatim
        ScanDataProcessor(),
        UnicodeDecoder(),
    ]

    if include_caller_info and environment == "development":
        shared_processors.append(
            CallsiteParameterAdder(
                parameters=[
                    CallsiteParameter.FILENAME,
                    CallsiteParameter.FUNC_NAME,
                    CallsiteParameter.LINENO,
                ],
                additional_ignores=["structlog", "logging"],
            )
        )

    if environment == "development":
        shared_processors.append(ExceptionPrettyPrinter())

    if json_logs:
        renderer = JSONRenderer(sort_keys=True)
    else:
        renderer = KeyValueRenderer(key_order=["timestamp", "level", "event", "logger"])

    structlog.configure(
        processors=shared_processors + [ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(_get_log_level_int(log_level)),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Records from plain stdlib loggers get the same treatment as structlog events
    handler = logging.StreamHandler()
    handler.setFormatter(
        ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(_get_log_level_int(log_level))


def _get_log_level_int(level: str) -> int:
    """Convert string log level to integer; unknown names fall back to INFO."""
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO
