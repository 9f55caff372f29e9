"""
Structured JSON logging: timestamp, level, event_type, truncated wallet addresses.

structlog with ISO timestamps and consistent keys for aggregation. All service
modules use get_logger() and log a snake_case event_type plus keyword context.

Uses only Python stdlib logging and structlog; no backend_walletverify imports to avoid circular imports.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)

# JSON output for production (LOG_FORMAT=json); human-readable for local
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()

# Third-party loggers re-rendered by configure_stdlib_logging(). SQLAlchemy stays at
# WARNING so statements are never echoed with wallet data.
STDLIB_LOGGERS = {
    "uvicorn": LOG_LEVEL_VALUE,
    "uvicorn.error": LOG_LEVEL_VALUE,
    "uvicorn.access": LOG_LEVEL_VALUE,
    "sqlalchemy": logging.WARNING,
}


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Ensure timestamp is always present (ISO 8601)."""
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _normalize_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Rename structlog 'event' to event_type; keep message if present."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    if "message" not in event_dict and "event_type" in event_dict:
        event_dict["message"] = str(event_dict["event_type"])
    return event_dict


def _renderer() -> Any:
    if LOG_FORMAT == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_structlog() -> None:
    """Configure structlog once at import: JSON or console, timestamp, level, event_type."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _add_timestamp,
            _normalize_event,
            _renderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


def configure_stdlib_logging() -> None:
    """
    Send uvicorn and SQLAlchemy records through the same renderer as our own events,
    so server access lines and driver warnings come out as event_type records too.
    """
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.format_exc_info,
            _add_timestamp,
            _normalize_event,
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(),
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    for name, level in STDLIB_LOGGERS.items():
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [handler]
        stdlib_logger.setLevel(level)
        stdlib_logger.propagate = False


if not structlog.is_configured():
    configure_structlog()
    configure_stdlib_logging()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

        logger = get_logger(__name__)
        logger.info("wallet_registered", wallet=short_address(addr), created=True)

    Output (JSON): {"event_type": "wallet_registered", "wallet": "0xab12cd34...", "created": true,
    "timestamp": "...", "level": "info", "logger": "module.name"}
    """
    return structlog.get_logger(name).bind(logger=name)


def short_address(address: str | None) -> str:
    """Truncate an address for log lines."""
    address = address or ""
    return address[:10] + "..." if len(address) > 10 else address
