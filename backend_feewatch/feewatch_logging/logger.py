"""
Structured logging for the claim and risk pipelines.

Every record carries event_type (the snake_case event name), level, logger,
an ISO-8601 UTC timestamp and keyword context. Address-like fields
(wallet_id, signature, token) are shortened before rendering.

Output goes to stderr so CLI results on stdout stay machine-readable.
LOG_LEVEL (default INFO) and LOG_FORMAT (json | console) are read when
logging is configured; the CLI may reconfigure with explicit values.

No backend_feewatch imports here; every other module imports this one.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

ID_FIELDS = ("wallet_id", "signature", "token")
ID_PREFIX_LEN = 16

_configured = False


def short_id(value: str | None) -> str:
    """Truncate an address or signature for log fields."""
    value = value or ""
    return value[:ID_PREFIX_LEN] + "..." if len(value) > ID_PREFIX_LEN else value


def _shorten_ids(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in ID_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str):
            event_dict[key] = short_id(value)
    return event_dict


def _normalize_event(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog's 'event' becomes event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """(Re)configure structlog. Arguments override LOG_LEVEL / LOG_FORMAT."""
    global _configured
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    level_value = getattr(logging, level_name, logging.INFO)
    fmt = (fmt or os.getenv("LOG_FORMAT") or "json").strip().lower()

    renderer: Any
    if fmt == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    else:
        renderer = structlog.processors.JSONRenderer(default=str)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            structlog.processors.format_exc_info,
            _shorten_ids,
            _normalize_event,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
    _configured = True


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

        logger = get_logger(__name__)
        logger.info("claim_scan_finished", wallet_id=addr, total_claims=2)
    """
    if not _configured:
        configure_logging()
    return structlog.get_logger(name).bind(logger=name)


def bind_wallet(wallet_id: str) -> structlog.BoundLogger:
    """Logger with wallet_id bound for one pipeline run."""
    return get_logger("backend_feewatch").bind(wallet_id=wallet_id)
