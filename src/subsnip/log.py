"""Logging setup on structlog.

One line per event, 3-letter levels, key=value context:
    12:30:45 INF live mode started source=screen:1 interval=1.5
    12:30:46 DBG tick complete ocr_ms=45 translate_ms=120
    12:30:47 WRN network OCR quota exceeded, using local OCR err="429 ..."
    12:30:48 ERR capture failed source=screen:2 err="Monitor 2 not found"

Recognized text can be long and multi-line, so string values are flattened
and clipped before rendering.
"""

import logging
import sys
from datetime import datetime
from typing import TextIO

import structlog

LEVEL_ABBREV = {
    "debug": "DBG",
    "info": "INF",
    "warning": "WRN",
    "error": "ERR",
    "critical": "CRT",
}

# Longest string value rendered before clipping
MAX_VALUE_CHARS = 120

# Keys whose values never reach the console
SECRET_KEYS = frozenset({"api_key", "key", "token"})


def _abbreviate_level(logger, method_name, event_dict):
    level = event_dict.get("level", method_name)
    event_dict["level"] = LEVEL_ABBREV.get(level, level.upper()[:3])
    return event_dict


def _add_clock(logger, method_name, event_dict):
    event_dict["timestamp"] = datetime.now().strftime("%H:%M:%S")
    return event_dict


def _mask_secrets(logger, method_name, event_dict):
    for key in SECRET_KEYS & event_dict.keys():
        event_dict[key] = "***"
    return event_dict


def _format_value(value) -> str:
    if not isinstance(value, str):
        return str(value)
    flat = value.replace("\r", " ").replace("\n", " | ")
    if len(flat) > MAX_VALUE_CHARS:
        flat = flat[: MAX_VALUE_CHARS - 3] + "..."
    if " " in flat or not flat:
        return f'"{flat}"'
    return flat


def _render_line(logger, method_name, event_dict):
    """Render as 'HH:MM:SS LVL event key=value ...'."""
    timestamp = event_dict.pop("timestamp", "")
    level = event_dict.pop("level", "???")
    event = event_dict.pop("event", "")

    pairs = " ".join(
        f"{key}={_format_value(value)}"
        for key, value in event_dict.items()
        if not key.startswith("_")
    )
    line = f"{timestamp} {level} {event}"
    return f"{line} {pairs}" if pairs else line


def configure(level: str = "INFO", debug: bool = False, stream: TextIO | None = None) -> None:
    """Configure structlog for console output.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        debug: Shortcut for level DEBUG.
        stream: Output stream, stdout by default.
    """
    if debug:
        level = "DEBUG"

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            _add_clock,
            _abbreviate_level,
            _mask_secrets,
            _render_line,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper(), logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=True,
    )

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger, optionally bound to a component name."""
    logger = structlog.get_logger()
    if name:
        return logger.bind(logger=name)
    return logger
