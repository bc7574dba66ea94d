"""Process logging setup for the server.

Every module logs through a dotted stdlib logger (`gemini_mcp.dispatch`,
`gemini_mcp.retry`, `gemini_mcp.transport.http`, ...). `configure_logging`
attaches one handler to the `gemini_mcp` root logger:

- Always writes to stderr; stdout carries the stdio JSON-RPC stream
- "text": `timestamp [level] logger: message`
- "json": one orjson object per line for log aggregation

Quick Start:
    >>> from gemini_mcp.runtime.observability import configure_logging
    >>> configure_logging(get_settings().logging)
    >>> logging.getLogger("gemini_mcp.dispatch").info("[ask_gemini] Starting")
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING, TextIO

import orjson

if TYPE_CHECKING:
    from gemini_mcp.foundation.config import LoggingSettings

ROOT_LOGGER = "gemini_mcp"

_TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_HANDLER_NAME = "gemini_mcp.stderr"


class JsonFormatter(logging.Formatter):
    """JSON Lines output: timestamp, level, logger, event (+ exc_info)."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(data, default=str).decode()


def build_formatter(format: str) -> logging.Formatter:
    if format == "json":
        return JsonFormatter()
    if format == "text":
        return logging.Formatter(_TEXT_FORMAT)
    raise ValueError(f"Unknown format: {format}. Use 'text' or 'json'")


def configure_logging(settings: LoggingSettings, *, stream: TextIO | None = None) -> logging.Logger:
    """Install the stderr handler on the package logger. Idempotent.

    Args:
        settings: Level and format
        stream: Output stream (default: stderr)

    Returns:
        The configured `gemini_mcp` logger
    """
    root = logging.getLogger(ROOT_LOGGER)
    for handler in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(build_formatter(settings.format))
    root.addHandler(handler)
    root.setLevel(settings.level)
    root.propagate = False
    return root
