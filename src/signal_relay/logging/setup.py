"""Structured logging setup with structlog."""

from __future__ import annotations

import logging
import sys
import time
from collections import deque
from collections.abc import Callable
from typing import Any

import structlog

_PLAIN_TYPES = (str, int, float, bool, type(None))


class LogBuffer:
    """Ring buffer of recent log entries, replayed to observers on connect.

    Installed as a structlog processor: every event that passes through is
    copied (values coerced to JSON-safe scalars) and the event dict is
    returned untouched. Sinks added with ``add_sink`` receive each new entry as it is captured.
    """

    def __init__(self, max_entries: int = 1000, retention_s: float = 1800.0) -> None:
        self._entries: deque[tuple[float, dict[str, Any]]] = deque(maxlen=max_entries)
        self._retention_s = retention_s
        self._sinks: list[Callable[[dict[str, Any]], None]] = []

    def __call__(self, logger: Any, method_name: str, event_dict: dict) -> dict:
        # stdlib filters by level after the processor chain runs
        levelno = logging.ERROR if method_name == "exception" else getattr(
            logging, method_name.upper(), logging.INFO,
        )
        if isinstance(logger, logging.Logger) and not logger.isEnabledFor(levelno):
            return event_dict
        entry = {
            k: v if isinstance(v, _PLAIN_TYPES) else str(v)
            for k, v in event_dict.items()
            if not k.startswith("_")
        }
        self._entries.append((time.monotonic(), entry))
        for sink in list(self._sinks):
            sink(entry)
        return event_dict

    def add_sink(self, sink: Callable[[dict[str, Any]], None]) -> None:
        self._sinks.append(sink)

    def remove_sink(self, sink: Callable[[dict[str, Any]], None]) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    def recent(self) -> list[dict[str, Any]]:
        """Entries younger than the retention window, oldest first."""
        cutoff = time.monotonic() - self._retention_s
        return [entry for ts, entry in self._entries if ts >= cutoff]

    def __len__(self) -> int:
        return len(self._entries)


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    buffer: LogBuffer | None = None,
) -> None:
    """Configure structlog for the application.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: "json" for production, "console" for development.
        buffer: Optional LogBuffer that receives a copy of every entry.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if buffer is not None:
        shared_processors.append(buffer)

    if log_format == "console":
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str | None = None, **initial_context) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, optionally pre-bound with context."""
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
