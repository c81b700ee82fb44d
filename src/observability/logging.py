"""Structured logging bound to an explicit sink.

Loggers are built per sink with structlog.wrap_logger instead of the global
structlog.configure(), so each component receives its logger as a
constructor argument and tests can capture output without patching globals.
"""

import logging
from typing import Any

import structlog

from src.observability.sink import LogSink


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class SinkLogger:
    """Minimal structlog-compatible logger that forwards lines to a sink."""

    def __init__(self, sink: LogSink) -> None:
        """Initialize the logger.

        Args:
            sink: Destination for rendered lines.
        """
        self._sink = sink

    def msg(self, message: str) -> None:
        """Forward a rendered message to the sink."""
        self._sink.append(message)

    log = debug = info = warn = warning = msg
    fatal = failure = err = error = critical = exception = msg


class SinkLineRenderer:
    """Render an event dict as ``[timestamp] [LEVEL] event key=value ...``."""

    def __init__(self) -> None:
        self._kv = structlog.processors.KeyValueRenderer(sort_keys=True)

    def __call__(
        self, logger: Any, method_name: str, event_dict: structlog.typing.EventDict
    ) -> str:
        """Render the event dict to a single line."""
        timestamp = event_dict.pop("timestamp", "")
        level = str(event_dict.pop("level", method_name)).upper()
        event = event_dict.pop("event", "")
        line = f"[{timestamp}] [{level}] {event}"
        if event_dict:
            line = f"{line} {self._kv(logger, method_name, event_dict)}"
        return line


def make_logger(
    sink: LogSink,
    level: int = logging.INFO,
) -> structlog.typing.FilteringBoundLogger:
    """Build a bound logger that renders lines into a sink.

    Args:
        sink: Destination for rendered lines.
        level: Minimum level to emit (default: INFO).

    Returns:
        Filtering bound logger writing to the sink.
    """
    processors: list[structlog.types.Processor] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt=TIMESTAMP_FORMAT, utc=False),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        SinkLineRenderer(),
    ]
    logger: structlog.typing.FilteringBoundLogger = structlog.wrap_logger(
        SinkLogger(sink),
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        cache_logger_on_first_use=False,
    )
    return logger
