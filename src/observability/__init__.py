"""Observability module: sinks and sink-bound structured loggers."""

from src.observability.logging import SinkLineRenderer, SinkLogger, make_logger
from src.observability.sink import FileSink, LogSink


__all__ = [
    "FileSink",
    "LogSink",
    "SinkLineRenderer",
    "SinkLogger",
    "make_logger",
]
