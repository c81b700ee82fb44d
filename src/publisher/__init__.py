"""Streaming publisher: incremental write, validation, atomic publish."""

from src.publisher.streaming import PublishResult, StreamingPublisher


__all__ = [
    "PublishResult",
    "StreamingPublisher",
]
