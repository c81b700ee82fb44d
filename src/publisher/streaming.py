"""Streaming JSON-array writer with validated atomic publish.

Records are appended to a temporary file as they arrive, so memory stays
bounded regardless of catalog size. The final path is only ever replaced
by a complete, closed, size-checked file.
"""

import hashlib
import os
from collections.abc import Iterable
from pathlib import Path
from types import TracebackType
from typing import IO

import structlog
from pydantic import BaseModel, ConfigDict, Field

from src.catalog.models import CatalogRecord
from src.core.constants import COMPONENT_PUBLISHER
from src.core.errors import IntegrityError


DEFAULT_MIN_OUTPUT_BYTES = 1024

ARRAY_OPEN = "[\n"
ARRAY_CLOSE = "\n]"
RECORD_SEPARATOR = ",\n"
RECORD_INDENT = "  "


class PublishResult(BaseModel):
    """Outcome of a successful publish."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str = Field(description="Published artifact path")
    bytes_written: int = Field(ge=0)
    records_written: int = Field(ge=0)
    sha256: str = Field(min_length=64, max_length=64)


class StreamingPublisher:
    """Writes catalog records to a temp artifact and publishes it atomically.

    Usage:
        with StreamingPublisher(temp, final, log) as publisher:
            publisher.write_many(records)
            result = publisher.publish()

    Leaving the block with an exception closes the stream without
    publishing; the temporary artifact is left for the process lock's
    cleanup.
    """

    def __init__(
        self,
        temp_path: Path,
        final_path: Path,
        log: structlog.typing.FilteringBoundLogger,
        min_bytes: int = DEFAULT_MIN_OUTPUT_BYTES,
    ) -> None:
        """Initialize the publisher.

        Args:
            temp_path: Temporary artifact path (same filesystem as final_path).
            final_path: Canonical published path.
            log: Logger bound to the session sink.
            min_bytes: Minimum size of a valid artifact.
        """
        self._temp_path = temp_path
        self._final_path = final_path
        self._min_bytes = min_bytes
        self._log = log.bind(component=COMPONENT_PUBLISHER)
        self._stream: IO[str] | None = None
        self._hasher = hashlib.sha256()
        self._records_written = 0
        self._closed = False

    @property
    def records_written(self) -> int:
        """Get the number of records written so far."""
        return self._records_written

    def __enter__(self) -> "StreamingPublisher":
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            self.abort()

    def open(self) -> None:
        """Create the temporary artifact and start the JSON array.

        Raises:
            IntegrityError: If the temporary artifact cannot be created.
        """
        try:
            self._temp_path.parent.mkdir(parents=True, exist_ok=True)
            self._stream = self._temp_path.open("w", encoding="utf-8", newline="\n")
        except OSError as exc:
            raise self._io_error("create", exc) from exc
        self._emit(ARRAY_OPEN)
        self._log.debug("stream_opened", temp_path=str(self._temp_path))

    def write(self, record: CatalogRecord) -> None:
        """Append one record, preceded by a separator unless it is the first."""
        if self._records_written:
            self._emit(RECORD_SEPARATOR)
        self._emit(RECORD_INDENT + record.to_json())
        self._records_written += 1

    def write_many(self, records: Iterable[CatalogRecord]) -> int:
        """Append records from an iterable.

        Returns:
            Number of records written by this call.
        """
        count = 0
        for record in records:
            self.write(record)
            count += 1
        return count

    def close(self) -> None:
        """Terminate the array, flush to disk and close the stream.

        Raises:
            IntegrityError: If the stream cannot be written or synced.
        """
        if self._closed:
            return
        self._emit(ARRAY_CLOSE)
        stream = self._require_stream()
        try:
            stream.flush()
            os.fsync(stream.fileno())
            stream.close()
        except OSError as exc:
            raise self._io_error("flush", exc) from exc
        self._closed = True

    def abort(self) -> None:
        """Close the stream without terminating or publishing it."""
        if self._stream is not None and not self._stream.closed:
            try:
                self._stream.close()
            except OSError as exc:
                self._log.warning(
                    "temp_close_failed", temp_path=str(self._temp_path), error=str(exc)
                )
        self._closed = True
        self._log.warning(
            "publish_aborted",
            temp_path=str(self._temp_path),
            records_written=self._records_written,
        )

    def publish(self) -> PublishResult:
        """Validate the closed artifact and rename it over the final path.

        Returns:
            PublishResult describing the published file.

        Raises:
            IntegrityError: If the artifact cannot be flushed, is too small, or
                cannot be renamed.
        """
        self.close()

        try:
            size = self._temp_path.stat().st_size
        except OSError as exc:
            raise self._io_error("stat", exc) from exc
        if size < self._min_bytes:
            self._log.warning(
                "output_too_small",
                bytes=size,
                min_bytes=self._min_bytes,
                records_written=self._records_written,
            )
            msg = f"Downloaded file is suspiciously small ({size} < {self._min_bytes} bytes)"
            raise IntegrityError(msg, path=str(self._temp_path))

        try:
            os.replace(self._temp_path, self._final_path)
        except OSError as exc:
            self._log.warning(
                "publish_rename_failed",
                temp_path=str(self._temp_path),
                final_path=str(self._final_path),
                error=str(exc),
            )
            msg = f"Failed to move temp file to final location: {exc}"
            raise IntegrityError(msg, path=str(self._final_path)) from exc

        sha256 = self._hasher.hexdigest()
        self._log.info(
            "output_published",
            path=str(self._final_path),
            bytes=size,
            records=self._records_written,
            sha256=sha256[:12],
        )
        return PublishResult(
            path=str(self._final_path),
            bytes_written=size,
            records_written=self._records_written,
            sha256=sha256,
        )

    def _emit(self, text: str) -> None:
        stream = self._require_stream()
        try:
            stream.write(text)
        except OSError as exc:
            raise self._io_error("write", exc) from exc
        self._hasher.update(text.encode("utf-8"))

    def _io_error(self, operation: str, exc: OSError) -> IntegrityError:
        return IntegrityError(
            f"Could not {operation} temp file {self._temp_path}: {exc}",
            path=str(self._temp_path),
        )

    def _require_stream(self) -> IO[str]:
        if self._stream is None or self._closed:
            msg = "Publisher stream is not open"
            raise IntegrityError(msg, path=str(self._temp_path))
        return self._stream
