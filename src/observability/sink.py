"""Append-only log sinks.

A sink receives fully rendered log lines. Rotation is the sink's own
concern; the sync components only ever call append().
"""

import threading
from pathlib import Path
from typing import Protocol, TextIO


class LogSink(Protocol):
    """Destination for rendered log lines."""

    def append(self, line: str) -> None:
        """Append one line (without trailing newline)."""
        ...


class FileSink:
    """Appends lines to a file with optional size-based rotation.

    When the file grows beyond max_bytes it is shifted to path.1, the
    previous path.1 to path.2 and so on; path.{max_backups} is discarded.
    """

    def __init__(
        self,
        path: Path,
        max_bytes: int | None = None,
        max_backups: int = 5,
        echo: TextIO | None = None,
    ) -> None:
        """Initialize the file sink.

        Args:
            path: Log file path. Parent directories are created.
            max_bytes: Rotate when the file exceeds this size; None disables rotation.
            max_backups: Number of rotated files to keep.
            echo: Optional stream that also receives every line.
        """
        self._path = path
        self._max_bytes = max_bytes
        self._max_backups = max_backups
        self._echo = echo
        self._lock = threading.Lock()
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        """Get the active log file path."""
        return self._path

    def append(self, line: str) -> None:
        """Append a line, rotating first if the file is too large."""
        with self._lock:
            if self._echo is not None:
                self._echo.write(line + "\n")
                self._echo.flush()
            self._rotate_if_needed()
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")

    def _rotate_if_needed(self) -> None:
        if self._max_bytes is None or not self._path.exists():
            return
        if self._path.stat().st_size <= self._max_bytes:
            return

        oldest = self._backup_path(self._max_backups)
        oldest.unlink(missing_ok=True)

        for index in range(self._max_backups - 1, 0, -1):
            current = self._backup_path(index)
            if current.exists():
                current.replace(self._backup_path(index + 1))

        if self._max_backups > 0:
            self._path.replace(self._backup_path(1))
        else:
            self._path.unlink()

    def _backup_path(self, index: int) -> Path:
        return self._path.with_name(f"{self._path.name}.{index}")

