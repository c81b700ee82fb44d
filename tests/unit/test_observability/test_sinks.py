"""Unit tests for log sinks and sink-bound loggers."""

import io
import logging
import re
from pathlib import Path

from src.observability.logging import make_logger
from src.observability.sink import FileSink
from tests.helpers.sinks import ListSink


LINE_PATTERN = re.compile(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] \[(\w+)\] (\S+)(.*)$")


class TestSinkLogger:
    """Tests for the line format produced by make_logger."""

    def test_line_format(self) -> None:
        """Test timestamp, level, event and sorted key/value fields."""
        sink = ListSink()
        log = make_logger(sink)

        log.info("page_streamed", page=2, items=200)

        match = LINE_PATTERN.match(sink.lines[0])
        assert match is not None
        assert match.group(1) == "INFO"
        assert match.group(2) == "page_streamed"
        assert match.group(3) == " items=200 page=2"

    def test_bound_fields_are_rendered(self) -> None:
        """Test that bound context appears on every line."""
        sink = ListSink()
        log = make_logger(sink).bind(component="fetch")

        log.warning("rate_limited", retry_after_seconds=30.0)

        assert "[WARNING] rate_limited" in sink.lines[0]
        assert "component='fetch'" in sink.lines[0]

    def test_level_filtering(self) -> None:
        """Test that events below the configured level are dropped."""
        sink = ListSink()
        log = make_logger(sink, level=logging.INFO)

        log.debug("request_sent")
        log.error("request_failed")

        assert sink.events() == ["request_failed"]

    def test_event_without_fields(self) -> None:
        """Test a bare event renders without trailing fields."""
        sink = ListSink()

        make_logger(sink).info("lock_released")

        assert sink.lines[0].endswith("[INFO] lock_released")


class TestFileSink:
    """Tests for FileSink."""

    def test_appends_lines(self, tmp_path: Path) -> None:
        """Test that lines are appended with newlines and parents created."""
        path = tmp_path / "logs" / "sync.log"
        sink = FileSink(path)

        sink.append("first")
        sink.append("second")

        assert path.read_text(encoding="utf-8") == "first\nsecond\n"

    def test_echo_stream(self, tmp_path: Path) -> None:
        """Test that lines are also echoed to the given stream."""
        echo = io.StringIO()
        sink = FileSink(tmp_path / "sync.log", echo=echo)

        sink.append("hello")

        assert echo.getvalue() == "hello\n"

    def test_rotation(self, tmp_path: Path) -> None:
        """Test that an oversized file is shifted to numbered backups."""
        path = tmp_path / "sync.log"
        sink = FileSink(path, max_bytes=10, max_backups=2)

        sink.append("a" * 20)
        sink.append("b" * 20)
        sink.append("c" * 20)
        sink.append("d" * 20)

        assert path.read_text(encoding="utf-8") == "d" * 20 + "\n"
        assert (tmp_path / "sync.log.1").read_text(encoding="utf-8") == "c" * 20 + "\n"
        assert (tmp_path / "sync.log.2").read_text(encoding="utf-8") == "b" * 20 + "\n"
        assert not (tmp_path / "sync.log.3").exists()

    def test_no_rotation_without_limit(self, tmp_path: Path) -> None:
        """Test that rotation is disabled when max_bytes is None."""
        path = tmp_path / "sync.log"
        sink = FileSink(path)

        for _ in range(50):
            sink.append("x" * 100)

        assert not (tmp_path / "sync.log.1").exists()

