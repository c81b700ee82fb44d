"""Sync session orchestration.

One run takes the process lock, downloads every catalog page into the
streaming publisher, publishes the artifact and appends a summary line.
The lock is released on every exit path.
"""

import time
from collections.abc import Callable
from datetime import datetime
from enum import Enum

import httpx
import structlog

from src.auth.cache import CredentialCache
from src.core.constants import COMPONENT_SYNC
from src.core.errors import SyncError
from src.fetch.client import CatalogFetcher
from src.fetch.metrics import FetchMetrics
from src.fetch.session import SyncSession
from src.lock.process_lock import ProcessLock
from src.observability.sink import FileSink, LogSink
from src.publisher.streaming import PublishResult, StreamingPublisher
from src.settings.app import SyncSettings
from src.sync.state_machine import SessionState, SessionStateMachine


SUMMARY_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
SECONDS_PER_MINUTE = 60


class SyncOutcome(str, Enum):
    """Result of one sync invocation."""

    COMPLETED = "COMPLETED"
    ALREADY_RUNNING = "ALREADY_RUNNING"


def format_duration(seconds: float) -> str:
    """Format a duration for the summary log.

    Under a minute: ``12.34s``. Otherwise whole minutes and seconds: ``3m 7s``.
    """
    if seconds < SECONDS_PER_MINUTE:
        return f"{seconds:.2f}s"
    minutes, remainder = divmod(int(seconds), SECONDS_PER_MINUTE)
    return f"{minutes}m {remainder}s"


def format_summary_line(timestamp: datetime, duration_seconds: float, products: int) -> str:
    """Build the one-line success summary."""
    return (
        f"[{timestamp.strftime(SUMMARY_TIMESTAMP_FORMAT)}] SUCCESS"
        f" | Duration: {format_duration(duration_seconds)}"
        f" | Products: {products}"
    )


class InventorySync:
    """Runs one end-to-end catalog sync.

    Usage:
        sync = InventorySync(settings, log, client)
        outcome = sync.run()
    """

    def __init__(  # noqa: PLR0913
        self,
        settings: SyncSettings,
        log: structlog.typing.FilteringBoundLogger,
        client: httpx.Client,
        summary_sink: LogSink | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        install_signal_handlers: bool = True,
    ) -> None:
        """Initialize the sync.

        Args:
            settings: Sync settings.
            log: Logger bound to the session sink.
            client: HTTP client shared by auth and catalog requests.
            summary_sink: Destination for the success summary line;
                defaults to the summary log next to the main log.
            sleep: Sleep function (injected in tests).
            clock: Epoch-time source (injected in tests).
            install_signal_handlers: Release the lock on SIGTERM/SIGHUP.
        """
        self._settings = settings
        self._client = client
        self._sleep = sleep
        self._clock = clock
        self._root_log = log
        self._log = log.bind(component=COMPONENT_SYNC)
        self._summary_sink = summary_sink or FileSink(settings.logging.summary_path)
        self._lock = ProcessLock(
            settings.paths.lock_path,
            log,
            cleanup_paths=(settings.paths.temp_output_path,),
            stale_after_seconds=settings.paths.stale_lock_seconds,
            install_signal_handlers=install_signal_handlers,
            clock=clock,
        )
        self._session: SyncSession | None = None
        self._metrics: FetchMetrics | None = None
        self._publish_result: PublishResult | None = None

    @property
    def session(self) -> SyncSession | None:
        """Get the state of the last session, if one ran."""
        return self._session

    @property
    def metrics(self) -> FetchMetrics | None:
        """Get the metrics of the last session, if one ran."""
        return self._metrics

    @property
    def publish_result(self) -> PublishResult | None:
        """Get the last published artifact, if any."""
        return self._publish_result

    def run(self) -> SyncOutcome:
        """Run one sync session.

        Returns:
            COMPLETED when the artifact was published, ALREADY_RUNNING when
            another session holds the lock (no network calls are made).

        Raises:
            SyncError: Any fatal condition; the published artifact is
                left untouched.
        """
        handle = self._lock.acquire()
        if handle is None:
            self._log.info("sync_already_running", lock_path=str(self._lock.path))
            return SyncOutcome.ALREADY_RUNNING

        with handle:
            self._run_session()
        return SyncOutcome.COMPLETED

    def _run_session(self) -> None:
        session = SyncSession()
        metrics = FetchMetrics()
        self._session = session
        self._metrics = metrics
        self._publish_result = None
        machine = SessionStateMachine(self._root_log)

        credentials = CredentialCache(
            self._settings, self._client, self._root_log, clock=self._clock
        )
        fetcher = CatalogFetcher(
            self._settings,
            self._client,
            credentials,
            self._root_log,
            metrics=metrics,
            sleep=self._sleep,
        )
        paths = self._settings.paths

        try:
            machine.transition(SessionState.FETCHING)
            with StreamingPublisher(
                paths.temp_output_path,
                paths.output_path,
                self._root_log,
                min_bytes=paths.min_output_bytes,
            ) as publisher:
                fetcher.stream_to(publisher, session)
                self._log.info(
                    "download_complete",
                    pages=session.pages_fetched,
                    records=session.total_processed,
                )

                machine.transition(SessionState.PUBLISHING)
                self._publish_result = publisher.publish()
        except SyncError as e:
            machine.transition(SessionState.FAILED)
            self._log.error(
                "sync_failed",
                page=session.page_cursor,
                records=session.total_processed,
                **e.to_log_fields(),
            )
            raise
        finally:
            self._log.info("fetch_metrics", **metrics.to_dict())

        machine.transition(SessionState.SUCCEEDED)
        duration = session.elapsed_seconds()
        self._summary_sink.append(
            format_summary_line(
                datetime.fromtimestamp(self._clock()),
                duration,
                session.total_processed,
            )
        )
        self._log.info(
            "sync_completed",
            records=session.total_processed,
            pages=session.pages_fetched,
            duration=format_duration(duration),
        )
