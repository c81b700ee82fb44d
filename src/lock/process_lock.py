"""Single-flight process lock with guaranteed release.

Mutual exclusion uses a non-blocking exclusive flock on the lock artifact.
The holder registers a release action that runs on normal return, on a
propagated exception, at interpreter exit, and on SIGTERM/SIGHUP (which are
turned into SystemExit so the stack unwinds). Release removes the dangling
temporary output and the lock artifact before dropping the flock.
"""

import atexit
import fcntl
import os
import signal
import threading
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from types import FrameType, TracebackType

import structlog

from src.core.constants import COMPONENT_LOCK
from src.core.errors import LockError


DEFAULT_STALE_LOCK_SECONDS = 7200
RELEASE_SIGNALS = (signal.SIGTERM, signal.SIGHUP)
SIGNAL_EXIT_BASE = 128
# Attempts to lock a file that is still linked at the lock path.
MAX_ACQUIRE_ATTEMPTS = 2


def _raise_system_exit(signum: int, frame: FrameType | None) -> None:  # noqa: ARG001
    raise SystemExit(SIGNAL_EXIT_BASE + signum)


class LockHandle:
    """Proof of lock ownership for one sync session.

    Use as a context manager; release() is idempotent.
    """

    def __init__(
        self,
        lock: "ProcessLock",
        fd: int,
        log: structlog.typing.FilteringBoundLogger,
        install_signal_handlers: bool,
    ) -> None:
        """Initialize the handle. Only ProcessLock creates handles.

        Args:
            lock: Owning process lock.
            fd: Descriptor holding the flock.
            log: Bound logger.
            install_signal_handlers: Convert SIGTERM/SIGHUP into SystemExit.
        """
        self._lock = lock
        self._fd: int | None = fd
        self._log = log
        self._previous_handlers: dict[int, object] = {}
        atexit.register(self.release)
        if install_signal_handlers:
            self._install_signal_handlers()

    @property
    def released(self) -> bool:
        """Check whether the handle has been released."""
        return self._fd is None

    def __enter__(self) -> "LockHandle":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()

    def release(self) -> None:
        """Remove the temp output and lock artifact, then drop the flock."""
        if self._fd is None:
            return
        fd, self._fd = self._fd, None

        atexit.unregister(self.release)
        self._restore_signal_handlers()

        # Deletions happen while the flock is still held, so a session that
        # starts right after us cannot lose its own temp file.
        for path in self._lock.cleanup_paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                self._log.warning("cleanup_failed", path=str(path), error=str(exc))
        try:
            self._lock.path.unlink(missing_ok=True)
        except OSError as exc:
            self._log.warning("lock_unlink_failed", error=str(exc))

        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
            self._lock._handle_released(self)  # noqa: SLF001
        self._log.info("lock_released")

    def _install_signal_handlers(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return
        for signum in RELEASE_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, _raise_system_exit)

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)  # type: ignore[arg-type]
        self._previous_handlers.clear()


class ProcessLock:
    """Advisory, non-blocking, cross-process lock for the sync session.

    acquire() returns None when another process holds the lock; that is the
    normal "already running" outcome, not an error.
    """

    def __init__(
        self,
        path: Path,
        log: structlog.typing.FilteringBoundLogger,
        cleanup_paths: Sequence[Path] = (),
        stale_after_seconds: int = DEFAULT_STALE_LOCK_SECONDS,
        install_signal_handlers: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the process lock.

        Args:
            path: Lock artifact path.
            log: Logger bound to the session sink.
            cleanup_paths: Artifacts removed on release (temporary output).
            stale_after_seconds: Age after which a leftover lock is reported as stale.
            install_signal_handlers: Release on SIGTERM/SIGHUP.
            clock: Epoch-time source.
        """
        self._path = path
        self._cleanup_paths = tuple(cleanup_paths)
        self._stale_after_seconds = stale_after_seconds
        self._install_signal_handlers = install_signal_handlers
        self._clock = clock
        self._log = log.bind(component=COMPONENT_LOCK, lock_path=str(path))
        self._handle: LockHandle | None = None

    @property
    def path(self) -> Path:
        """Get the lock artifact path."""
        return self._path

    @property
    def cleanup_paths(self) -> tuple[Path, ...]:
        """Get the artifacts removed on release."""
        return self._cleanup_paths

    def acquire(self) -> LockHandle | None:
        """Try to take the lock without blocking.

        Returns:
            A LockHandle, or None if another session holds the lock.

        Raises:
            LockError: If the lock file cannot be opened, or a handle from
                this lock is still live.
        """
        if self._handle is not None:
            msg = "Lock already held by this session; one handle per session"
            raise LockError(msg)

        for _ in range(MAX_ACQUIRE_ATTEMPTS):
            fd = self._open()
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                os.close(fd)
                self._log.info("lock_busy")
                return None
            except OSError as exc:
                os.close(fd)
                msg = f"Could not lock {self._path}: {exc}"
                raise LockError(msg) from exc

            if self._is_current_file(fd):
                return self._take_ownership(fd)

            # The previous holder unlinked the file between our open and flock.
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)

        self._log.info("lock_busy", reason="lock_file_replaced")
        return None

    def _open(self) -> int:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        try:
            return os.open(self._path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as exc:
            msg = f"Could not open lock file {self._path}: {exc}"
            raise LockError(msg) from exc

    def _is_current_file(self, fd: int) -> bool:
        try:
            linked = self._path.stat()
        except FileNotFoundError:
            return False
        held = os.fstat(fd)
        return (linked.st_dev, linked.st_ino) == (held.st_dev, held.st_ino)

    def _take_ownership(self, fd: int) -> LockHandle:
        try:
            self._recover_stale(fd)

            pid = str(os.getpid()).encode("ascii")
            os.ftruncate(fd, 0)
            os.pwrite(fd, pid, 0)
            os.fsync(fd)
        except OSError as exc:
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)
            msg = f"Could not record ownership of {self._path}: {exc}"
            raise LockError(msg) from exc

        self._handle = LockHandle(
            lock=self,
            fd=fd,
            log=self._log,
            install_signal_handlers=self._install_signal_handlers,
        )
        self._log.info("lock_acquired", pid=os.getpid())
        return self._handle

    def _recover_stale(self, fd: int) -> None:
        """Clean up after a previous session that exited without releasing."""
        previous_pid = os.pread(fd, 32, 0).decode("ascii", errors="replace").strip()
        if not previous_pid:
            return

        age_seconds = int(self._clock() - os.fstat(fd).st_mtime)
        log = self._log.bind(previous_pid=previous_pid, age_seconds=age_seconds)
        if age_seconds > self._stale_after_seconds:
            log.warning("stale_lock_recovered", stale_after_seconds=self._stale_after_seconds)
        else:
            log.info("stale_lock_recovered")

        for path in self._cleanup_paths:
            if not path.exists():
                continue
            try:
                path.unlink()
            except OSError as exc:
                log.warning("cleanup_failed", path=str(path), error=str(exc))
                continue
            log.info("dangling_artifact_removed", path=str(path))

    def _handle_released(self, handle: LockHandle) -> None:
        if self._handle is handle:
            self._handle = None
