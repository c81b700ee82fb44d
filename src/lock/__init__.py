"""Single-flight process lock with crash-safe release."""

from src.lock.process_lock import LockHandle, ProcessLock


__all__ = [
    "LockHandle",
    "ProcessLock",
]
