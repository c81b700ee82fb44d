"""Sync session orchestration and lifecycle."""

from src.sync.runner import (
    InventorySync,
    SyncOutcome,
    format_duration,
    format_summary_line,
)
from src.sync.state_machine import (
    SessionState,
    SessionStateError,
    SessionStateMachine,
)


__all__ = [
    "InventorySync",
    "SessionState",
    "SessionStateError",
    "SessionStateMachine",
    "SyncOutcome",
    "format_duration",
    "format_summary_line",
]
