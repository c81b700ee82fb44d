"""Per-invocation sync session state."""

import time
from dataclasses import dataclass, field


@dataclass
class SyncSession:
    """Progress of one sync invocation.

    Owned by the fetch engine for the duration of a run and discarded when
    the run ends.

    Attributes:
        start_time: perf_counter() value at session start.
        page_cursor: Last page requested (0 before the first request).
        total_processed: Records handed to the publisher so far.
        pages_fetched: Pages successfully retrieved.
    """

    start_time: float = field(default_factory=time.perf_counter)
    page_cursor: int = 0
    total_processed: int = 0
    pages_fetched: int = 0

    def elapsed_seconds(self) -> float:
        """Get seconds elapsed since the session started."""
        return time.perf_counter() - self.start_time
