"""Metrics collection for the catalog fetch engine."""

from dataclasses import dataclass, field

from src.fetch.models import RequestOutcome


@dataclass
class FetchMetrics:
    """Counters for one sync session.

    Created per session and passed to the fetcher, so concurrent tests and
    repeated runs in one process never share state.
    """

    http_requests_total: dict[int, int] = field(default_factory=dict)
    http_retry_total: int = 0
    http_rate_limit_waits_total: int = 0
    http_rate_limit_wait_seconds_total: float = 0.0
    http_failures_total: dict[str, int] = field(default_factory=dict)
    http_bytes_total: int = 0
    http_duration_ms_total: float = 0.0
    http_request_count: int = 0
    token_refresh_total: int = 0

    def record_request(self, status_code: int, bytes_received: int) -> None:
        """Record a request that received a response.

        Args:
            status_code: HTTP status code.
            bytes_received: Number of body bytes received.
        """
        self.http_requests_total[status_code] = (
            self.http_requests_total.get(status_code, 0) + 1
        )
        self.http_bytes_total += bytes_received
        self.http_request_count += 1

    def record_retry(self) -> None:
        """Record a backoff retry."""
        self.http_retry_total += 1

    def record_rate_limit_wait(self, seconds: float) -> None:
        """Record a 429 wait and its duration."""
        self.http_rate_limit_waits_total += 1
        self.http_rate_limit_wait_seconds_total += seconds

    def record_token_refresh(self) -> None:
        """Record a forced credential refresh after a 401."""
        self.token_refresh_total += 1

    def record_failure(self, outcome: RequestOutcome) -> None:
        """Record a failed attempt by outcome."""
        key = outcome.value
        self.http_failures_total[key] = self.http_failures_total.get(key, 0) + 1

    def record_duration(self, duration_ms: float) -> None:
        """Record request duration in milliseconds."""
        self.http_duration_ms_total += duration_ms

    def to_dict(self) -> dict[str, int | float | dict[str, int] | dict[int, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "http_requests_total": dict(self.http_requests_total),
            "http_retry_total": self.http_retry_total,
            "http_rate_limit_waits_total": self.http_rate_limit_waits_total,
            "http_rate_limit_wait_seconds_total": self.http_rate_limit_wait_seconds_total,
            "http_failures_total": dict(self.http_failures_total),
            "http_bytes_total": self.http_bytes_total,
            "http_duration_ms_total": round(self.http_duration_ms_total, 2),
            "http_request_count": self.http_request_count,
            "token_refresh_total": self.token_refresh_total,
        }

    @property
    def avg_duration_ms(self) -> float:
        """Calculate average request duration.

        Returns:
            Average duration in milliseconds.
        """
        if self.http_request_count == 0:
            return 0.0
        return self.http_duration_ms_total / self.http_request_count
