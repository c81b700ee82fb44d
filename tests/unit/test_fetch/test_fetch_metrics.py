"""Unit tests for per-session fetch metrics."""

from src.fetch.metrics import FetchMetrics
from src.fetch.models import RequestOutcome


class TestFetchMetrics:
    """Tests for FetchMetrics counters."""

    def test_counts_requests_by_status(self) -> None:
        """Test per-status request counting and byte totals."""
        metrics = FetchMetrics()

        metrics.record_request(200, 100)
        metrics.record_request(200, 50)
        metrics.record_request(429, 0)

        assert metrics.http_requests_total == {200: 2, 429: 1}
        assert metrics.http_bytes_total == 150
        assert metrics.http_request_count == 3

    def test_failures_by_outcome(self) -> None:
        """Test failure counting by outcome name."""
        metrics = FetchMetrics()

        metrics.record_failure(RequestOutcome.NETWORK_ERROR)
        metrics.record_failure(RequestOutcome.NETWORK_ERROR)
        metrics.record_failure(RequestOutcome.RATE_LIMITED)

        assert metrics.http_failures_total == {"NETWORK_ERROR": 2, "RATE_LIMITED": 1}

    def test_instances_do_not_share_state(self) -> None:
        """Test that two sessions keep separate counters."""
        first = FetchMetrics()
        second = FetchMetrics()

        first.record_retry()
        first.record_rate_limit_wait(30.0)

        assert second.http_retry_total == 0
        assert second.http_rate_limit_waits_total == 0

    def test_to_dict_and_average(self) -> None:
        """Test dictionary export and average duration."""
        metrics = FetchMetrics()
        metrics.record_request(200, 10)
        metrics.record_request(200, 10)
        metrics.record_duration(10.0)
        metrics.record_duration(30.0)
        metrics.record_token_refresh()

        exported = metrics.to_dict()

        assert exported["http_duration_ms_total"] == 40.0
        assert exported["token_refresh_total"] == 1
        assert metrics.avg_duration_ms == 20.0

    def test_average_without_requests(self) -> None:
        """Test that the average is zero before any request."""
        assert FetchMetrics().avg_duration_ms == 0.0
