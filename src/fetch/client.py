"""Paginated catalog fetcher with per-outcome retry policy."""

import math
import time
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any
from urllib.parse import urlencode

import httpx
import structlog

from src.auth.cache import CredentialCache
from src.catalog.models import lenient_int, project_item
from src.core.constants import (
    AUTH_SCHEME,
    COMPONENT_FETCH,
    HTTP_STATUS_OK,
    HTTP_STATUS_SERVER_ERROR_MIN,
    HTTP_STATUS_TOO_MANY_REQUESTS,
    HTTP_STATUS_UNAUTHORIZED,
)
from src.core.errors import (
    AuthError,
    ClientError,
    RateLimitError,
    ServerError,
    SyncError,
    TransportError,
)
from src.fetch.metrics import FetchMetrics
from src.fetch.models import (
    AttemptResult,
    PageResult,
    RequestOutcome,
    RetryDecision,
    RetryPolicy,
)
from src.fetch.redact import redact_headers, redact_url_credentials
from src.fetch.session import SyncSession
from src.publisher.streaming import StreamingPublisher
from src.settings.app import SyncSettings


def parse_retry_after(value: str | None) -> float | None:
    """Parse a Retry-After header value.

    Args:
        value: Header value (seconds or HTTP date).

    Returns:
        Seconds to wait, or None if absent or not parseable.
    """
    if not value:
        return None

    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        return max(0.0, seconds) if math.isfinite(seconds) else None

    try:
        dt = parsedate_to_datetime(value)
    except (ValueError, TypeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return max(0.0, (dt - datetime.now(UTC)).total_seconds())


class CatalogFetcher:
    """Drives page-by-page retrieval of the remote catalog.

    Each request runs through an explicit loop: one attempt is sent,
    classified into a RequestOutcome, and the RetryPolicy decides whether to
    return, back off, wait out a 429, force-refresh the credential, or fail.
    Any failure aborts the whole session.
    """

    def __init__(
        self,
        settings: SyncSettings,
        client: httpx.Client,
        credentials: CredentialCache,
        log: structlog.typing.FilteringBoundLogger,
        metrics: FetchMetrics | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the fetcher.

        Args:
            settings: Sync settings.
            client: HTTP client for catalog requests.
            credentials: Credential cache supplying bearer tokens.
            log: Logger bound to the session sink.
            metrics: Per-session metrics; a fresh instance when omitted.
            sleep: Sleep function (injected in tests).
        """
        tuning = settings.sync
        self._settings = settings
        self._client = client
        self._credentials = credentials
        self._metrics = metrics or FetchMetrics()
        self._sleep = sleep
        self._policy = RetryPolicy(
            max_retries=tuning.retries,
            backoff_seconds=tuning.network_retry_delay_seconds,
            default_retry_after_seconds=tuning.default_retry_after_seconds,
            max_rate_limit_waits=tuning.max_rate_limit_waits,
        )
        self._log = log.bind(component=COMPONENT_FETCH)

    @property
    def policy(self) -> RetryPolicy:
        """Get the retry policy in effect."""
        return self._policy

    @property
    def metrics(self) -> FetchMetrics:
        """Get the session metrics."""
        return self._metrics

    def page_url(self, page: int) -> str:
        """Build the catalog URL for a page."""
        query = urlencode({"page_no": page, "limit": self._settings.sync.batch_limit})
        return f"{self._settings.products_url}?{query}"

    def stream_to(self, publisher: StreamingPublisher, session: SyncSession) -> None:
        """Fetch every page and hand its projected records to the publisher.

        Args:
            publisher: Open publisher receiving the records.
            session: Session progress, updated in place.

        Raises:
            SyncError: On any request failure; nothing is published.
        """
        self._log.info(
            "download_started",
            url=redact_url_credentials(self._settings.products_url),
            batch_limit=self._settings.sync.batch_limit,
        )

        # Fail on credentials before touching the catalog; also logs the cache status.
        self._credentials.get_token()

        for page, result in self.iter_pages():
            session.page_cursor = page
            session.pages_fetched += 1
            if not result.has_items:
                self._log.info("page_without_items", page=page)
                continue

            records = (project_item(item) for item in result.items or [])
            count = publisher.write_many(records)
            session.total_processed += count
            self._log.info(
                "page_streamed",
                page=page,
                total_pages=result.total_pages,
                items=count,
                total_processed=session.total_processed,
            )

    def iter_pages(self) -> Iterator[tuple[int, PageResult]]:
        """Yield (page number, page) until the catalog is exhausted.

        Stops when page >= total_pages or when a response carries no item
        list. Sleeps the inter-request delay between pages, never after the
        last one.
        """
        page = 1
        while True:
            result = self.fetch_page(page)
            yield page, result

            if not result.has_items or page >= result.total_pages:
                return
            page += 1
            self._sleep(self._settings.sync.rate_limit_sleep_seconds)

    def fetch_page(self, page: int) -> PageResult:
        """Fetch and parse one catalog page.

        Args:
            page: Page number (1-indexed).

        Returns:
            The page's items and reported page count.
        """
        data = self.request_json(self.page_url(page))
        items = data.get("result")
        total_pages = data.get("total_pages")
        return PageResult(
            items=items if isinstance(items, list) else None,
            total_pages=1 if total_pages is None else max(0, lenient_int(total_pages)),
        )

    def request_json(self, url: str) -> dict[str, Any]:
        """Request a URL, applying the retry policy until success or failure.

        Args:
            url: Catalog URL.

        Returns:
            Parsed JSON object body.

        Raises:
            TransportError: Network failures outlived the retry ceiling.
            ServerError: 5xx responses outlived the retry ceiling.
            ClientError: Non-retryable response.
            AuthError: 401 persisted after a forced refresh, or renewal failed.
            RateLimitError: max_rate_limit_waits configured and exceeded.
        """
        log = self._log.bind(url=redact_url_credentials(url))
        attempt = 1
        total_attempts = 0
        refreshed = False
        force_refresh = False
        rate_limit_waits = 0

        while True:
            token = self._credentials.get_token(force_refresh=force_refresh, quiet=True)
            force_refresh = False
            total_attempts += 1

            result = self._execute_single(url, token, attempt, log)
            decision = self._policy.decide(
                result.outcome, attempt, refreshed, rate_limit_waits
            )

            if decision == RetryDecision.RETURN and result.data is not None:
                return result.data

            self._metrics.record_failure(result.outcome)

            if decision == RetryDecision.RETRY:
                log.warning(
                    "request_retry",
                    outcome=result.outcome.value,
                    status_code=result.status_code,
                    attempt=attempt,
                    max_retries=self._policy.max_retries,
                    delay_seconds=self._policy.backoff_seconds,
                )
                self._metrics.record_retry()
                self._sleep(self._policy.backoff_seconds)
                attempt += 1
            elif decision == RetryDecision.WAIT_AND_RETRY:
                delay = self._policy.rate_limit_delay(result.retry_after)
                rate_limit_waits += 1
                log.warning(
                    "rate_limited",
                    retry_after_seconds=delay,
                    waits=rate_limit_waits,
                )
                self._metrics.record_rate_limit_wait(delay)
                self._sleep(delay)
            elif decision == RetryDecision.REFRESH_AND_RETRY:
                log.warning("token_rejected", attempt=attempt)
                self._metrics.record_token_refresh()
                force_refresh = True
                refreshed = True
                attempt = 1
            else:
                error = self._to_error(result, url, total_attempts)
                log.debug(
                    "request_failed",
                    outcome=result.outcome.value,
                    status_code=result.status_code,
                    attempts=total_attempts,
                    detail=result.message,
                )
                raise error

    def _execute_single(
        self,
        url: str,
        token: str,
        attempt: int,
        log: structlog.typing.FilteringBoundLogger,
    ) -> AttemptResult:
        """Send one request and classify the response.

        Args:
            url: Catalog URL.
            token: Bearer token.
            attempt: Current attempt number.
            log: Bound logger.

        Returns:
            Classified attempt result.
        """
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"{AUTH_SCHEME} {token}",
            "User-Agent": self._settings.sync.user_agent,
        }
        log.debug("request_sent", attempt=attempt, headers=redact_headers(headers))

        start_time_ns = time.perf_counter_ns()
        try:
            response = self._client.get(
                url,
                headers=headers,
                timeout=self._settings.sync.timeout_seconds,
            )
        except httpx.HTTPError as e:
            log.warning("transport_error", attempt=attempt, error=str(e))
            return AttemptResult(
                outcome=RequestOutcome.NETWORK_ERROR,
                message=f"{type(e).__name__}: {e}",
            )
        finally:
            self._metrics.record_duration(
                (time.perf_counter_ns() - start_time_ns) / 1_000_000
            )

        self._metrics.record_request(response.status_code, len(response.content))
        return self._classify(response)

    def _classify(self, response: httpx.Response) -> AttemptResult:
        """Map a response onto a RequestOutcome."""
        status = response.status_code
        body = response.text

        if status == HTTP_STATUS_OK:
            try:
                data = response.json()
            except ValueError:
                data = None
            if isinstance(data, dict):
                return AttemptResult(
                    outcome=RequestOutcome.SUCCESS, status_code=status, data=data
                )
            return AttemptResult(
                outcome=RequestOutcome.SERVER_ERROR,
                status_code=status,
                body=body,
                message="Response body is not a JSON object",
            )

        if status == HTTP_STATUS_TOO_MANY_REQUESTS:
            return AttemptResult(
                outcome=RequestOutcome.RATE_LIMITED,
                status_code=status,
                body=body,
                retry_after=parse_retry_after(response.headers.get("retry-after")),
                message="Rate limited (429 Too Many Requests)",
            )

        if status == HTTP_STATUS_UNAUTHORIZED:
            return AttemptResult(
                outcome=RequestOutcome.UNAUTHORIZED,
                status_code=status,
                body=body,
                message="Unauthorized (401)",
            )

        if status >= HTTP_STATUS_SERVER_ERROR_MIN:
            return AttemptResult(
                outcome=RequestOutcome.SERVER_ERROR,
                status_code=status,
                body=body,
                message=f"Server error ({status})",
            )

        return AttemptResult(
            outcome=RequestOutcome.CLIENT_ERROR,
            status_code=status,
            body=body,
            message=f"Client error ({status})",
        )

    def _to_error(self, result: AttemptResult, url: str, attempts: int) -> SyncError:
        """Build the exception for a failed request."""
        if result.outcome == RequestOutcome.NETWORK_ERROR:
            return TransportError(
                f"Network error after {attempts} attempts: {result.message}",
                url=url,
                attempts=attempts,
            )
        if result.outcome == RequestOutcome.SERVER_ERROR:
            return ServerError(
                f"{result.message} after {attempts} attempts",
                url=url,
                status_code=result.status_code,
                attempts=attempts,
                body=result.body,
            )
        if result.outcome == RequestOutcome.RATE_LIMITED:
            return RateLimitError(
                f"Still rate limited after {self._policy.max_rate_limit_waits} waits",
                url=url,
                retry_after=result.retry_after,
                attempts=attempts,
            )
        if result.outcome == RequestOutcome.UNAUTHORIZED:
            return AuthError(
                "Token refresh failed; still getting 401",
                status_code=result.status_code,
                body=result.body,
            )
        return ClientError(
            f"API failed with status {result.status_code}",
            url=url,
            status_code=result.status_code,
            attempts=attempts,
            body=result.body,
        )
