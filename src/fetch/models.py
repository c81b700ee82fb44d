"""Data models and retry policy for the paginated fetch engine."""

from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field


class RequestOutcome(str, Enum):
    """Classification of a single request attempt.

    - SUCCESS: HTTP 200 with a JSON object body
    - NETWORK_ERROR: Transport failure (timeout, connection, protocol)
    - RATE_LIMITED: 429 Too Many Requests
    - UNAUTHORIZED: 401, the credential was rejected
    - SERVER_ERROR: 5xx, or a 200 whose body is not a JSON object
    - CLIENT_ERROR: Any other non-200 status
    """

    SUCCESS = "SUCCESS"
    NETWORK_ERROR = "NETWORK_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    UNAUTHORIZED = "UNAUTHORIZED"
    SERVER_ERROR = "SERVER_ERROR"
    CLIENT_ERROR = "CLIENT_ERROR"


class RetryDecision(str, Enum):
    """What the request loop does after an attempt."""

    RETURN = "RETURN"
    RETRY = "RETRY"
    WAIT_AND_RETRY = "WAIT_AND_RETRY"
    REFRESH_AND_RETRY = "REFRESH_AND_RETRY"
    FAIL = "FAIL"


class AttemptResult(BaseModel):
    """Result of one request attempt."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    outcome: RequestOutcome
    status_code: int | None = Field(
        default=None, description="HTTP status code if a response was received"
    )
    body: str = Field(default="", description="Raw response text")
    data: dict[str, Any] | None = Field(
        default=None, description="Parsed body on SUCCESS"
    )
    retry_after: float | None = Field(
        default=None, description="Retry-After seconds (for 429)"
    )
    message: str = Field(default="", description="Human-readable detail")


class PageResult(BaseModel):
    """One page of the catalog: its raw items and the reported page count."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    items: list[Any] | None = Field(
        default=None, description="Raw items; None when the response carried no list"
    )
    total_pages: Annotated[int, Field(ge=0)] = 1

    @property
    def has_items(self) -> bool:
        """Check whether the response carried an item list."""
        return self.items is not None


class RetryPolicy(BaseModel):
    """Per-outcome retry policy for catalog requests.

    Attempts are counted from 1. Network and server errors are retried while
    attempt <= max_retries, so a persistently failing request is tried
    max_retries + 1 times. Rate limiting never consumes the retry budget.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_retries: Annotated[int, Field(ge=0)] = 5
    backoff_seconds: Annotated[float, Field(ge=0)] = 2.0
    default_retry_after_seconds: Annotated[float, Field(ge=0)] = 60.0
    max_rate_limit_waits: Annotated[int, Field(ge=1)] | None = None

    def decide(
        self,
        outcome: RequestOutcome,
        attempt: int,
        refreshed: bool = False,
        rate_limit_waits: int = 0,
    ) -> RetryDecision:
        """Decide the next step after an attempt.

        Args:
            outcome: Classification of the attempt.
            attempt: Current attempt number (1-indexed).
            refreshed: Whether the credential was already force-refreshed
                for this request.
            rate_limit_waits: 429 waits already performed for this request.

        Returns:
            The decision for the request loop.
        """
        if outcome == RequestOutcome.SUCCESS:
            return RetryDecision.RETURN

        if outcome in (RequestOutcome.NETWORK_ERROR, RequestOutcome.SERVER_ERROR):
            if attempt <= self.max_retries:
                return RetryDecision.RETRY
            return RetryDecision.FAIL

        if outcome == RequestOutcome.RATE_LIMITED:
            if (
                self.max_rate_limit_waits is not None
                and rate_limit_waits >= self.max_rate_limit_waits
            ):
                return RetryDecision.FAIL
            return RetryDecision.WAIT_AND_RETRY

        if outcome == RequestOutcome.UNAUTHORIZED:
            if refreshed:
                return RetryDecision.FAIL
            return RetryDecision.REFRESH_AND_RETRY

        return RetryDecision.FAIL

    def rate_limit_delay(self, retry_after: float | None) -> float:
        """Get the wait before retrying a 429 (Retry-After or the default)."""
        if retry_after is None:
            return self.default_retry_after_seconds
        return retry_after
