"""Domain exceptions for the inventory sync.

Every fatal condition of a sync session maps to one of these classes. They
all derive from SyncError so the session boundary and the CLI can handle the
whole family uniformly while still reporting the precise failure class.
"""

from src.core.constants import MAX_ERROR_BODY_CHARS


def _excerpt(body: str | None) -> str | None:
    """Trim a response body for inclusion in error messages."""
    if body is None:
        return None
    if len(body) <= MAX_ERROR_BODY_CHARS:
        return body
    return body[:MAX_ERROR_BODY_CHARS] + "..."


class SyncError(Exception):
    """Base exception for all sync failures.

    Attributes:
        error_class: Short machine-readable classification for logs.
    """

    error_class = "SYNC"

    def to_log_fields(self) -> dict[str, str | int | None]:
        """Return structured fields describing the failure for logging."""
        return {"error_class": self.error_class, "error": str(self)}


class SettingsError(SyncError):
    """Raised when configuration cannot be loaded or validated.

    Attributes:
        errors: Pydantic-style error details (loc, msg, type).
    """

    error_class = "SETTINGS"

    def __init__(self, message: str, errors: list[dict[str, object]] | None = None) -> None:
        """Initialize the settings error.

        Args:
            message: Human-readable error message.
            errors: Validation error details, if any.
        """
        super().__init__(message)
        self.errors = errors or []


class LockError(SyncError):
    """Raised when the process lock cannot be opened or is misused."""

    error_class = "LOCK"


class AuthError(SyncError):
    """Credential acquisition or renewal failure.

    Attributes:
        status_code: HTTP status of the auth response, None on transport failure.
        body: Response body excerpt for diagnostics.
    """

    error_class = "AUTH"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        """Initialize the auth error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code if a response was received.
            body: Raw response body if a response was received.
        """
        super().__init__(message)
        self.status_code = status_code
        self.body = _excerpt(body)

    def to_log_fields(self) -> dict[str, str | int | None]:
        """Return structured fields describing the failure for logging."""
        fields = super().to_log_fields()
        fields.update(status_code=self.status_code, body=self.body)
        return fields


class FetchError(SyncError):
    """Base class for catalog request failures.

    Attributes:
        url: Requested URL.
        status_code: Last HTTP status code, None on transport failure.
        attempts: Number of attempts made for the request.
        body: Response body excerpt, if any.
    """

    error_class = "FETCH"

    def __init__(
        self,
        message: str,
        url: str,
        status_code: int | None = None,
        attempts: int = 1,
        body: str | None = None,
    ) -> None:
        """Initialize the fetch error.

        Args:
            message: Human-readable error message.
            url: Requested URL.
            status_code: Last HTTP status code.
            attempts: Number of attempts made.
            body: Raw response body.
        """
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.attempts = attempts
        self.body = _excerpt(body)

    def to_log_fields(self) -> dict[str, str | int | None]:
        """Return structured fields describing the failure for logging."""
        fields = super().to_log_fields()
        fields.update(
            url=self.url,
            status_code=self.status_code,
            attempts=self.attempts,
            body=self.body,
        )
        return fields


class TransportError(FetchError):
    """Network-level failure that outlived the retry ceiling."""

    error_class = "TRANSPORT"


class RateLimitError(FetchError):
    """429 responses exceeded the configured maximum number of waits.

    Only raised when max_rate_limit_waits is configured; by default rate
    limiting is always waited out.
    """

    error_class = "RATE_LIMITED"

    def __init__(
        self,
        message: str,
        url: str,
        retry_after: float | None = None,
        attempts: int = 1,
    ) -> None:
        """Initialize the rate limit error.

        Args:
            message: Human-readable error message.
            url: Requested URL.
            retry_after: Last Retry-After value in seconds.
            attempts: Number of attempts made.
        """
        super().__init__(message, url=url, status_code=429, attempts=attempts)
        self.retry_after = retry_after


class ServerError(FetchError):
    """5xx (or unparseable 200) responses that outlived the retry ceiling."""

    error_class = "SERVER"


class ClientError(FetchError):
    """Non-retryable non-200 response."""

    error_class = "CLIENT"


class IntegrityError(SyncError):
    """Output artifact failed validation or could not be published.

    Attributes:
        path: Artifact path involved.
    """

    error_class = "INTEGRITY"

    def __init__(self, message: str, path: str) -> None:
        """Initialize the integrity error.

        Args:
            message: Human-readable error message.
            path: Artifact path involved.
        """
        super().__init__(message)
        self.path = path

    def to_log_fields(self) -> dict[str, str | int | None]:
        """Return structured fields describing the failure for logging."""
        fields = super().to_log_fields()
        fields["path"] = self.path
        return fields
