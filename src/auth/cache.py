"""Bearer credential cache with transparent renewal."""

import json
import time
from collections.abc import Callable
from http import HTTPStatus

import httpx
import structlog

from src.auth.models import Credential
from src.auth.store import TokenStore
from src.core.constants import COMPONENT_AUTH
from src.core.errors import AuthError
from src.settings.app import SyncSettings


def extract_token(body: str) -> str | None:
    """Extract a bearer token from an auth response body.

    The upstream API documents its response shape inconsistently, so three
    shapes are accepted, in order:

    1. a JSON object with a truthy ``token`` or ``access_token``;
    2. a JSON string (the string itself is the token);
    3. any other body whose trimmed text does not start with ``{``
       (treated as a raw token).

    This is a compatibility shim; do not tighten it without confirming the
    upstream contract.

    Args:
        body: Raw response text.

    Returns:
        The token, or None if none can be extracted.
    """
    try:
        parsed = json.loads(body)
    except ValueError:
        parsed = None

    if isinstance(parsed, dict):
        token = parsed.get("token") or parsed.get("access_token")
        if token:
            return str(token)
    elif isinstance(parsed, str) and parsed:
        return parsed

    stripped = body.strip()
    if stripped and not stripped.startswith("{"):
        return stripped
    return None


class CredentialCache:
    """Owns the persisted bearer credential and its renewal protocol.

    Renewal is a single POST to the auth endpoint; failures are not retried
    here. A credential that cannot be persisted is still returned to the
    caller and kept in memory for the rest of the session; only the cache for
    the next invocation is degraded.
    """

    def __init__(
        self,
        settings: SyncSettings,
        client: httpx.Client,
        log: structlog.typing.FilteringBoundLogger,
        store: TokenStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the credential cache.

        Args:
            settings: Sync settings (credentials, URLs, lifetimes).
            client: HTTP client used for the auth request.
            log: Logger bound to the session sink.
            store: Token store; defaults to the configured token-store path.
            clock: Epoch-time source.
        """
        self._settings = settings
        self._client = client
        self._store = store or TokenStore(settings.paths.token_store_path)
        self._clock = clock
        self._log = log.bind(component=COMPONENT_AUTH)
        self._renewals = 0
        self._credential: Credential | None = None

    @property
    def renewals(self) -> int:
        """Get the number of renewals performed by this cache."""
        return self._renewals

    def get_token(self, force_refresh: bool = False, quiet: bool = False) -> str:
        """Return a valid bearer token, renewing it when needed.

        Args:
            force_refresh: Skip the cached credential and renew unconditionally.
            quiet: Suppress the cached-token notice.

        Returns:
            Bearer token.

        Raises:
            AuthError: If renewal fails.
        """
        if not force_refresh:
            now = self._clock()
            credential = self._current(now)
            if credential is not None:
                if not quiet:
                    self._log.info(
                        "token_cached",
                        minutes_remaining=credential.minutes_remaining(now),
                    )
                return credential.token

        self._log.info("token_renewal_started", forced=force_refresh)
        return self._renew()

    def _current(self, now: float) -> Credential | None:
        """Return the valid credential, preferring the one renewed in this session."""
        skew = self._settings.auth.refresh_skew_seconds
        if self._credential is not None and self._credential.is_valid(now, skew):
            return self._credential
        stored = self._store.read()
        if stored is not None and stored.is_valid(now, skew):
            return stored
        return None

    def _renew(self) -> str:
        """Request a new token and persist it.

        Returns:
            The new bearer token.

        Raises:
            AuthError: On transport failure, non-200 status, or missing token.
        """
        url = self._settings.auth_url
        log = self._log.bind(url=url)

        try:
            response = self._client.post(
                url,
                json={
                    "email": self._settings.email,
                    "password": self._settings.password.get_secret_value(),
                },
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": self._settings.sync.user_agent,
                },
                timeout=self._settings.sync.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            log.error("token_renewal_network_error", error=str(exc))
            msg = f"Network error during authentication: {exc}"
            raise AuthError(msg) from exc

        body = response.text
        if response.status_code != HTTPStatus.OK:
            log.error(
                "token_renewal_failed",
                status_code=response.status_code,
                body=body[:500],
            )
            msg = f"Auth failed (HTTP {response.status_code})"
            raise AuthError(msg, status_code=response.status_code, body=body)

        token = extract_token(body)
        if not token:
            log.error("token_missing_in_response", body=body[:500])
            msg = "Could not find token in auth response"
            raise AuthError(msg, status_code=response.status_code, body=body)

        credential = Credential.issue(
            token, self._clock(), self._settings.auth.token_lifetime_seconds
        )
        self._credential = credential
        self._renewals += 1

        try:
            self._store.write(credential)
        except OSError as exc:
            log.warning(
                "token_persist_failed",
                path=str(self._store.path),
                error=str(exc),
            )
        else:
            log.info("token_saved", expires_at=credential.expires_at)

        return token
