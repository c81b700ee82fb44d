"""Credential model for the cached bearer token."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_REFRESH_SKEW_SECONDS = 300


class Credential(BaseModel):
    """Bearer token with its creation and expiry times (epoch seconds).

    Serialized as the sole content of the token-store artifact:
    ``{"token": ..., "created_at": ..., "expires_at": ...}``.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    token: Annotated[str, Field(min_length=1)]
    created_at: int
    expires_at: int

    @classmethod
    def issue(cls, token: str, now: float, lifetime_seconds: int) -> "Credential":
        """Create a credential that expires a fixed lifetime after now.

        Args:
            token: Bearer token.
            now: Current epoch time.
            lifetime_seconds: Fixed credential lifetime.

        Returns:
            New credential.
        """
        created_at = int(now)
        return cls(
            token=token,
            created_at=created_at,
            expires_at=created_at + lifetime_seconds,
        )

    def is_valid(self, now: float, skew_seconds: int = DEFAULT_REFRESH_SKEW_SECONDS) -> bool:
        """Check validity: now < expires_at - skew."""
        return now < self.expires_at - skew_seconds

    def minutes_remaining(self, now: float) -> int:
        """Get whole minutes until expiry (rounded, never negative)."""
        return max(0, round((self.expires_at - now) / 60))
