"""Application settings powered by Pydantic BaseSettings."""

from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.constants import AUTH_PATH, PRODUCTS_PATH


VALID_URL_SCHEMES = ("http://", "https://")


class SyncTuning(BaseModel):
    """Request pacing and retry tuning.

    Defaults target roughly 550 requests per hour against a remote ceiling
    of 600 per hour.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    batch_limit: Annotated[int, Field(ge=1, le=1000)] = 200
    timeout_seconds: Annotated[float, Field(gt=0, le=600)] = 60.0
    retries: Annotated[int, Field(ge=0, le=50)] = 5
    rate_limit_sleep_seconds: Annotated[float, Field(ge=0)] = 6.5
    network_retry_delay_seconds: Annotated[float, Field(ge=0)] = 2.0
    default_retry_after_seconds: Annotated[float, Field(ge=0)] = 60.0
    max_rate_limit_waits: int | None = Field(
        default=None,
        ge=1,
        description="Abort after this many 429 waits for one request; None waits forever",
    )
    user_agent: Annotated[str, Field(min_length=1, max_length=200)] = (
        "inventory-sync/1.0"
    )


class AuthTuning(BaseModel):
    """Credential lifetime settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Server states 8h; 7h leaves a margin.
    token_lifetime_seconds: Annotated[int, Field(ge=60)] = 7 * 60 * 60
    refresh_skew_seconds: Annotated[int, Field(ge=0)] = 300


class PathSettings(BaseModel):
    """Filesystem locations of the shared artifacts."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    data_dir: Path = Path()
    token_store: Path = Path("token_store.json")
    lock: Path = Path("sync.lock")
    output: Path = Path("inventory.json")
    stale_lock_seconds: Annotated[int, Field(ge=60)] = 7200
    min_output_bytes: Annotated[int, Field(ge=0)] = 1024

    def resolve(self, path: Path) -> Path:
        """Resolve a path relative to data_dir."""
        if path.is_absolute():
            return path
        return self.data_dir / path

    @property
    def token_store_path(self) -> Path:
        """Get the credential artifact path."""
        return self.resolve(self.token_store)

    @property
    def lock_path(self) -> Path:
        """Get the lock artifact path."""
        return self.resolve(self.lock)

    @property
    def output_path(self) -> Path:
        """Get the published output path."""
        return self.resolve(self.output)

    @property
    def temp_output_path(self) -> Path:
        """Get the temporary output path (sibling of the published file)."""
        output = self.output_path
        return output.with_suffix(output.suffix + ".tmp")


class LoggingSettings(BaseModel):
    """Log sink settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: Path = Path("logs/sync.log")
    max_bytes: Annotated[int, Field(ge=1024)] = 5 * 1024 * 1024
    max_backups: Annotated[int, Field(ge=0, le=100)] = 5
    echo: bool = True

    @property
    def summary_path(self) -> Path:
        """Get the run summary log path (next to the main log)."""
        return self.path.parent / "sync_summary.log"


class SyncSettings(BaseSettings):
    """Immutable configuration supplied to the sync core at startup."""

    model_config = SettingsConfigDict(
        env_prefix="INVENTORY_SYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    email: Annotated[str, Field(min_length=1)]
    password: SecretStr
    base_url: str = "https://api.dropshipzone.com.au"
    sync: SyncTuning = Field(default_factory=SyncTuning)
    auth: AuthTuning = Field(default_factory=AuthTuning)
    paths: PathSettings = Field(default_factory=PathSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and strip the trailing slash."""
        if not v.startswith(VALID_URL_SCHEMES):
            msg = f"base_url must start with http:// or https://, got '{v}'"
            raise ValueError(msg)
        return v.rstrip("/")

    @property
    def auth_url(self) -> str:
        """Get the auth endpoint URL."""
        return f"{self.base_url}{AUTH_PATH}"

    @property
    def products_url(self) -> str:
        """Get the catalog endpoint URL (without query)."""
        return f"{self.base_url}{PRODUCTS_PATH}"
