"""Shared error taxonomy and constants for the inventory sync."""

from src.core.errors import (
    AuthError,
    ClientError,
    FetchError,
    IntegrityError,
    LockError,
    RateLimitError,
    ServerError,
    SettingsError,
    SyncError,
    TransportError,
)


__all__ = [
    "AuthError",
    "ClientError",
    "FetchError",
    "IntegrityError",
    "LockError",
    "RateLimitError",
    "ServerError",
    "SettingsError",
    "SyncError",
    "TransportError",
]
