"""Application settings loading."""

from src.settings.app import (
    AuthTuning,
    LoggingSettings,
    PathSettings,
    SyncSettings,
    SyncTuning,
)
from src.settings.loader import load_settings


__all__ = [
    "AuthTuning",
    "LoggingSettings",
    "PathSettings",
    "SyncSettings",
    "SyncTuning",
    "load_settings",
]
