"""Paginated catalog fetch engine.

This module provides the catalog download loop with:
- Per-outcome retry policy (backoff, rate-limit waits, credential refresh)
- Page iteration with inter-page pacing
- Header redaction for security
- Per-session metrics collection for observability
"""

from src.fetch.client import CatalogFetcher, parse_retry_after
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


__all__ = [
    # Client
    "CatalogFetcher",
    "parse_retry_after",
    # Models
    "AttemptResult",
    "PageResult",
    "RequestOutcome",
    "RetryDecision",
    "RetryPolicy",
    "SyncSession",
    # Metrics
    "FetchMetrics",
    # Redaction
    "redact_headers",
    "redact_url_credentials",
]
