"""Credential cache: acquire, persist, validate and renew the bearer token."""

from src.auth.cache import CredentialCache, extract_token
from src.auth.models import Credential
from src.auth.store import TokenStore


__all__ = [
    "Credential",
    "CredentialCache",
    "TokenStore",
    "extract_token",
]
