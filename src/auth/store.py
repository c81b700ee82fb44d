"""File-backed persistence for the cached credential."""

import json
import os
from pathlib import Path

from pydantic import ValidationError

from src.auth.models import Credential


TOKEN_FILE_MODE = 0o600


class TokenStore:
    """Reads and atomically writes the token-store artifact.

    Writes go to a sibling ``.tmp`` file which is restricted to owner
    read/write before being renamed over the canonical path, so readers
    never observe a partially written credential.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the store.

        Args:
            path: Canonical token-store path.
        """
        self._path = path

    @property
    def path(self) -> Path:
        """Get the canonical token-store path."""
        return self._path

    @property
    def temp_path(self) -> Path:
        """Get the sibling temporary path used for atomic writes."""
        return self._path.with_suffix(self._path.suffix + ".tmp")

    def read(self) -> Credential | None:
        """Read the persisted credential.

        Returns:
            The credential, or None if the artifact is absent, unreadable,
            or does not hold a well-formed credential.
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError:
            return None

        try:
            return Credential.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError):
            return None

    def write(self, credential: Credential) -> None:
        """Persist a credential, replacing any previous one.

        Args:
            credential: Credential to persist.

        Raises:
            OSError: If the artifact cannot be written or renamed.
        """
        temp_path = self.temp_path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        try:
            temp_path.write_text(credential.model_dump_json(), encoding="utf-8")
            os.chmod(temp_path, TOKEN_FILE_MODE)
            temp_path.replace(self._path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise
