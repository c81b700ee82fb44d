"""Settings loading from environment and an optional YAML file."""

from pathlib import Path

import yaml
from pydantic import ValidationError

from src.core.errors import SettingsError
from src.settings.app import SyncSettings


def _load_yaml_file(file_path: Path) -> dict[str, object]:
    """Load a YAML mapping from disk.

    Args:
        file_path: Path to the YAML file.

    Returns:
        Parsed mapping (empty for an empty file).

    Raises:
        SettingsError: If the file is missing, unparseable, or not a mapping.
    """
    try:
        content = file_path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        msg = f"Config file not found: {file_path}"
        raise SettingsError(
            msg, [{"loc": str(file_path), "msg": str(e), "type": "file_not_found"}]
        ) from e

    try:
        parsed = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in {file_path}"
        raise SettingsError(
            msg, [{"loc": str(file_path), "msg": str(e), "type": "yaml_parse_error"}]
        ) from e

    if not isinstance(parsed, dict):
        msg = f"Config file {file_path} must contain a mapping"
        raise SettingsError(
            msg, [{"loc": str(file_path), "msg": msg, "type": "dict_type"}]
        )
    return parsed


def load_settings(config_path: Path | None = None) -> SyncSettings:
    """Load settings, layering an optional YAML file over the environment.

    Values from the YAML file take precedence over INVENTORY_SYNC_* variables
    and the .env file.

    Args:
        config_path: Optional path to a YAML config file.

    Returns:
        Validated, immutable settings.

    Raises:
        SettingsError: If loading or validation fails.
    """
    overrides = _load_yaml_file(config_path) if config_path else {}

    try:
        return SyncSettings(**overrides)  # type: ignore[arg-type]
    except ValidationError as e:
        errors: list[dict[str, object]] = [
            {
                "loc": ".".join(str(part) for part in error["loc"]),
                "msg": error["msg"],
                "type": error["type"],
            }
            for error in e.errors()
        ]
        msg = f"Configuration validation failed: {len(errors)} errors"
        raise SettingsError(msg, errors) from e
