"""Unit tests for settings loading."""

from pathlib import Path

import pytest

from src.core.errors import SettingsError
from src.settings.loader import load_settings


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> pytest.MonkeyPatch:
    """Isolate from any .env file and provide required credentials."""
    monkeypatch.chdir(tmp_path)
    for name in ("INVENTORY_SYNC_EMAIL", "INVENTORY_SYNC_PASSWORD", "INVENTORY_SYNC_BASE_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("INVENTORY_SYNC_EMAIL", "ops@example.test")
    monkeypatch.setenv("INVENTORY_SYNC_PASSWORD", "s3cret")
    return monkeypatch


class TestLoadSettings:
    """Tests for load_settings."""

    def test_defaults_from_environment(self, env: pytest.MonkeyPatch) -> None:
        """Test that required values come from the environment with defaults."""
        settings = load_settings()

        assert settings.email == "ops@example.test"
        assert settings.password.get_secret_value() == "s3cret"
        assert settings.sync.batch_limit == 200
        assert settings.sync.timeout_seconds == 60.0
        assert settings.sync.retries == 5
        assert settings.sync.rate_limit_sleep_seconds == 6.5
        assert settings.auth.token_lifetime_seconds == 25200
        assert settings.paths.min_output_bytes == 1024
        assert settings.logging.max_bytes == 5 * 1024 * 1024

    def test_password_not_exposed_in_repr(self, env: pytest.MonkeyPatch) -> None:
        """Test that the password is masked."""
        assert "s3cret" not in repr(load_settings())

    def test_nested_environment_override(self, env: pytest.MonkeyPatch) -> None:
        """Test the __ nested delimiter."""
        env.setenv("INVENTORY_SYNC_SYNC__BATCH_LIMIT", "50")

        assert load_settings().sync.batch_limit == 50

    def test_yaml_overrides_environment(
        self, env: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """Test that YAML values take precedence."""
        config = tmp_path / "config.yaml"
        config.write_text(
            "base_url: https://staging.example.test/\n"
            "sync:\n"
            "  retries: 2\n"
            "paths:\n"
            "  data_dir: /var/lib/inventory\n",
            encoding="utf-8",
        )

        settings = load_settings(config)

        assert settings.base_url == "https://staging.example.test"
        assert settings.sync.retries == 2
        assert settings.paths.output_path == Path("/var/lib/inventory/inventory.json")
        assert settings.paths.temp_output_path == Path(
            "/var/lib/inventory/inventory.json.tmp"
        )

    def test_derived_urls(self, env: pytest.MonkeyPatch) -> None:
        """Test auth and catalog URLs."""
        settings = load_settings()

        assert settings.auth_url == "https://api.dropshipzone.com.au/auth"
        assert settings.products_url == "https://api.dropshipzone.com.au/v2/products"

    def test_summary_log_next_to_main_log(self, env: pytest.MonkeyPatch) -> None:
        """Test the summary log location."""
        assert load_settings().logging.summary_path == Path("logs/sync_summary.log")


class TestLoadSettingsErrors:
    """Tests for settings validation failures."""

    def test_missing_credentials(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """Test that missing credentials are reported per field."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("INVENTORY_SYNC_EMAIL", raising=False)
        monkeypatch.delenv("INVENTORY_SYNC_PASSWORD", raising=False)

        with pytest.raises(SettingsError) as exc_info:
            load_settings()

        locations = {error["loc"] for error in exc_info.value.errors}
        assert locations == {"email", "password"}
        assert all(error["type"] == "missing" for error in exc_info.value.errors)

    def test_invalid_base_url(self, env: pytest.MonkeyPatch) -> None:
        """Test that a non-http base_url is rejected."""
        env.setenv("INVENTORY_SYNC_BASE_URL", "ftp://example.test")

        with pytest.raises(SettingsError) as exc_info:
            load_settings()

        assert exc_info.value.errors[0]["loc"] == "base_url"

    def test_out_of_range_value(self, env: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test that a constrained field reports its location."""
        config = tmp_path / "config.yaml"
        config.write_text("sync:\n  batch_limit: 0\n", encoding="utf-8")

        with pytest.raises(SettingsError) as exc_info:
            load_settings(config)

        assert exc_info.value.errors[0]["loc"] == "sync.batch_limit"

    def test_unknown_nested_key(self, env: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test that typos in nested sections are rejected."""
        config = tmp_path / "config.yaml"
        config.write_text("sync:\n  retires: 3\n", encoding="utf-8")

        with pytest.raises(SettingsError) as exc_info:
            load_settings(config)

        assert exc_info.value.errors[0]["type"] == "extra_forbidden"

    def test_missing_file(self, env: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test that a missing config file is reported."""
        with pytest.raises(SettingsError) as exc_info:
            load_settings(tmp_path / "absent.yaml")

        assert exc_info.value.errors[0]["type"] == "file_not_found"

    def test_invalid_yaml(self, env: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test that malformed YAML is reported."""
        config = tmp_path / "config.yaml"
        config.write_text("sync: [unclosed\n", encoding="utf-8")

        with pytest.raises(SettingsError) as exc_info:
            load_settings(config)

        assert exc_info.value.errors[0]["type"] == "yaml_parse_error"

    def test_non_mapping_yaml(self, env: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test that a YAML list is rejected."""
        config = tmp_path / "config.yaml"
        config.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(SettingsError) as exc_info:
            load_settings(config)

        assert exc_info.value.errors[0]["type"] == "dict_type"
