"""Unit tests for the CLI commands."""

from collections.abc import Iterator
from pathlib import Path

import httpx
import pytest
import yaml
from click.testing import CliRunner

from src.cli.sync import cli
from src.lock.process_lock import ProcessLock
from tests.helpers.http import FakeCatalogApi, make_items
from tests.helpers.sinks import make_test_logger


@pytest.fixture
def workdir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[Path]:
    """Run in an empty directory with no INVENTORY_SYNC_* credentials."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("INVENTORY_SYNC_EMAIL", raising=False)
    monkeypatch.delenv("INVENTORY_SYNC_PASSWORD", raising=False)
    yield tmp_path


def _write_config(directory: Path, **sections: object) -> Path:
    config: dict[str, object] = {
        "email": "ops@example.test",
        "password": "hunter2",
        "base_url": "https://api.example.test",
        "sync": {"rate_limit_sleep_seconds": 0, "network_retry_delay_seconds": 0},
        "paths": {"data_dir": str(directory / "data")},
        "logging": {"path": str(directory / "logs" / "sync.log")},
    }
    config.update(sections)
    path = directory / "config.yaml"
    path.write_text(yaml.safe_dump(config), encoding="utf-8")
    return path


def _use_api(monkeypatch: pytest.MonkeyPatch, api: FakeCatalogApi) -> None:
    monkeypatch.setattr("src.cli.sync._http_client", api.client)


class TestCheckConfig:
    """Tests for the check-config command."""

    def test_valid_config(self, workdir: Path) -> None:
        """Test that a valid config is summarised with exit code 0."""
        config = _write_config(workdir)

        result = CliRunner().invoke(cli, ["check-config", "--config", str(config)])

        assert result.exit_code == 0
        assert "Configuration is valid!" in result.output
        assert "Batch limit: 200" in result.output
        assert "hunter2" not in result.output

    def test_invalid_config_prints_hints(self, workdir: Path) -> None:
        """Test that validation errors are listed with hints and exit code 1."""
        config = _write_config(workdir, sync={"batch_limit": 0})

        result = CliRunner().invoke(cli, ["check-config", "--config", str(config)])

        assert result.exit_code == 1
        assert "sync.batch_limit" in result.output
        assert "Hint:" in result.output

    def test_missing_credentials(self, workdir: Path) -> None:
        """Test that missing credentials fail validation."""
        result = CliRunner().invoke(cli, ["check-config"])

        assert result.exit_code == 1
        assert "email" in result.output


class TestRunCommand:
    """Tests for the run command."""

    def test_successful_run(self, workdir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that a run publishes the catalog and exits 0."""
        api = FakeCatalogApi(pages=[make_items(30), make_items(10, 30)])
        _use_api(monkeypatch, api)
        config = _write_config(workdir)

        result = CliRunner().invoke(cli, ["run", "--config", str(config), "--quiet"])

        assert result.exit_code == 0, result.output
        assert "Sync complete. 40 products" in result.output
        assert (workdir / "data" / "inventory.json").exists()
        assert (workdir / "logs" / "sync.log").exists()
        summary = (workdir / "logs" / "sync_summary.log").read_text(encoding="utf-8")
        assert "SUCCESS" in summary
        assert "Products: 40" in summary

    def test_log_lines_echoed_unless_quiet(
        self, workdir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that log lines are echoed to stdout without --quiet."""
        api = FakeCatalogApi(pages=[make_items(30)])
        _use_api(monkeypatch, api)
        config = _write_config(workdir)

        result = CliRunner().invoke(cli, ["run", "--config", str(config)])

        assert result.exit_code == 0, result.output
        assert "[INFO] sync_started" in result.output

    def test_already_running_exits_zero(
        self, workdir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a held lock exits 0 without any network call."""
        api = FakeCatalogApi(pages=[make_items(30)])
        _use_api(monkeypatch, api)
        config = _write_config(workdir)
        log, _ = make_test_logger()
        holder = ProcessLock(
            workdir / "data" / "sync.lock", log, install_signal_handlers=False
        )
        handle = holder.acquire()
        assert handle is not None

        try:
            result = CliRunner().invoke(cli, ["run", "--config", str(config), "-q"])
        finally:
            handle.release()

        assert result.exit_code == 0
        assert "already running" in result.output
        assert api.requests == []

    def test_failure_exits_one(self, workdir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that a fatal error exits 1 and publishes nothing."""
        api = FakeCatalogApi()
        api.products_script.append(httpx.Response(400, text="bad request"))
        _use_api(monkeypatch, api)
        config = _write_config(workdir)

        result = CliRunner().invoke(cli, ["run", "--config", str(config), "-q"])

        assert result.exit_code == 1
        assert "Sync failed" in result.output
        assert not (workdir / "data" / "inventory.json").exists()
        assert not (workdir / "data" / "inventory.json.tmp").exists()
        assert not (workdir / "data" / "sync.lock").exists()
        log_text = (workdir / "logs" / "sync.log").read_text(encoding="utf-8")
        assert "sync_failed" in log_text
        assert "error_class='CLIENT'" in log_text
        assert log_text.count("[ERROR]") == 1

    def test_unwritable_output_exits_one(
        self, workdir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a filesystem failure on the output is reported, not a traceback."""
        api = FakeCatalogApi(pages=[make_items(5)])
        _use_api(monkeypatch, api)
        (workdir / "data").mkdir()
        (workdir / "data" / "out").write_text("not a directory", encoding="utf-8")
        config = _write_config(
            workdir,
            paths={"data_dir": str(workdir / "data"), "output": "out/inventory.json"},
        )

        result = CliRunner().invoke(cli, ["run", "--config", str(config), "-q"])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Sync failed" in result.output
        log_text = (workdir / "logs" / "sync.log").read_text(encoding="utf-8")
        assert "error_class='INTEGRITY'" in log_text


class TestTokenCommand:
    """Tests for the token command."""

    def test_renews_when_no_cache(self, workdir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that a missing credential is renewed and saved."""
        api = FakeCatalogApi()
        _use_api(monkeypatch, api)
        config = _write_config(workdir)

        result = CliRunner().invoke(cli, ["token", "--config", str(config)])

        assert result.exit_code == 0, result.output
        assert "No valid cached token." in result.output
        assert "Token renewed" in result.output
        assert (workdir / "data" / "token_store.json").exists()

    def test_uses_cache_then_forces(
        self, workdir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a cached token is reported and --force renews it anyway."""
        api = FakeCatalogApi()
        _use_api(monkeypatch, api)
        config = _write_config(workdir)
        runner = CliRunner()
        runner.invoke(cli, ["token", "--config", str(config)])

        cached = runner.invoke(cli, ["token", "--config", str(config)])
        forced = runner.invoke(cli, ["token", "--config", str(config), "--force"])

        assert "Cached token valid for" in cached.output
        assert "Token renewed" not in cached.output
        assert "Token renewed" in forced.output
        assert len(api.auth_requests) == 2

    def test_renewal_failure_exits_one(
        self, workdir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a rejected login exits 1."""
        api = FakeCatalogApi()
        api.auth_script.append(httpx.Response(401, text="invalid login"))
        _use_api(monkeypatch, api)
        config = _write_config(workdir)

        result = CliRunner().invoke(cli, ["token", "--config", str(config)])

        assert result.exit_code == 1
        assert "Token renewal failed" in result.output
