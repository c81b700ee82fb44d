"""CLI commands for the inventory sync."""

import logging
import sys
import time
from pathlib import Path

import click
import httpx
import structlog

from src.auth.cache import CredentialCache
from src.auth.store import TokenStore
from src.core.constants import COMPONENT_CLI
from src.core.errors import SettingsError, SyncError
from src.fetch.redact import redact_url_credentials
from src.observability.logging import make_logger
from src.observability.sink import FileSink
from src.settings.app import SyncSettings
from src.settings.error_hints import format_validation_error
from src.settings.loader import load_settings
from src.sync.runner import InventorySync, SyncOutcome


def _load_or_exit(config_path: Path | None) -> SyncSettings:
    """Load settings, printing hinted validation errors and exiting on failure."""
    try:
        return load_settings(config_path)
    except SettingsError as e:
        click.echo("Configuration validation failed:", err=True)
        for error in e.errors:
            formatted = format_validation_error(
                location=str(error.get("loc", "")),
                message=str(error.get("msg", "")),
                error_type=str(error.get("type", "unknown")),
                include_hint=True,
            )
            click.echo(f"  - {formatted}", err=True)
        if not e.errors:
            click.echo(f"  - {e}", err=True)
        sys.exit(1)


def _build_logger(
    settings: SyncSettings, verbose: bool, quiet: bool
) -> structlog.typing.FilteringBoundLogger:
    """Build the session logger writing to the rotating log file.

    Args:
        settings: Loaded settings.
        verbose: Emit debug events.
        quiet: Do not echo log lines to stdout.

    Returns:
        Bound logger.
    """
    log_settings = settings.logging
    echo = sys.stdout if log_settings.echo and not quiet else None
    sink = FileSink(
        log_settings.path,
        max_bytes=log_settings.max_bytes,
        max_backups=log_settings.max_backups,
        echo=echo,
    )
    level = logging.DEBUG if verbose else logging.INFO
    return make_logger(sink, level=level)


def _http_client() -> httpx.Client:
    """Build the HTTP client shared by auth and catalog requests."""
    return httpx.Client()


_config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to a YAML config file (overrides INVENTORY_SYNC_* variables).",
)


@click.group()
@click.version_option(version="1.0.0")
def cli() -> None:
    """Inventory catalog sync CLI."""


@cli.command()
@_config_option
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Only write to the log file, not to stdout.",
)
def run(config_path: Path | None, verbose: bool, quiet: bool) -> None:
    """Download the full catalog and publish it atomically.

    Exits 0 when the catalog was published or another sync is already
    running, 1 on any failure. The previously published file is left
    untouched on failure.
    """
    settings = _load_or_exit(config_path)
    root_log = _build_logger(settings, verbose, quiet)
    log = root_log.bind(component=COMPONENT_CLI, command="run")
    log.info(
        "sync_started",
        base_url=redact_url_credentials(settings.base_url),
        output=str(settings.paths.output_path),
    )

    with _http_client() as client:
        sync = InventorySync(settings, root_log, client)
        try:
            outcome = sync.run()
        except SyncError as e:
            click.echo(f"Sync failed: {e}", err=True)
            sys.exit(1)

    if outcome == SyncOutcome.ALREADY_RUNNING:
        click.echo("Another sync is already running; nothing to do.")
        return

    records = sync.session.total_processed if sync.session else 0
    click.echo(f"Sync complete. {records} products saved to {settings.paths.output_path}")


@cli.command("check-config")
@_config_option
def check_config(config_path: Path | None) -> None:
    """Validate configuration without making any network calls."""
    settings = _load_or_exit(config_path)

    click.echo("Configuration is valid!")
    click.echo(f"  Base URL: {settings.base_url}")
    click.echo(f"  Account: {settings.email}")
    click.echo(f"  Batch limit: {settings.sync.batch_limit}")
    click.echo(f"  Retries: {settings.sync.retries}")
    click.echo(f"  Output: {settings.paths.output_path}")
    click.echo(f"  Lock: {settings.paths.lock_path}")
    click.echo(f"  Token store: {settings.paths.token_store_path}")
    click.echo(f"  Log: {settings.logging.path}")


@cli.command()
@_config_option
@click.option(
    "--force",
    is_flag=True,
    help="Renew the token even if the cached one is still valid.",
)
def token(config_path: Path | None, force: bool) -> None:
    """Show the cached credential status, renewing it when needed."""
    settings = _load_or_exit(config_path)
    root_log = _build_logger(settings, verbose=False, quiet=True)

    store = TokenStore(settings.paths.token_store_path)
    cached = store.read()
    now = time.time()
    if cached is not None and cached.is_valid(now, settings.auth.refresh_skew_seconds):
        click.echo(f"Cached token valid for {cached.minutes_remaining(now)} more minutes.")
    else:
        click.echo("No valid cached token.")

    with _http_client() as client:
        credentials = CredentialCache(settings, client, root_log, store=store)
        try:
            credentials.get_token(force_refresh=force, quiet=True)
        except SyncError as e:
            click.echo(f"Token renewal failed: {e}", err=True)
            sys.exit(1)

    if credentials.renewals:
        click.echo(f"Token renewed and saved to {store.path}")


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
