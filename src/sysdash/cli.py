"""Command-line entry point for sysdash."""

from pathlib import Path

import click
import structlog

from sysdash.errors import ConfigError, TerminalError

log = structlog.get_logger()


@click.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Configuration file (default: ~/.config/sysdash/config.toml).",
)
@click.option(
    "--refresh",
    "-r",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Sampling interval in seconds, overriding the config file.",
)
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging.")
@click.version_option(package_name="sysdash")
def main(config_path: Path | None, refresh: float | None, debug: bool) -> None:
    """Real-time system monitor dashboard for the terminal."""
    from sysdash.app import run
    from sysdash.config import Settings
    from sysdash.logging import configure

    try:
        settings = Settings.load(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    if refresh is not None:
        settings.dashboard.refresh_rate_ms = max(1, round(refresh * 1000))
    settings.debug = debug

    try:
        configure(settings.log_path, debug=debug)
    except OSError as e:
        raise click.ClickException(f"Could not open log file {settings.log_path}: {e}") from e

    log.info(
        "configuration_loaded",
        path=str(config_path or settings.config_path),
        refresh_ms=settings.dashboard.refresh_rate_ms,
    )

    try:
        exit_code = run(settings)
    except TerminalError as e:
        log.error("terminal_error", error=str(e))
        raise click.ClickException(str(e)) from e

    log.info("shutdown_complete", exit_code=exit_code)
    if exit_code:
        raise SystemExit(exit_code)
