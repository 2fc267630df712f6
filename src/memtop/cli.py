"""CLI commands for memtop."""

import sys
from pathlib import Path

import click

from memtop.formatting import parse_duration


class DurationType(click.ParamType):
    """Click parameter accepting "2s", "500ms", "1m30s" or plain seconds."""

    name = "duration"

    def convert(self, value, param, ctx) -> float:
        if isinstance(value, (int, float)):
            return float(value)
        try:
            return parse_duration(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


DURATION = DurationType()
PORT = click.IntRange(1, 65535)


def _load_config(config_path: Path | None):
    """Load config or exit with status 1 when the file is invalid."""
    from memtop import logging as mt_log
    from memtop.config import Config

    try:
        return Config.load(config_path)
    except ValueError as e:
        mt_log.config_invalid(str(e))
        raise SystemExit(1)


def _apply_overrides(
    config,
    host_opt: str | None,
    port_opt: int | None,
    host_arg: str | None,
    port_arg: int | None,
    timeout: float | None,
) -> None:
    """Layer flags, then positional args, over the loaded config."""
    if host_opt is not None:
        config.server.host = host_opt
    if port_opt is not None:
        config.server.port = port_opt
    if host_arg is not None:
        config.server.host = host_arg
    if port_arg is not None:
        config.server.port = port_arg
    if timeout is not None:
        config.server.timeout = timeout


def _has_terminal() -> bool:
    """Whether stdin and stdout are attached to a terminal."""
    return sys.stdin.isatty() and sys.stdout.isatty()


@click.group()
@click.version_option(package_name="memtop")
def main() -> None:
    """Watch a memcached server's stats live."""
    pass


@main.command()
@click.argument("host_arg", required=False)
@click.argument("port_arg", type=PORT, required=False)
@click.option("--host", "host_opt", default=None, help="memcached host [default: 127.0.0.1]")
@click.option("--port", "port_opt", type=PORT, default=None, help="memcached port [default: 11211]")
@click.option("--interval", "-i", type=DURATION, default=None, help="Refresh interval [default: 2s]")
@click.option("--timeout", "-t", type=DURATION, default=None, help="Network timeout [default: 2s]")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file to read",
)
def top(
    host_arg: str | None,
    port_arg: int | None,
    host_opt: str | None,
    port_opt: int | None,
    interval: float | None,
    timeout: float | None,
    config_path: Path | None,
) -> None:
    """Launch the live dashboard.

    Positional HOST and PORT take precedence over --host and --port, which
    take precedence over the config file.
    """
    from memtop import logging as mt_log
    from memtop.tui import run_tui

    config = _load_config(config_path)
    _apply_overrides(config, host_opt, port_opt, host_arg, port_arg, timeout)
    if interval is not None:
        config.display.interval = interval

    if not _has_terminal():
        mt_log.screen_init_failed("stdin/stdout is not a terminal")
        raise SystemExit(1)

    mt_log.configure(config)
    log = mt_log.get_structlog()
    log.info("dashboard_starting", address=config.address, interval=config.display.interval)

    try:
        code = run_tui(config)
    except OSError as e:
        log.error("screen_init_failed", error=str(e))
        mt_log.screen_init_failed(str(e))
        raise SystemExit(1)

    if code:
        raise SystemExit(code)


@main.command()
@click.argument("host_arg", required=False)
@click.argument("port_arg", type=PORT, required=False)
@click.option("--host", "host_opt", default=None, help="memcached host")
@click.option("--port", "port_opt", type=PORT, default=None, help="memcached port")
@click.option("--timeout", "-t", type=DURATION, default=None, help="Network timeout")
@click.option("--json", "as_json", is_flag=True, help="Print raw stats as JSON")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file to read",
)
def stats(
    host_arg: str | None,
    port_arg: int | None,
    host_opt: str | None,
    port_opt: int | None,
    timeout: float | None,
    as_json: bool,
    config_path: Path | None,
) -> None:
    """Fetch stats once and print them."""
    import asyncio
    import json

    from memtop import logging as mt_log
    from memtop.sampler import SampleError, fetch_stats

    config = _load_config(config_path)
    _apply_overrides(config, host_opt, port_opt, host_arg, port_arg, timeout)

    try:
        snapshot = asyncio.run(
            fetch_stats(config.server.host, config.server.port, config.server.timeout)
        )
    except SampleError as e:
        mt_log.sample_failed(config.address, str(e))
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(dict(snapshot.raw), indent=2))
        return

    if not snapshot.raw:
        click.echo("No stats returned.")
        return

    width = max(len(key) for key in snapshot.raw)
    for key, value in snapshot.raw.items():
        click.echo(f"{key:<{width}}  {value}")


@main.group()
def config() -> None:
    """Manage configuration."""
    pass


@config.command("show")
def config_show() -> None:
    """Display current configuration."""
    cfg = _load_config(None)

    click.echo(f"Config file: {cfg.config_path}")
    click.echo(f"Exists: {cfg.config_path.exists()}")
    click.echo()
    click.echo("[server]")
    click.echo(f"  host = {cfg.server.host}")
    click.echo(f"  port = {cfg.server.port}")
    click.echo(f"  timeout = {cfg.server.timeout}")
    click.echo()
    click.echo("[display]")
    click.echo(f"  interval = {cfg.display.interval}")
    click.echo()
    click.echo("[system]")
    click.echo(f"  log_max_bytes = {cfg.system.log_max_bytes}")
    click.echo(f"  log_backup_count = {cfg.system.log_backup_count}")
    click.echo()
    click.echo(f"Log file: {cfg.log_path}")


@config.command("edit")
def config_edit() -> None:
    """Open config file in editor."""
    import os
    import subprocess

    from memtop import logging as mt_log

    cfg = _load_config(None)

    if not cfg.config_path.exists():
        cfg.save()
        mt_log.config_created(str(cfg.config_path))

    editor = os.environ.get("EDITOR", "nano")
    subprocess.run([editor, str(cfg.config_path)])


@config.command("reset")
@click.confirmation_option(prompt="Reset config to defaults?")
def config_reset() -> None:
    """Reset configuration to defaults."""
    from memtop.config import Config

    cfg = Config()
    cfg.save()
    click.echo(f"Config reset to defaults at {cfg.config_path}")


if __name__ == "__main__":
    main()
