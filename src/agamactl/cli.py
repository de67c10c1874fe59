"""Root CLI group: global output flags, bus selection, and command registration."""

from __future__ import annotations

import click

from agamactl import __version__
from agamactl.commands import register_commands
from agamactl.commands._context import AppContext
from agamactl.config.settings import AgamaSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="agamactl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with timing spans.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("--debug-bus", is_flag=True, help="Include D-Bus library debug logs.")
@click.option(
    "--bus",
    "bus_type",
    type=click.Choice(["system", "session"]),
    default=None,
    help="Message bus the installer runs on (default: system).",
)
@click.option("--address", "bus_address", default=None, help="Explicit bus address.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    debug_bus: bool,
    bus_type: str | None,
    bus_address: str | None,
    config_path: str | None,
) -> None:
    """agamactl — inspect and drive the installer over D-Bus."""
    # Unset flags are passed as None so env vars and the TOML file still apply.
    settings = AgamaSettings.from_cli(
        config_path=config_path,
        bus_type=bus_type,
        bus_address=bus_address,
        json_output=json_output or None,
        quiet=quiet or None,
        verbose=verbose or None,
        log_json=log_json or None,
        debug_bus=debug_bus or None,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
