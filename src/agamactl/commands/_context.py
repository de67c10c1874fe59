"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Runs service coroutines against a fresh
:class:`InstallerClient` and centralizes result emission (stdout/stderr
routing + exit codes).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import click

from agamactl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from agamactl.clients.installer import InstallerClient
    from agamactl.config.settings import AgamaSettings
    from agamactl.services.result import ServiceResult


def create_client(settings: AgamaSettings) -> InstallerClient:
    """Build the client commands run against (replaced in tests)."""
    from agamactl.clients.installer import InstallerClient

    return InstallerClient.from_settings(settings)


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The client is created per command run, so ``--help`` and
    ``--version`` never touch the bus.
    """

    def __init__(self, settings: AgamaSettings) -> None:
        self.settings = settings

        from agamactl.config.logging import configure_logging

        configure_logging(
            verbose=settings.verbose,
            log_json=settings.log_json,
            debug_transport=settings.debug_bus,
        )

        # Enable telemetry context var when verbose
        if settings.verbose:
            from agamactl.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def output_settings(self) -> OutputSettings:
        return OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )

    def run(self, operation: Callable[[InstallerClient], Awaitable[ServiceResult]]) -> ServiceResult:
        """Run *operation* on a new client inside a fresh event loop, then close the client."""

        async def main() -> ServiceResult:
            async with create_client(self.settings) as client:
                return await operation(client)

        return asyncio.run(main())

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings go to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = self.output_settings
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
