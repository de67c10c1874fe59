"""Subcommand modules for agamactl.

Provides register_commands() which uses deferred imports to keep
``agamactl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the command groups and standalone commands on the root CLI group."""
    # --- Groups ---
    from agamactl.commands.software import software
    from agamactl.commands.storage import storage

    cli.add_command(software)
    cli.add_command(storage)

    # --- Standalone commands ---
    from agamactl.commands.progress import progress

    cli.add_command(progress)
