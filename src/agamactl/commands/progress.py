"""Command: installation progress, once or watched until finished."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from agamactl.commands._base import AgamaCommand
from agamactl.services.progress import ProgressService

if TYPE_CHECKING:
    from agamactl.commands._context import AppContext
    from agamactl.domain.snapshots import Progress


@click.command(
    cls=AgamaCommand,
    examples="""\
  agamactl progress
  agamactl progress --software
  agamactl progress --watch
  agamactl progress --watch --timeout 600""",
)
@click.option("--software", "software_only", is_flag=True, help="Software sub-progress only.")
@click.option("--watch", is_flag=True, help="Follow progress until the installation finishes.")
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Stop watching after this many seconds.",
)
@click.pass_obj
def progress(app: AppContext, software_only: bool, watch: bool, timeout: float | None) -> None:
    """Show installation progress."""
    if software_only:
        app.emit(app.run(lambda client: ProgressService(client).software_progress()))
        return
    if not watch:
        app.emit(app.run(lambda client: ProgressService(client).progress()))
        return

    settings = app.output_settings
    live = not (settings.json_output or settings.quiet)

    def show(update: Progress) -> None:
        if live:
            from agamactl.output.renderers import render_progress

            click.echo(render_progress(update.model_dump()))

    app.emit(app.run(lambda client: ProgressService(client).watch(show, timeout=timeout)))
