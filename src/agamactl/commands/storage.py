"""Command group: storage proposal, actions, validation, and iSCSI."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from agamactl.commands._base import AgamaGroup
from agamactl.services.storage import StorageService

if TYPE_CHECKING:
    from agamactl.commands._context import AppContext

_STORAGE_EXAMPLES = """\
  agamactl storage proposal
  agamactl storage actions
  agamactl storage errors
  agamactl storage iscsi"""


@click.group(cls=AgamaGroup, examples=_STORAGE_EXAMPLES)
@click.pass_obj
def storage(app: AppContext) -> None:
    """Inspect the storage proposal."""


@storage.command(
    examples="""\
  agamactl storage proposal
  agamactl --json storage proposal"""
)
@click.pass_obj
def proposal(app: AppContext) -> None:
    """Show candidate devices, LVM usage, and available devices."""
    app.emit(app.run(lambda client: StorageService(client).proposal()))


@storage.command(
    examples="""\
  agamactl storage actions
  agamactl -q storage actions"""
)
@click.pass_obj
def actions(app: AppContext) -> None:
    """List the actions the proposal would perform."""
    app.emit(app.run(lambda client: StorageService(client).actions()))


@storage.command(examples="  agamactl storage errors")
@click.pass_obj
def errors(app: AppContext) -> None:
    """List storage validation issues."""
    app.emit(app.run(lambda client: StorageService(client).validation()))


@storage.command(examples="  agamactl storage iscsi")
@click.pass_obj
def iscsi(app: AppContext) -> None:
    """Show the iSCSI initiator name and iBFT state."""
    app.emit(app.run(lambda client: StorageService(client).iscsi_initiator()))
