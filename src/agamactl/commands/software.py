"""Command group: base products and installer language."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from agamactl.commands._base import AgamaGroup
from agamactl.services.software import SoftwareService

if TYPE_CHECKING:
    from agamactl.commands._context import AppContext

_SOFTWARE_EXAMPLES = """\
  agamactl software products
  agamactl software selected
  agamactl software select MicroOS
  agamactl software language
  agamactl software language de_DE"""


@click.group(cls=AgamaGroup, examples=_SOFTWARE_EXAMPLES)
@click.pass_obj
def software(app: AppContext) -> None:
    """Inspect and choose the product to install."""


@software.command(
    examples="""\
  agamactl software products
  agamactl --json software products
  agamactl -q software products"""
)
@click.pass_obj
def products(app: AppContext) -> None:
    """List available base products; the selected one is marked."""
    app.emit(app.run(lambda client: SoftwareService(client).list_products()))


@software.command(examples="  agamactl software selected")
@click.pass_obj
def selected(app: AppContext) -> None:
    """Show the id of the selected product."""
    app.emit(app.run(lambda client: SoftwareService(client).selected_product()))


@software.command(
    examples="""\
  agamactl software select MicroOS
  agamactl software select Tumbleweed"""
)
@click.argument("product_id")
@click.pass_obj
def select(app: AppContext, product_id: str) -> None:
    """Select the product to install."""
    app.emit(app.run(lambda client: SoftwareService(client).select_product(product_id)))


@software.command(
    examples="""\
  agamactl software language
  agamactl software language es_ES"""
)
@click.argument("lang", required=False)
@click.pass_obj
def language(app: AppContext, lang: str | None) -> None:
    """Show the installer UI language, or change it to LANG."""
    if lang is None:
        app.emit(app.run(lambda client: SoftwareService(client).get_language()))
    else:
        app.emit(app.run(lambda client: SoftwareService(client).set_language(lang)))
