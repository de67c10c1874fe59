"""Click base classes adding an eager ``--examples`` flag.

Usage text stays in ``--help``; worked invocations live behind
``--examples`` so help output stays short on a small installer console.
"""

from __future__ import annotations

import textwrap
from typing import Any

import click


class ExamplesMixin:
    """Shared ``examples=`` handling for commands and groups."""

    examples: str | None

    def _init_examples(self, examples: str | None) -> None:
        if not examples:
            self.examples = None
            return
        self.examples = textwrap.indent(textwrap.dedent(examples).strip("\n"), "  ")
        params: list[click.Parameter] = self.params  # type: ignore[attr-defined]
        params.append(
            click.Option(
                ["--examples"],
                is_flag=True,
                expose_value=False,
                is_eager=True,
                callback=self._show_examples,
                help="Show usage examples.",
            )
        )

    def _show_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or self.examples is None:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(self.examples)
        ctx.exit(0)


class AgamaCommand(ExamplesMixin, click.Command):
    """Command accepting ``examples=``."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(examples)


class AgamaGroup(ExamplesMixin, click.Group):
    """Group accepting ``examples=``; its subcommands default to :class:`AgamaCommand`."""

    command_class = AgamaCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(examples)
