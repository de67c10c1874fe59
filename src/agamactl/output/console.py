"""Rich Console factory and theme for agamactl output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract. In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

AGAMA_THEME = Theme(
    {
        "agama.ok": "bold green",
        "agama.error": "bold red",
        "agama.warning": "bold yellow",
        "agama.op": "bold cyan",
        "agama.key": "dim",
        "agama.id": "bold blue",
        "agama.selected": "bold green",
        "agama.delete": "red",
        "agama.subvol": "dim",
        "agama.progress": "magenta",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=AGAMA_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_action(action: dict[str, object]) -> str:
    """Return the Rich style for a storage action row."""
    if action.get("delete"):
        return "agama.delete"
    if action.get("subvol"):
        return "agama.subvol"
    return ""
