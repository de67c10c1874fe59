"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from agamactl.output.console import create_console, get_output, style_for_action

if TYPE_CHECKING:
    from rich.console import Console

    from agamactl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} - {msg}"

    items = result.data.get("items")
    if items and isinstance(items, list):
        lines = [_extract_key(item) for item in items]
        return "\n".join(line for line in lines if line)

    for key in ("id", "language"):
        if key in result.data:
            return str(result.data[key])

    return f"OK: {result.op}"


def render_progress(progress: dict[str, Any]) -> str:
    """One-line progress rendering used by ``progress --watch``."""
    console = create_console()
    _progress_line(console, progress)
    return get_output(console).rstrip("\n")


# ── Helpers ───────────────────────────────────────────────────────────


def _extract_key(item: Any) -> str:
    if isinstance(item, dict):
        for key in ("id", "text", "message"):
            val = item.get(key)
            if val is not None:
                return str(val)
    return ""


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK/ERROR status line."""
    label = Text("OK", style="agama.ok")
    op = Text(f"  {result.op}", style="agama.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="agama.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="agama.id")
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {name}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")"
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _progress_line(console: Console, progress: dict[str, Any]) -> None:
    current = int(progress.get("current", 0))
    total = int(progress.get("total", 0))
    finished = bool(progress.get("finished", False))
    table = Table.grid(padding=(0, 1))
    table.add_column(no_wrap=True)
    table.add_column(width=30)
    table.add_column()
    bar = ProgressBar(
        total=max(total, 1),
        completed=total if finished else min(current, total),
        width=30,
        complete_style="agama.progress",
        finished_style="agama.ok",
    )
    step = Text(f"[{current}/{total}]", style="agama.progress")
    message = Text(str(progress.get("message", "")))
    if finished:
        message.append("  done", style="agama.ok")
    table.add_row(step, bar, message)
    console.print(table)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="agama.error")
    op = Text(f"  {result.op}", style="agama.op")
    sep = Text(" - ")
    console.print(label, op, sep, msg)

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Software renderers ───────────────────────────────────────────────


def _render_products(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render list_products as a table, marking the selected product."""
    items = result.data.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("", width=1)
    table.add_column("ID", style="agama.id", no_wrap=True)
    table.add_column("Name")
    for item in items:
        marker = Text("*", style="agama.selected") if item.get("selected") else Text("")
        table.add_row(marker, str(item.get("id", "")), str(item.get("name", "")))
    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} products")
    if verbose:
        _render_meta(console, result)


# ── Storage renderers ────────────────────────────────────────────────


def _render_proposal(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the storage proposal: settings, then the available devices."""
    d = result.data
    _status_line(console, result)
    candidates = d.get("candidate_devices", [])
    _field(console, "candidate_devices", ", ".join(candidates) if candidates else "(none)")
    _field(console, "lvm", "yes" if d.get("lvm") else "no")

    devices = d.get("available_devices", [])
    if devices:
        console.print()
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("Device", style="agama.id", no_wrap=True)
        table.add_column("Label")
        table.add_column("Candidate")
        for device in devices:
            device_id = str(device.get("id", ""))
            table.add_row(
                device_id,
                str(device.get("label", "")),
                "yes" if device_id in candidates else "",
            )
        console.print(table)
    if verbose:
        _render_meta(console, result)


def _render_actions(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render storage actions in order, with deletions highlighted."""
    items = result.data.get("items", [])
    if not items:
        _status_line(console, result)
        console.print("  No actions planned")
        return
    for index, action in enumerate(items, start=1):
        line = Text(f"{index:>3}. ")
        line.append(str(action.get("text", "")), style=style_for_action(action))
        if action.get("delete"):
            line.append("  [delete]", style="agama.delete")
        console.print(line)
    deletions = result.data.get("deletions", 0)
    summary = f"\n{result.data.get('count', len(items))} actions"
    if deletions:
        summary += f", [agama.delete]{deletions} destructive[/agama.delete]"
    console.print(summary)
    if verbose:
        _render_meta(console, result)


def _render_validation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    _status_line(console, result)
    if not items:
        console.print("  No validation issues")
    for issue in items:
        console.print(f"  [agama.warning]issue[/agama.warning] {issue.get('message', '')}")
    if verbose:
        _render_meta(console, result)


def _render_iscsi(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "initiator_name", result.data.get("name", ""))
    _field(console, "ibft", "yes" if result.data.get("ibft") else "no")
    if verbose:
        _render_meta(console, result)


# ── Progress renderers ───────────────────────────────────────────────


def _render_progress(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    if not result.data:
        _status_line(console, result)
        console.print("  No progress reported")
        return
    _progress_line(console, result.data)
    if verbose:
        _render_meta(console, result)


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    # Software
    "list_products": _render_products,
    "selected_product": _render_generic,
    "select_product": _render_generic,
    "get_language": _render_generic,
    "set_language": _render_generic,
    # Storage
    "storage_proposal": _render_proposal,
    "storage_actions": _render_actions,
    "storage_validation": _render_validation,
    "iscsi_initiator": _render_iscsi,
    # Progress
    "progress": _render_progress,
    "software_progress": _render_progress,
    "watch_progress": _render_progress,
}
