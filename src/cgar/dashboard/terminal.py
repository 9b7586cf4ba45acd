"""Terminal view of one snapshot using Rich."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from cgar import __version__
from cgar.metrics import Snapshot

# Multi-line files (memory.stat, *.pressure) are cut to this many lines
MAX_CONTENT_LINES = 3


def _format_content(content: str, max_lines: int = MAX_CONTENT_LINES) -> str:
    lines = content.splitlines()
    if len(lines) <= max_lines:
        return escape(content)
    hidden = len(lines) - max_lines
    return escape("\n".join(lines[:max_lines])) + f"\n[dim]... {hidden} more lines[/dim]"


def _depth_indent(node: str) -> str:
    return "  " * node.count("/")


def build_table(snapshot: Snapshot, node_prefix: Optional[str] = None) -> Table:
    """One row per (node, file); node name printed once per group."""
    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Cgroup", style="bold", no_wrap=True)
    table.add_column("File", style="dim", no_wrap=True)
    table.add_column("Content")

    prefix = node_prefix.strip("/") if node_prefix else None
    last_node = None
    for node, name, content in snapshot.iter_files():
        if prefix and node != prefix and not node.startswith(prefix + "/"):
            continue
        label = ""
        if node != last_node:
            if last_node is not None:
                table.add_section()
            label = _depth_indent(node) + (node.rsplit("/", 1)[-1] or "/")
            last_node = node
        table.add_row(label, name, _format_content(content))
    return table


def render_snapshot(
    snapshot: Snapshot,
    console: Optional[Console] = None,
    node_prefix: Optional[str] = None,
    source_name: str = "",
):
    console = console or Console()
    header = Text(f"  cgar v{__version__}", style="bold white on blue")
    if source_name:
        header.append(f"  |  {source_name}")
    header.append(f"\n  {snapshot.timestamp.isoformat()}  ", style="dim")
    header.append(f"  {snapshot.node_count()} cgroups, {snapshot.file_count()} files")

    console.print(Panel(header, border_style="blue"))
    if not snapshot.nodes:
        console.print("[dim]Snapshot is empty.[/dim]")
        return
    console.print(build_table(snapshot, node_prefix=node_prefix))
