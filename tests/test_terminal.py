"""Tests for the Rich snapshot view."""

import io
from datetime import datetime, timezone

from rich.console import Console

from cgar.dashboard.terminal import build_table, render_snapshot
from cgar.metrics import Snapshot


def _snapshot() -> Snapshot:
    return Snapshot(
        timestamp=datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc),
        nodes={
            "system.slice": {"memory.current": "104857600"},
            "system.slice/sshd.service": {
                "memory.current": "2097152",
                "memory.stat": "anon 1\nfile 2\nkernel 3\nsock 4\nshmem 5",
            },
            "user.slice": {"memory.current": "[weird] content"},
        },
    )


def _render(**kwargs) -> str:
    buf = io.StringIO()
    console = Console(file=buf, width=120, force_terminal=False, color_system=None)
    render_snapshot(_snapshot(), console=console, **kwargs)
    return buf.getvalue()


def test_render_lists_nodes_and_header():
    out = _render(source_name="/var/log/cgar.log")
    assert "2026-10-19T09:30:00+00:00" in out
    assert "3 cgroups, 4 files" in out
    assert "sshd.service" in out
    assert "104857600" in out
    assert "/var/log/cgar.log" in out


def test_long_files_are_truncated():
    out = _render()
    assert "kernel 3" in out
    assert "sock 4" not in out
    assert "2 more lines" in out


def test_markup_in_content_is_printed_verbatim():
    assert "[weird] content" in _render()


def test_node_prefix_filter():
    table = build_table(_snapshot(), node_prefix="system.slice")
    assert table.row_count == 3

    out = _render(node_prefix="/user.slice/")
    assert "user.slice" in out
    assert "sshd.service" not in out


def test_empty_snapshot():
    buf = io.StringIO()
    render_snapshot(Snapshot(timestamp=datetime.now(timezone.utc)), console=Console(file=buf, width=80))
    assert "empty" in buf.getvalue()
