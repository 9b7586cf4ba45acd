"""
cgar entry point.

Usage:
    cgar [CONFIG]                       One collection pass, appended to the log
    cgar collect [CONFIG]               Same, with --mock/--stdout/--db options
    cgar collect --mock --stdout        Collect the built-in demo tree
    cgar show [CONFIG]                  Render the latest logged snapshot
    cgar history NODE FILE --db PATH    One file's values across runs
    cgar-collect [CONFIG]               Same as `cgar collect`
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sqlite3
import sys
from typing import Optional

import click

from cgar import __version__
from cgar.collector.cgroupfs import CgroupFS
from cgar.collector.mock_source import MockCgroupTree
from cgar.config import DEFAULT_CONFIG_PATH, CgarConfig, load_config
from cgar.engine.coordinator import run_collection
from cgar.errors import ConfigLoadFailure, SnapshotWriteFailure
from cgar.storage.jsonl_log import append_snapshot, read_snapshots, serialize_snapshot
from cgar.storage.sqlite_store import SnapshotStore


log = logging.getLogger("cgar")

SYSLOG_IDENT = "cgar_collect"
SYSLOG_ADDRESS = "/dev/log"

# Exit status for an unusable configuration
EXIT_CONFIG = 2


def setup_logging(verbose: bool = False, syslog: bool = True):
    stderr = logging.StreamHandler()
    stderr.setLevel(logging.DEBUG if verbose else logging.WARNING)
    handlers = [stderr]

    # SysLogHandler only complains on emit, so check the socket up front
    syslog_missing = syslog and not os.path.exists(SYSLOG_ADDRESS)
    if syslog and not syslog_missing:
        handler = logging.handlers.SysLogHandler(address=SYSLOG_ADDRESS)
        handler.ident = SYSLOG_IDENT + ": "
        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.Formatter("%(levelname)s [%(name)s] %(message)s"))
        handlers.append(handler)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=handlers,
        force=True,
    )
    if syslog_missing:
        log.warning("%s not found, logging to stderr only", SYSLOG_ADDRESS)


def _load_or_exit(config_path: str) -> CgarConfig:
    try:
        return load_config(config_path)
    except ConfigLoadFailure as e:
        log.critical("%s", e)
        log.info("Terminated.")
        click.echo(str(e), err=True)
        raise SystemExit(EXIT_CONFIG)


def _store_snapshot(db_path: str, snapshot) -> bool:
    try:
        store = SnapshotStore(db_path=db_path)
    except sqlite3.Error as e:
        log.error("Cannot open history database %s: %s", db_path, e)
        return False
    try:
        store.save(snapshot)
        return True
    except sqlite3.Error as e:
        log.error("Cannot store snapshot in %s: %s", db_path, e)
        return False
    finally:
        store.close()


class _CollectByDefault(click.Group):
    """`cgar CONFIG` is shorthand for `cgar collect CONFIG`.

    The group's own options are all flags, so the first non-option word
    is either a subcommand or the config path.
    """

    def parse_args(self, ctx, args):
        for i, arg in enumerate(args):
            if arg == "--":
                break
            if arg.startswith("-"):
                continue
            if arg not in self.commands:
                args = args[:i] + ["collect"] + args[i:]
            break
        return super().parse_args(ctx, args)


@click.group(cls=_CollectByDefault, invoke_without_command=True)
@click.version_option(version=__version__, prog_name="cgar")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
@click.option("--no-syslog", is_flag=True, default=False, help="Log to stderr only")
@click.pass_context
def cli(ctx, verbose: bool, no_syslog: bool):
    """cgar - cgroup accounting recorder."""
    setup_logging(verbose=verbose, syslog=not no_syslog)

    # No subcommand: one collection pass with the default config
    if ctx.invoked_subcommand is None:
        ctx.invoke(collect)


@cli.command()
@click.argument("config_path", required=False, default=DEFAULT_CONFIG_PATH, metavar="[CONFIG]")
@click.option("--mock", is_flag=True, default=False, help="Collect the built-in demo tree")
@click.option("--stdout", "to_stdout", is_flag=True, default=False,
              help="Also print the JSON line to stdout")
@click.option("--db", default=None, help="SQLite history database (overrides config)")
def collect(config_path: str, mock: bool, to_stdout: bool, db: Optional[str]):
    """Collect every configured cgroup tree into one log line."""
    log.info("Called as: %s", " ".join(sys.argv))
    cfg = _load_or_exit(config_path)

    source = MockCgroupTree.demo() if mock else CgroupFS(root=cfg.cgroup_root)

    snapshot = run_collection(
        cfg.collect,
        source,
        channel_size=cfg.channel_size,
        max_workers=cfg.max_workers,
        timeout=cfg.timeout,
    )

    append_snapshot(cfg.logfile, snapshot)

    if to_stdout:
        try:
            click.echo(serialize_snapshot(snapshot))
        except SnapshotWriteFailure as e:
            log.error("%s", e)

    db_path = db or cfg.database
    if db_path:
        _store_snapshot(db_path, snapshot)

    log.info("Terminated.")


@cli.command()
@click.argument("config_path", required=False, default=DEFAULT_CONFIG_PATH, metavar="[CONFIG]")
@click.option("--node", default=None, help="Only show this cgroup and its descendants")
def show(config_path: str, node: Optional[str]):
    """Render the most recent snapshot of the configured log."""
    from rich.console import Console
    from cgar.dashboard.terminal import render_snapshot

    cfg = _load_or_exit(config_path)
    try:
        snapshots = read_snapshots(cfg.logfile)
    except OSError as e:
        click.echo(f"Cannot read {cfg.logfile}: {e.strerror or e}", err=True)
        raise SystemExit(1)

    if not snapshots:
        click.echo(f"No snapshots in {cfg.logfile}")
        return

    render_snapshot(snapshots[-1], console=Console(), node_prefix=node, source_name=cfg.logfile)


@cli.command()
@click.argument("node")
@click.argument("file")
@click.option("--db", required=True, help="SQLite history database")
def history(node: str, file: str, db: str):
    """Print one file of one cgroup across all stored runs."""
    from rich.console import Console
    from rich.markup import escape
    from rich.table import Table

    # sqlite3.connect would quietly create a new, empty database
    if not os.path.isfile(db):
        click.echo(f"No history database at {db}", err=True)
        raise SystemExit(1)

    try:
        store = SnapshotStore(db_path=db)
        try:
            rows = store.history(node.strip("/"), file)
        finally:
            store.close()
    except sqlite3.Error as e:
        click.echo(f"Cannot read history from {db}: {e}", err=True)
        raise SystemExit(1)

    if not rows:
        click.echo(f"No history for {node} {file}")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Timestamp", style="dim", no_wrap=True)
    table.add_column(file)
    for stamp, content in rows:
        table.add_row(stamp, escape(content))
    Console().print(table)


def collect_main():
    """`cgar-collect [CONFIG]`, the single-command form cron jobs call."""
    setup_logging()
    collect(prog_name="cgar-collect")


if __name__ == "__main__":
    cli()
