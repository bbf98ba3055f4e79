"""CLI interface for dsz."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable

import click
from click.core import ParameterSource

from dsz.core.engine import ProgressCallback, SizeEngine
from dsz.core.errors import RootUnreadableError
from dsz.models.options import SortMode, TreeRenderOptions
from dsz.models.report import DirectoryReport
from dsz.settings import OPTION_KEYS, Settings
from dsz.utils import bytes_to_human

log = logging.getLogger(__name__)

_SORT_CHOICES = [mode.value for mode in SortMode]

_PROGRESS_MESSAGES = {
    ("size", "started"): "Calculating size...",
    ("size", "done"): "Calculated size!",
    ("tree", "started"): "Generating tree...",
    ("tree", "done"): "Generated tree!",
}


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _configured(ctx: click.Context, name: str, key: str) -> Any:
    """Value of option *name*, falling back to setting *key* when not given."""
    value = ctx.params[name]
    if ctx.get_parameter_source(name) is not ParameterSource.DEFAULT:
        return value
    stored = Settings.instance().option(key)
    return value if stored is None else stored


def _progress_printer(as_json: bool) -> ProgressCallback | None:
    if as_json or not sys.stderr.isatty():
        return None

    def on_progress(stage: str, status: str) -> None:
        message = _PROGRESS_MESSAGES.get((stage, status))
        if message:
            click.echo(click.style(message, fg="bright_black"), err=True)

    return on_progress


def _run(
    path: Path,
    tree_options: TreeRenderOptions | None,
    workers: int,
    as_json: bool,
) -> DirectoryReport:
    engine = SizeEngine()
    try:
        return engine.run(path, tree_options, workers=workers, on_progress=_progress_printer(as_json))
    except RootUnreadableError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _print_report(report: DirectoryReport, show_bytes: bool, as_json: bool) -> None:
    if as_json:
        data: dict[str, Any] = {
            "path": str(report.root),
            "total_bytes": report.total_bytes,
            "file_count": report.file_count,
            "size": bytes_to_human(report.total_bytes),
        }
        if report.lines is not None:
            data["lines"] = [str(line) for line in report.lines]
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    if report.lines is not None:
        click.echo(report.tree_text)
    else:
        click.echo(str(report.root))
    click.echo(f"{report.file_count:,} files evaluated")
    size_str = click.style(bytes_to_human(report.total_bytes), fg="green", bold=True)
    if show_bytes:
        size_str += f" ({report.total_bytes:,} bytes)"
    click.echo(size_str)


def _size_options(func: Callable) -> Callable:
    """Options shared by every command that sizes a path."""
    func = click.option("--json", "as_json", is_flag=True, help="Output as JSON")(func)
    func = click.option(
        "-j",
        "--workers",
        type=click.IntRange(min=1),
        default=1,
        show_default=True,
        help="Threads used for the total size",
    )(func)
    func = click.option("-b", "--bytes", "show_bytes", is_flag=True, help="Also show the exact size in bytes")(func)
    func = click.argument("path", default=".", type=click.Path(exists=True, path_type=Path))(func)
    return func


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
def main(verbose: int) -> None:
    """dsz: calculate the size of a directory and draw its tree."""
    _setup_logging(verbose)


# ── size ─────────────────────────────────────────────────────────────────

@main.command()
@_size_options
@click.pass_context
def size(ctx: click.Context, path: Path, show_bytes: bool, workers: int, as_json: bool) -> None:
    """Calculate the total size and file count of PATH."""
    show_bytes = _configured(ctx, "show_bytes", "size.show_bytes")
    workers = _configured(ctx, "workers", "size.workers")
    report = _run(path, None, workers, as_json)
    _print_report(report, show_bytes, as_json)


# ── tree ─────────────────────────────────────────────────────────────────

@main.command()
@_size_options
@click.option("-d", "--depth", type=click.IntRange(min=1), default=1, show_default=True, help="Levels to expand")
@click.option("-n", "--no-hidden", is_flag=True, help="Exclude hidden files from the tree")
@click.option("-i", "--show-size", is_flag=True, help="Show file sizes in the tree")
@click.option(
    "-s",
    "--sort",
    "sort_name",
    type=click.Choice(_SORT_CHOICES, case_sensitive=False),
    default=SortMode.NAME.value,
    show_default=True,
    help="Sort by name (A-Z), size (big->small), or date (newest->oldest)",
)
@click.option("-r", "--reverse", is_flag=True, help="Reverse the sorting order")
@click.pass_context
def tree(
    ctx: click.Context,
    path: Path,
    show_bytes: bool,
    workers: int,
    as_json: bool,
    depth: int,
    no_hidden: bool,
    show_size: bool,
    sort_name: str,
    reverse: bool,
) -> None:
    """Display a tree of PATH up to the given depth, then its total size.

    Directories are always listed before files. Directories at the depth
    limit are collapsed and annotated with their full size.
    """
    options = TreeRenderOptions(
        max_depth=_configured(ctx, "depth", "tree.depth"),
        exclude_hidden=_configured(ctx, "no_hidden", "tree.no_hidden"),
        show_size=_configured(ctx, "show_size", "tree.show_size"),
        sort_mode=SortMode(_configured(ctx, "sort_name", "tree.sort").lower()),
        reverse=_configured(ctx, "reverse", "tree.reverse"),
    )
    show_bytes = _configured(ctx, "show_bytes", "size.show_bytes")
    workers = _configured(ctx, "workers", "size.workers")
    report = _run(path, options, workers, as_json)
    _print_report(report, show_bytes, as_json)


# ── config ───────────────────────────────────────────────────────────────

@main.group()
def config() -> None:
    """Default option management."""


@config.command("show")
def config_show() -> None:
    """Show stored settings as JSON."""
    click.echo(json.dumps(Settings.instance().as_dict(), indent=2))


@config.command("set")
@click.argument("key", type=click.Choice(sorted(OPTION_KEYS)))
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Store VALUE as the default for KEY.

    VALUE is parsed as JSON when possible (``true``, ``3``), otherwise
    stored as a plain string.
    """
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        parsed = value
    if not Settings.is_valid(key, parsed):
        click.echo(f"Invalid value for {key}: {value}", err=True)
        sys.exit(1)
    Settings.instance().set(key, parsed)
    click.echo(f"{key} = {json.dumps(parsed)}")
