"""CLI interface for dutop."""

from __future__ import annotations

import json
import logging
import sys
import threading

import click

from dutop import __version__
from dutop.core.engine import ScanEngine
from dutop.core.errors import RootUnreadableError, ScanCancelled
from dutop.core.ranker import SortKey, rank
from dutop.models.scan_result import ScanEntry, ScanResult
from dutop.progress import ScanSpinner
from dutop.settings import KNOWN_KEYS, Settings, validate
from dutop.utils import bytes_to_human, format_elapsed, format_os_error

log = logging.getLogger(__name__)


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
@click.version_option(__version__, prog_name="dutop")
@click.pass_context
def main(ctx: click.Context, verbose: int) -> None:
    """dutop: fast disk usage for the entries of a directory."""
    _setup_logging(verbose)
    ctx.obj = Settings()


# ── scan ─────────────────────────────────────────────────────────────────

@main.command()
@click.argument("path", default=".", type=click.Path(file_okay=True, dir_okay=True, path_type=str))
@click.option(
    "--sort", "sort_key",
    type=click.Choice([k.value for k in SortKey]),
    default=None,
    help="Sort by size (largest first) or name",
)
@click.option("--limit", "-n", type=click.IntRange(min=0), default=None, help="Show only the top N entries")
@click.option("--workers", "-j", type=click.IntRange(min=1), default=None, help="Worker threads (default: CPU count)")
@click.option("--follow-symlinks/--no-follow-symlinks", default=None, help="Descend into symlinked directories")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--no-progress", is_flag=True, help="Hide the progress spinner")
@click.pass_obj
def scan(
    settings: Settings,
    path: str,
    sort_key: str | None,
    limit: int | None,
    workers: int | None,
    follow_symlinks: bool | None,
    as_json: bool,
    no_progress: bool,
) -> None:
    """Show the largest files and directories directly under PATH."""
    try:
        sort_key = sort_key or settings.get_valid("scan.sort")
        if limit is None:
            limit = settings.get_valid("scan.limit")
        if follow_symlinks is None:
            follow_symlinks = settings.get_valid("scan.follow_symlinks")
        if workers is None:
            workers = settings.get_valid("scan.workers")
        split_threshold = settings.get_valid("scan.split_threshold")
        show_progress = not (as_json or no_progress) and settings.get_valid("display.progress")
    except ValueError as exc:
        raise click.UsageError(str(exc))

    engine = ScanEngine(
        workers=workers,
        split_threshold=split_threshold,
        follow_symlinks=follow_symlinks,
    )
    cancel = threading.Event()

    try:
        with ScanSpinner(enabled=show_progress) as spinner:
            result = engine.scan(path, on_progress=spinner.update, cancel_event=cancel)
    except RootUnreadableError as exc:
        click.echo(f"Failed to scan '{click.format_filename(exc.path)}': {format_os_error(exc.cause)}", err=True)
        sys.exit(1)
    except (KeyboardInterrupt, ScanCancelled):
        cancel.set()
        click.echo("Aborted.", err=True)
        sys.exit(130)

    entries = rank(result.entries, sort_key, limit)

    if as_json:
        click.echo(json.dumps(_result_to_json(result, entries), indent=2))
        return

    _print_table(entries)
    _print_summary(result)


def _result_to_json(result: ScanResult, entries: list[ScanEntry]) -> dict:
    summary = result.summary
    return {
        "root": str(result.root),
        "entries": [
            {"path": str(e.path), "kind": e.kind.value, "size": e.size}
            for e in entries
        ],
        "summary": {
            "total_errors": summary.total_errors,
            "total_files_scanned": summary.total_files_scanned,
            "total_dirs_scanned": summary.total_dirs_scanned,
            "elapsed": round(summary.elapsed, 3),
        },
    }


def _print_table(entries: list[ScanEntry]) -> None:
    if not entries:
        click.echo("No items found.")
        return

    sizes = [bytes_to_human(e.size) for e in entries]
    width = max(4, *(len(s) for s in sizes))

    click.echo(f"{'Size':<{width}}  {'Type':<4}  Path")
    click.echo("-" * (width + 2 + 4 + 2 + 40))
    for entry, size in zip(entries, sizes):
        kind = click.style(f"{entry.kind.label:<4}", fg="blue" if entry.is_dir else None)
        # Undecodable names carry surrogates that stdout cannot encode.
        click.echo(f"{size:<{width}}  {kind}  {click.format_filename(entry.path)}")


def _print_summary(result: ScanResult) -> None:
    summary = result.summary
    click.echo(
        f"\nScanned {summary.total_files_scanned:,} files in "
        f"{format_elapsed(summary.elapsed)}, total "
        f"{click.style(bytes_to_human(result.total_bytes), fg='green', bold=True)}"
    )
    if summary.total_errors:
        noun = "entry" if summary.total_errors == 1 else "entries"
        click.echo(
            click.style(f"Skipped {summary.total_errors:,} {noun} due to errors.", fg="yellow")
            + " (use -vv to list them)"
        )


# ── config ───────────────────────────────────────────────────────────────

@main.group()
def config() -> None:
    """Show or change default options."""


@config.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def config_show(settings: Settings, as_json: bool) -> None:
    """Print the settings currently in effect."""
    values = settings.effective()
    if as_json:
        click.echo(json.dumps(values, indent=2))
        return
    click.echo(f"# {settings.path}")
    for key, value in values.items():
        click.echo(f"  {key:22s} {json.dumps(value)}")


@config.command("set")
@click.argument("key", type=click.Choice(sorted(KNOWN_KEYS)))
@click.argument("value")
@click.pass_obj
def config_set(settings: Settings, key: str, value: str) -> None:
    """Store VALUE (parsed as JSON when possible) under KEY."""
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        parsed = value
    try:
        validate(key, parsed)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="VALUE")
    settings.set(key, parsed)
    log.info("Set %s = %r in %s", key, parsed, settings.path)
    click.echo(f"{key} = {json.dumps(parsed)}")
