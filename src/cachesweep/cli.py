"""CLI interface for cachesweep."""

from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path

import click

from cachesweep.core.dispatch import SerialDispatcher
from cachesweep.core.engine import CleanupEngine
from cachesweep.core.locations import roots_for
from cachesweep.models.category import Category
from cachesweep.models.clean_result import CleanProgress, CleanupOutcome
from cachesweep.models.scan_result import ScanReport
from cachesweep.settings import Settings
from cachesweep.utils import bytes_to_human, format_time_remaining, outcome_to_dict, report_to_dict


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _build_engine(home: Path | None, use_trash: bool | None = None) -> CleanupEngine:
    return CleanupEngine.from_settings(Settings(), home=home, use_trash=use_trash)


def _parse_categories(values: tuple[str, ...]) -> list[Category] | None:
    if not values:
        return None
    try:
        return [Category.parse(v) for v in values]
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="CATEGORIES") from None


def _run_scan(engine: CleanupEngine, categories: list[Category] | None, quiet: bool) -> ScanReport:
    """Scan with per-category status lines printed from one thread."""
    if quiet:
        return engine.scan(categories)

    count = len(categories) if categories else len(Category)
    click.echo(f"\n{click.style('🔍', bold=True)} Scanning {count} categories...\n")

    found: dict[Category, list[int]] = {}

    def on_discovered(category: Category, items: int, size: int) -> None:
        totals = found.setdefault(category, [0, 0])
        totals[0] += items
        totals[1] += size

    def on_category_done(category: Category, fraction: float) -> None:
        items, size = found.get(category, [0, 0])
        mark = click.style("✓", fg="green") if items else click.style("·", fg="bright_black")
        detail = f"{bytes_to_human(size)} ({items:,} items)" if items else "nothing to clean"
        click.echo(f"  {mark} {category.label:30s} — {detail}  [{fraction:.0%}]")

    with SerialDispatcher() as dispatcher:
        report = engine.scan(
            categories,
            on_discovered=dispatcher.wrap(on_discovered),
            on_category_done=dispatcher.wrap(on_category_done),
        )
    return report


def _print_report(report: ScanReport, max_groups: int) -> None:
    for result in report.results:
        click.echo(
            f"\n  {click.style(result.category.label, fg='blue', bold=True)} — "
            f"{click.style(bytes_to_human(result.total_bytes), fg='green', bold=True)} "
            f"({len(result.items):,} items)"
        )
        for group in result.groups[:max_groups]:
            click.echo(f"    {group.name:40s} {bytes_to_human(group.total_bytes):>10s}  ({len(group.items):,} files)")
        hidden = len(result.groups) - max_groups
        if hidden > 0:
            click.echo(click.style(f"    … and {hidden} more group{'s' if hidden != 1 else ''}", fg="bright_black"))

    click.echo(f"\nTotal reclaimable: {click.style(bytes_to_human(report.total_bytes), fg='green', bold=True)}\n")


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
def main(verbose: int) -> None:
    """cachesweep — find and safely remove caches, logs and other disposable files."""
    _setup_logging(verbose)


# ── categories ───────────────────────────────────────────────────────────


@main.command("categories")
@click.option("--home", type=click.Path(file_okay=False, path_type=Path), default=None, help="Home directory to resolve")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def categories_cmd(home: Path | None, as_json: bool) -> None:
    """List cleanup categories and the directories they search."""
    if as_json:
        data = [
            {
                "id": c.value,
                "name": c.label,
                "description": c.description,
                "roots": [str(p) for p in roots_for(c, home)],
            }
            for c in Category
        ]
        click.echo(json.dumps(data, indent=2))
        return

    for category in Category:
        click.echo(f"  {click.style(category.value, fg='cyan', bold=True):30s}  {category.label}")
        click.echo(f"    {category.description}")
        for root in roots_for(category, home):
            state = "" if root.is_dir() else click.style(" (missing)", fg="bright_black")
            click.echo(f"      {root}{state}")


# ── scan ─────────────────────────────────────────────────────────────────


@main.command()
@click.argument("categories", nargs=-1)
@click.option("--home", type=click.Path(file_okay=False, path_type=Path), default=None, help="Home directory to scan")
@click.option("--groups", "max_groups", default=5, show_default=True, help="Groups to show per category")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def scan(categories: tuple[str, ...], home: Path | None, max_groups: int, as_json: bool) -> None:
    """Scan for cleanable files (preview only, never deletes)."""
    engine = _build_engine(home)
    report = _run_scan(engine, _parse_categories(categories), quiet=as_json)

    if as_json:
        click.echo(json.dumps(report_to_dict(report), indent=2))
        return

    if not report.results:
        click.echo("\nNothing to clean.")
        return
    _print_report(report, max_groups)


# ── clean ────────────────────────────────────────────────────────────────


@main.command()
@click.argument("categories", nargs=-1)
@click.option("--home", type=click.Path(file_okay=False, path_type=Path), default=None, help="Home directory to scan")
@click.option("--live", is_flag=True, help="Really delete files (default is a dry run)")
@click.option("--permanent", is_flag=True, help="Unlink files instead of moving them to the trash")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def clean(
    categories: tuple[str, ...],
    home: Path | None,
    live: bool,
    permanent: bool,
    yes: bool,
    as_json: bool,
) -> None:
    """Scan and clean the given categories (all by default).

    Without --live this is a rehearsal: nothing is deleted, but every
    file that would be removed is reported.
    """
    engine = _build_engine(home, use_trash=False if permanent else None)
    report = _run_scan(engine, _parse_categories(categories), quiet=as_json)

    if not report.results:
        if as_json:
            click.echo(json.dumps({"status": "nothing_to_clean", "outcome": None}))
        else:
            click.echo("\nNothing to clean.")
        return

    if not as_json:
        _print_report(report, max_groups=3)

    if live and not yes and not as_json:
        verb = "Permanently delete" if permanent else "Move to trash"
        if not click.confirm(f"{verb} {report.item_count:,} files ({bytes_to_human(report.total_bytes)})?"):
            click.echo("Aborted.")
            return

    if not as_json:
        click.echo(f"\n{click.style('🧹', bold=True)} {'Cleaning' if live else 'Rehearsing clean'}...\n")

    outcome = _run_clean(engine, report, live=live, quiet=as_json)

    if as_json:
        status = "cancelled" if outcome.cancelled else ("cleaned" if live else "dry_run")
        click.echo(json.dumps({"status": status, "outcome": outcome_to_dict(outcome)}, indent=2))
        return

    _print_outcome(outcome)


def _run_clean(engine: CleanupEngine, report: ScanReport, *, live: bool, quiet: bool) -> CleanupOutcome:
    """Clean on the engine's worker thread; Ctrl-C cancels cooperatively."""
    cancel = threading.Event()

    if quiet:
        future = engine.submit_clean(report, live=live, cancel=cancel)
        return _wait(future, cancel, engine)

    total = len(engine.cleaner.candidates(report))
    with click.progressbar(length=total, label="  Cleaning", show_pos=True) as bar:
        done = [0]

        def on_progress(progress: CleanProgress) -> None:
            if progress.phase == "verify":
                bar.label = f"  {progress.current_name}"
            else:
                bar.label = f"  ETA {format_time_remaining(progress.eta_seconds):>7s}"
            bar.update(progress.processed - done[0])
            done[0] = progress.processed

        with SerialDispatcher() as dispatcher:
            future = engine.submit_clean(report, live=live, cancel=cancel, on_progress=dispatcher.wrap(on_progress))
            return _wait(future, cancel, engine)


def _wait(future, cancel: threading.Event, engine: CleanupEngine) -> CleanupOutcome:
    try:
        while True:
            try:
                return future.result(timeout=0.2)
            except FutureTimeoutError:
                continue
            except KeyboardInterrupt:
                click.echo("\nCancelling…", err=True)
                cancel.set()
    finally:
        engine.shutdown()


def _print_outcome(outcome: CleanupOutcome) -> None:
    click.echo()
    if outcome.cancelled:
        click.echo(click.style(f"  Cancelled after {outcome.processed:,} of {outcome.total:,} files", fg="yellow"))
    click.echo(f"  {click.style('✓', fg='green')} {outcome.deleted:,} removed")
    if outcome.skipped:
        click.echo(f"  {click.style('·', fg='bright_black')} {outcome.skipped:,} skipped by safety rules")
    if outcome.failed:
        click.echo(f"  {click.style('!', fg='yellow')} {outcome.failed:,} failed")
        for error in outcome.errors[:10]:
            click.echo(click.style(f"      {error}", fg="bright_black"))

    label = "Total freed" if not outcome.dry_run else "Would free"
    click.echo(f"\n{label}: {click.style(bytes_to_human(outcome.reclaimed_bytes), fg='green', bold=True)}")
    if outcome.dry_run:
        click.echo("(dry run — no files were deleted; pass --live to clean)")
    click.echo()


# ── service ──────────────────────────────────────────────────────────────


@main.group()
def service() -> None:
    """D-Bus service management."""


@service.command("start")
def service_start() -> None:
    """Start the D-Bus service in foreground."""
    from cachesweep.dbus_service import start_service

    click.echo("Starting cachesweep D-Bus service...")
    start_service()
