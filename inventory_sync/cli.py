"""
Command-line interface for the inventory sheet sync.

This module provides the main CLI entry point: syncing report files into the
inventory worksheet, inspecting a single report, highlighting covered rows,
counting report files and cleaning old log files.
"""

import asyncio
import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from inventory_sync.config import get_settings
from inventory_sync.extraction.catalogs import get_profile
from inventory_sync.extraction.engine import FieldExtractor
from inventory_sync.reconcile.context import RunContext
from inventory_sync.reconcile.highlight import Highlighter
from inventory_sync.reconcile.orchestrator import Reconciler
from inventory_sync.reconcile.recap import ProcessingRecap
from inventory_sync.sheets.base import TableGateway, TableRef
from inventory_sync.sheets.memory import InMemoryTableGateway
from inventory_sync.sources import TypeCounts, count_reports, discover_reports, read_report
from inventory_sync.utils.errors import InventorySyncError
from inventory_sync.utils.logging import clean_old_logs, setup_logging

# Initialize Typer app and Rich console
app = typer.Typer(
    name="inventory-sync",
    help="Sync server and VM inventory reports into the inventory spreadsheet",
    add_completion=False,
)
console = Console()

DRY_RUN_SPREADSHEET = "dry-run"


async def _open_gateway(dry_run: Optional[Path]):
    """Google Sheets gateway, or an in-memory table seeded from a CSV snapshot."""
    settings = get_settings()
    if dry_run:
        gateway: TableGateway = InMemoryTableGateway.from_csv(dry_run, settings.worksheet_name)
        return gateway, TableRef(spreadsheet_id=DRY_RUN_SPREADSHEET, worksheet=settings.worksheet_name)

    from inventory_sync.sheets.client import create_gateway

    table = TableRef(spreadsheet_id=settings.require_spreadsheet_id(), worksheet=settings.worksheet_name)
    return await create_gateway(), table


@app.command()
def sync(
    directory: Optional[Path] = typer.Argument(
        None,
        help="Directory holding the report files (DIRECTORY_PATH if not specified)",
    ),
    platform: Optional[str] = typer.Option(
        None,
        "--platform",
        "-p",
        help="Report platform: linux or windows (PLATFORM if not specified)",
    ),
    rules: Optional[Path] = typer.Option(
        None,
        "--rules",
        help="JSON rule set replacing the bundled catalog",
    ),
    stop_on_error: bool = typer.Option(
        False,
        "--stop-on-error",
        help="Abort the batch on the first failed file",
    ),
    dry_run: Optional[Path] = typer.Option(
        None,
        "--dry-run",
        help="Run against a CSV export of the worksheet instead of Google Sheets",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="With --dry-run, write the resulting table to this CSV file",
    ),
):
    """Update physical server rows and insert VM rows from report files."""

    async def _sync() -> bool:
        settings = get_settings()
        profile = get_profile(platform or settings.platform, rules or settings.rules_file)
        files = discover_reports(directory or settings.directory_path, settings.file_regex)
        if not files:
            console.print("No report files found")
            return True

        gateway, table = await _open_gateway(dry_run)
        reconciler = Reconciler(
            gateway,
            table,
            profile,
            context=RunContext(profile.name),
            stop_on_first_error=stop_on_error or not settings.continue_on_error,
            extractor=FieldExtractor(settings.placeholder_serials, tz=settings.tz),
        )

        recap = ProcessingRecap()
        completed = True
        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                progress.add_task(f"Processing {len(files)} report files...", total=None)
                await reconciler.run_batch(files, recap)
        except Exception as e:
            completed = False
            console.print(f"[red]Batch aborted:[/red] {e}")

        recap.render(console)
        recap.log_summary()

        if dry_run and output:
            gateway.dump_csv(output, table.worksheet)
            console.print(f"[green]✓[/green] Dry-run table written to {output}")
        return completed

    try:
        completed = asyncio.run(_sync())
    except InventorySyncError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not completed:
        raise typer.Exit(1)


@app.command()
def extract(
    file_path: Path = typer.Argument(..., help="Report file to extract"),
    platform: Optional[str] = typer.Option(None, "--platform", "-p", help="Report platform"),
    rules: Optional[Path] = typer.Option(None, "--rules", help="JSON rule set"),
    as_json: bool = typer.Option(False, "--json", help="Print the record as JSON"),
):
    """Extract one report and print its fields and identifiers."""
    try:
        settings = get_settings()
        profile = get_profile(platform or settings.platform, rules or settings.rules_file)
        content = read_report(file_path)
        record = FieldExtractor(settings.placeholder_serials, tz=settings.tz).extract(
            profile.rule_set, content, str(file_path)
        )
    except InventorySyncError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    identifiers = record.identifiers
    if as_json:
        payload = {"fields": record.as_dict(), "identifiers": identifiers.model_dump(mode="json")}
        console.print_json(json.dumps(payload))
        return

    table = Table(title=f"{file_path.name} ({profile.name})")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for name, value in record.items():
        table.add_row(name, value)
    console.print(table)

    console.print("\n[bold]Identifiers:[/bold]")
    console.print(f"  Entity kind: {identifiers.entity_kind.value}")
    console.print(f"  Serial number: {identifiers.serial_number or 'N/A'}")
    console.print(f"  Rack: {identifiers.rack_number or 'N/A'}")
    console.print(f"  U slot: {identifiers.slot_number or 'N/A'}")
    console.print(f"  Parent address: {identifiers.parent_address or 'N/A'}")
    console.print(f"  Hostname: {identifiers.hostname or 'N/A'}")


@app.command()
def highlight(
    directory: Optional[Path] = typer.Argument(
        None,
        help="Directory holding the report files (DIRECTORY_PATH if not specified)",
    ),
    platform: Optional[str] = typer.Option(None, "--platform", "-p", help="Worksheet layout to use"),
    dry_run: Optional[Path] = typer.Option(
        None,
        "--dry-run",
        help="Run against a CSV export of the worksheet instead of Google Sheets",
    ),
):
    """Highlight the worksheet rows that have a report file."""

    async def _highlight() -> ProcessingRecap:
        settings = get_settings()
        profile = get_profile(platform or settings.platform)
        files = discover_reports(directory or settings.directory_path, settings.file_regex)
        gateway, table = await _open_gateway(dry_run)
        highlighter = Highlighter(
            gateway,
            table,
            profile.layout,
            color=settings.highlight_color,
            placeholder_serials=settings.placeholder_serials,
            context=RunContext(profile.name),
        )
        return await highlighter.run(files)

    try:
        recap = asyncio.run(_highlight())
    except InventorySyncError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    recap.render(console)
    recap.log_summary()


@app.command()
def count(
    base_dir: Path = typer.Argument(Path("."), help="Directory holding the parent folders"),
    folders: Optional[List[str]] = typer.Option(
        None,
        "--folder",
        "-f",
        help="Parent folder to count (repeatable; default: draft, done, notes)",
    ),
):
    """Count report files per folder by type marker."""
    results = count_reports(base_dir, folders or ("draft", "done", "notes"))

    grand_total = TypeCounts()
    for parent, subfolders in results.items():
        if subfolders is None:
            console.print(f"[yellow]Folder '{parent}' not found, skipped[/yellow]\n")
            continue

        table = Table(title=f"{parent}/")
        table.add_column("Folder", style="cyan")
        table.add_column("Files", justify="right")
        table.add_column("vm", justify="right")
        table.add_column("svr", justify="right")
        table.add_column("none", justify="right")

        parent_total = TypeCounts()
        for name, counts in subfolders.items():
            table.add_row(name, str(counts.total), str(counts.vm), str(counts.svr), str(counts.none))
            parent_total = parent_total + counts

        table.add_row(
            "[bold]Total[/bold]",
            str(parent_total.total),
            str(parent_total.vm),
            str(parent_total.svr),
            str(parent_total.none),
        )
        console.print(table)
        grand_total = grand_total + parent_total

    console.print(f"\n[bold]Grand total:[/bold] {grand_total.total} files {grand_total.summary()}")


@app.command("clean-logs")
def clean_logs():
    """Delete log files older than LOG_MAX_FILES."""
    settings = get_settings()
    deleted = clean_old_logs(settings.log_dir, settings.log_file_prefix, settings.log_retention)
    console.print(f"[green]✓[/green] Deleted {deleted} old log files")


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Inventory sheet sync - reconcile inventory reports into Google Sheets."""
    try:
        settings = get_settings()
    except InventorySyncError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    log_level = "DEBUG" if debug else settings.log_level
    setup_logging(log_level=log_level)


if __name__ == "__main__":
    app()
