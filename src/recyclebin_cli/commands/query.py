"""Read-only commands: list, search, stats, preview, doctor."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..util import fail, human_size, open_context, records_table

console = Console()


def list_items(
    sort: str = typer.Option("none", "--sort", "-s", help="none|name|date|size"),
    reverse: bool = typer.Option(False, "--reverse", "-r", help="Reverse the sort order"),
    detailed: bool = typer.Option(False, "--detailed", "-d", help="Show all recorded fields"),
):
    """List items in the recycle bin."""
    from recyclebin_core.errors import RecycleBinError
    from recyclebin_ops.query import QueryEngine

    ctx = open_context()
    try:
        result = QueryEngine(ctx).list_records(sort.strip().lower(), reverse=reverse, detailed=detailed)
    except RecycleBinError as exc:
        fail(exc)

    if result.is_empty:
        typer.echo("Recycle bin is empty.")
        return
    console.print(records_table(result.records, detailed=detailed, title="Recycle Bin"))
    typer.echo(f"Total: {result.count} item(s), {human_size(result.total_bytes)}")


_NO_RESULTS = {
    "name_excluded": "No items match name '{name}'.",
    "date_excluded": "No items were deleted in the given date range.",
    "both_excluded": "No items match name '{name}', and none were deleted in the given date range.",
}


def search(
    name: Optional[str] = typer.Argument(None, help="Case-insensitive part of the original name"),
    date_from: Optional[str] = typer.Option(None, "--date-from", help="YYYY-MM-DD or 'YYYY-MM-DD HH:MM:SS' (inclusive)"),
    date_to: Optional[str] = typer.Option(None, "--date-to", help="YYYY-MM-DD or 'YYYY-MM-DD HH:MM:SS' (inclusive)"),
    detailed: bool = typer.Option(False, "--detailed", "-d", help="Show all recorded fields"),
):
    """Search trashed items by name and deletion date."""
    from recyclebin_core.errors import RecycleBinError
    from recyclebin_ops.query import QueryEngine, SearchOutcome

    ctx = open_context()
    try:
        result = QueryEngine(ctx).search(name, date_from=date_from, date_to=date_to, detailed=detailed)
    except RecycleBinError as exc:
        fail(exc)

    if result.outcome == SearchOutcome.NO_CRITERIA:
        typer.echo("❌ Give a name and/or --date-from/--date-to", err=True)
        raise typer.Exit(1)
    if result.outcome != SearchOutcome.FOUND:
        typer.echo(_NO_RESULTS[result.outcome.value].format(name=result.name))
        return
    console.print(records_table(result.records, detailed=detailed, title="Search Results"))
    typer.echo(f"Found {result.count} item(s)")


def stats():
    """Show recycle bin statistics."""
    from recyclebin_ops.query import QueryEngine

    ctx = open_context()
    summary = QueryEngine(ctx).statistics()
    if summary.is_empty:
        typer.echo("Recycle bin is empty.")
        return

    table = Table(title="Recycle Bin Statistics", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    table.add_row("Total items", str(summary.total_items))
    table.add_row("Total size", f"{human_size(summary.total_bytes)} ({summary.total_bytes} bytes)")
    table.add_row("Quota usage", f"{summary.quota_percent}% of {summary.quota_mb}MB")
    table.add_row("Files", str(summary.file_count))
    table.add_row("Directories", str(summary.directory_count))
    table.add_row("Newest", f"{summary.newest.original_name} ({summary.newest.deleted_at})")
    table.add_row("Oldest", f"{summary.oldest.original_name} ({summary.oldest.deleted_at})")
    table.add_row("Average file size", human_size(summary.average_file_bytes))
    console.print(table)


def preview(
    item_id: str = typer.Argument(..., help="Exact trash ID"),
    lines: int = typer.Option(10, "--lines", "-n", min=1, help="Number of lines to show for text files"),
):
    """Show the first lines of a trashed text file."""
    from recyclebin_core.errors import RecycleBinError
    from recyclebin_ops.query import PreviewKind, QueryEngine

    ctx = open_context()
    try:
        result = QueryEngine(ctx).preview(item_id, max_lines=lines)
    except RecycleBinError as exc:
        fail(exc)

    record = result.record
    typer.echo(f"{record.original_name} (ID: {record.id}, deleted {record.deleted_at})")
    if result.kind == PreviewKind.DIRECTORY:
        typer.echo(f"Directory; cannot be previewed. Stored at {result.location}")
    elif result.kind == PreviewKind.BINARY:
        typer.echo(f"Binary file: {result.mime_type}, {human_size(result.size_bytes)}")
    else:
        typer.echo("-" * 40)
        for line in result.lines:
            typer.echo(line)


def doctor():
    """Check that records and stored items match."""
    from recyclebin_ops.query import QueryEngine

    ctx = open_context()
    report = QueryEngine(ctx).check_consistency()
    typer.echo(f"Records: {report.record_count}, stored items: {report.payload_count}")
    for item in report.orphan_payloads:
        typer.echo(f"❌ Stored item without record: {ctx.files_dir / item}")
    for record in report.ghost_records:
        typer.echo(f"❌ Record without stored item: {record.id} ({record.original_name})")
    for item in report.duplicate_ids:
        typer.echo(f"❌ Duplicate record ID: {item}")
    if not report.ok:
        raise typer.Exit(1)
    typer.echo("OK: Recycle bin is consistent")
