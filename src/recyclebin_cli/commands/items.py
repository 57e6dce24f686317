"""Mutating commands: delete, restore, empty, cleanup."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from ..util import (
    EXIT_CONFLICT,
    EXIT_IO_ERROR,
    EXIT_USER_ERROR,
    fail,
    human_size,
    open_context,
    records_table,
)

console = Console()

CONFIRM_TOKENS = ("y", "yes")


def delete(
    paths: List[Path] = typer.Argument(..., help="Files or directories to move into the recycle bin"),
):
    """Move files or directories into the recycle bin."""
    from recyclebin_ops.lifecycle import LifecycleEngine
    from recyclebin_ops.sweeper import SweepWorker

    ctx = open_context()
    with SweepWorker() as worker:
        engine = LifecycleEngine(ctx, sweeper=worker)
        result = engine.delete(paths)
        sweep_errors = worker.drain()

    for record in result.deleted:
        typer.echo(f"OK: Deleted '{record.destination}' (ID: {record.id})")
    for failure in result.failures:
        typer.echo(f"❌ {failure.message}", err=True)
    if result.over_quota:
        typer.echo(f"⚠️  Recycle bin is above its {ctx.config.quota_mb}MB quota; consider 'empty' or 'cleanup'", err=True)
    for exc in sweep_errors:
        typer.echo(f"⚠️  Background cleanup failed: {exc}", err=True)

    if result.failures and not result.deleted:
        raise typer.Exit(EXIT_USER_ERROR)


def _choose_candidate(candidates):
    console.print(records_table(candidates, title="Multiple matches", numbered=True))
    choice = typer.prompt("Select a number to restore (0 to cancel)", type=int, default=0)
    if choice == 0:
        return None
    if choice < 1 or choice > len(candidates):
        typer.echo(f"❌ Invalid selection: {choice}", err=True)
        raise typer.Exit(EXIT_USER_ERROR)
    return candidates[choice - 1]


def _prompt_conflict_policy(exc):
    from recyclebin_core.models import ConflictPolicy

    typer.echo(f"⚠️  {exc}")
    typer.echo("  1) Overwrite existing file")
    typer.echo("  2) Restore with a timestamped name")
    typer.echo("  3) Cancel")
    choice = typer.prompt("Choose [1-3]", default="3")
    return {
        "1": ConflictPolicy.OVERWRITE,
        "2": ConflictPolicy.RENAME,
    }.get(choice.strip(), ConflictPolicy.CANCEL)


def restore(
    selector: str = typer.Argument(..., help="Trash ID or part of the original name"),
    force_id: bool = typer.Option(False, "--id", help="Treat SELECTOR as an exact ID"),
    on_conflict: Optional[str] = typer.Option(
        None, "--on-conflict", help="overwrite|rename|cancel when the destination exists"
    ),
):
    """Restore a trashed item to its original location."""
    from recyclebin_core.errors import ConflictError, RecordNotFoundError, RecycleBinError, UserInputError
    from recyclebin_core.models import ConflictPolicy
    from recyclebin_ops.lifecycle import LifecycleEngine

    policy = None
    if on_conflict is not None:
        try:
            policy = ConflictPolicy(on_conflict.strip().lower())
        except ValueError:
            fail(UserInputError(f"Invalid conflict choice '{on_conflict}' (expected overwrite|rename|cancel)"))

    ctx = open_context()
    engine = LifecycleEngine(ctx)
    try:
        candidates = engine.find_restore_candidates(selector, force_id=force_id)
    except RecycleBinError as exc:
        fail(exc)
    if not candidates:
        fail(RecordNotFoundError(selector))

    record = candidates[0]
    if len(candidates) > 1:
        record = _choose_candidate(candidates)
        if record is None:
            typer.echo("Restore cancelled.")
            return

    try:
        result = engine.restore_record(record, on_conflict=policy)
    except ConflictError as exc:
        try:
            result = engine.restore_record(record, on_conflict=_prompt_conflict_policy(exc))
        except RecycleBinError as retry_exc:
            fail(retry_exc)
    except RecycleBinError as exc:
        fail(exc)

    if result.status == "cancelled":
        typer.echo(f"Restore cancelled: '{result.destination}' already exists.")
        raise typer.Exit(EXIT_CONFLICT)
    if result.created_dir:
        typer.echo(f"Recreated directory '{result.destination.parent}'")
    if result.renamed:
        typer.echo(f"OK: Restored '{record.original_name}' as '{result.destination}'")
    else:
        typer.echo(f"OK: Restored '{record.original_name}' to '{result.destination}'")


def empty(
    item_id: Optional[str] = typer.Argument(None, help="Exact trash ID to purge (default: everything)"),
    pattern: Optional[str] = typer.Option(None, "--pattern", "-p", help="Purge items with any field containing PATTERN"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Permanently delete items from the recycle bin."""
    from recyclebin_core.errors import RecycleBinError, UserInputError
    from recyclebin_core.models import PurgeScope
    from recyclebin_ops.lifecycle import LifecycleEngine

    if item_id is not None and pattern is not None:
        fail(UserInputError("Use either an ID or --pattern, not both"))

    ctx = open_context()
    engine = LifecycleEngine(ctx)
    plan = engine.plan_purge(PurgeScope(item_id=item_id, pattern=pattern))
    if plan.is_empty:
        if plan.scope.is_all:
            typer.echo("Recycle bin is already empty.")
        else:
            typer.echo(f"Nothing matched ({plan.scope.describe()}).")
        return

    console.print(records_table(plan.candidates, title="Items to delete permanently"))
    if not yes:
        answer = typer.prompt(
            f"Permanently delete {len(plan.candidates)} item(s) ({human_size(plan.total_bytes)})? [y/N]",
            default="",
            show_default=False,
        )
        if answer.strip().lower() not in CONFIRM_TOKENS:
            typer.echo("Operation cancelled.")
            return

    try:
        result = engine.execute_purge(plan)
    except RecycleBinError as exc:
        fail(exc)

    for item in result.missing_payloads:
        typer.echo(f"⚠️  Stored item for {item} was already missing; record removed", err=True)
    for failure in result.failures:
        typer.echo(f"❌ {failure.message}", err=True)
    typer.echo(f"OK: Permanently deleted {result.count} item(s), freed {human_size(result.bytes_freed)}")
    if result.failures:
        raise typer.Exit(EXIT_IO_ERROR)


def cleanup(
    dry_run: bool = typer.Option(False, "--dry-run", help="List what would be removed without deleting"),
):
    """Remove items older than the retention period."""
    from recyclebin_core.errors import RecycleBinError
    from recyclebin_ops.lifecycle import LifecycleEngine

    ctx = open_context()
    engine = LifecycleEngine(ctx)
    try:
        result = engine.sweep(dry_run=dry_run)
    except RecycleBinError as exc:
        fail(exc)

    plan = result.plan
    if not plan.candidates:
        typer.echo(f"Nothing to clean: no items older than {plan.retention_days} day(s).")
        return

    if dry_run:
        console.print(records_table(plan.candidates, title=f"Would remove (deleted on or before {plan.cutoff})"))
        typer.echo(f"Dry run: {result.count} item(s), {human_size(result.bytes_freed)} would be freed")
        return

    for failure in result.purge.failures:
        typer.echo(f"❌ {failure.message}", err=True)
    typer.echo(f"OK: Removed {result.count} item(s) older than {plan.retention_days} day(s), freed {human_size(result.bytes_freed)}")
    if result.purge.failures:
        raise typer.Exit(EXIT_IO_ERROR)
