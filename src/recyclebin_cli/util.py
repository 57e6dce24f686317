from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import NoReturn, Optional

import typer

from recyclebin_core.config import ConfigLoader, RecycleBinContext
from recyclebin_core.errors import (
    AmbiguousSelectorError,
    ConflictError,
    MetadataFormatError,
    MoveError,
    RecycleBinError,
    WriteError,
)

VERBOSE_ENV_VAR = "RECYCLE_BIN_VERBOSE"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

EXIT_USER_ERROR = 1
EXIT_CONFLICT = 2
EXIT_IO_ERROR = 3

# Global variable to store the --root override for this invocation
_global_root: Optional[Path] = None


def set_global_root(root: Optional[Path]) -> None:
    """Set (or clear) the storage root override for use by commands."""
    global _global_root
    _global_root = root


def get_global_root() -> Optional[Path]:
    """Get the storage root override if set."""
    return _global_root


def configure_stdio() -> None:
    """Make CLI output robust across Windows console encodings.

    Table borders and status glyphs are not encodable in every Windows code
    page; replace unencodable characters instead of aborting the command.
    """

    if os.name != "nt":
        return

    for stream in (sys.stdout, sys.stderr):
        try:
            stream.reconfigure(errors="replace")
        except (AttributeError, ValueError):
            continue


class _StderrHandler(logging.StreamHandler):
    """StreamHandler bound to whatever ``sys.stderr`` is at emit time."""

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value) -> None:
        pass


def verbose_from_env() -> bool:
    return (os.environ.get(VERBOSE_ENV_VAR) or "").strip().lower() in ("1", "true", "yes", "on")


def configure_logging(verbose: bool = False) -> None:
    """WARNING by default, DEBUG when verbose. Safe to call once per invocation."""
    root_logger = logging.getLogger()
    if not any(isinstance(h, _StderrHandler) for h in root_logger.handlers):
        handler = _StderrHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def human_size(num_bytes: int) -> str:
    """IEC rendering: 512B, 1.5KiB, 3.0MiB."""
    if num_bytes < 1024:
        return f"{num_bytes}B"
    value = float(num_bytes)
    for unit in ("KiB", "MiB", "GiB", "TiB"):
        value /= 1024
        if value < 1024 or unit == "TiB":
            return f"{value:.1f}{unit}"
    return f"{num_bytes}B"


def exit_code_for(exc: RecycleBinError) -> int:
    if isinstance(exc, ConflictError):
        return EXIT_CONFLICT
    if isinstance(exc, (MoveError, WriteError, MetadataFormatError)):
        return EXIT_IO_ERROR
    return EXIT_USER_ERROR


def fail(exc: RecycleBinError) -> NoReturn:
    """Report a domain error and exit with its mapped code."""
    typer.echo(f"❌ {exc}", err=True)
    if isinstance(exc, AmbiguousSelectorError):
        for record in exc.candidates:
            typer.echo(f"  - {record.id}  {record.original_name}", err=True)
    raise typer.Exit(exit_code_for(exc))


def open_context() -> RecycleBinContext:
    """Resolve root and config, creating the storage layout on first use."""
    from recyclebin_ops.init import init_recycle_bin

    try:
        ctx = ConfigLoader.from_root(get_global_root())
        init_recycle_bin(ctx)
    except RecycleBinError as exc:
        fail(exc)
    except OSError as exc:
        typer.echo(f"❌ Failed to initialize recycle bin: {exc}", err=True)
        raise typer.Exit(EXIT_IO_ERROR)
    return ctx


def records_table(records, *, detailed: bool = False, title: Optional[str] = None, numbered: bool = False):
    """Rich table of records; sizes rendered IEC style."""
    from rich.table import Table

    from recyclebin_ops.query import COMPACT_COLUMNS, DETAILED_COLUMNS, record_row

    columns = DETAILED_COLUMNS if detailed else COMPACT_COLUMNS
    size_index = columns.index("Size")
    table = Table(title=title)
    if numbered:
        table.add_column("#", style="cyan", justify="right")
    for column in columns:
        table.add_column(column, justify="right" if column == "Size" else "left", overflow="fold")
    for index, record in enumerate(records, start=1):
        row = record_row(record, detailed)
        row[size_index] = human_size(record.size_bytes)
        if numbered:
            row.insert(0, str(index))
        table.add_row(*row)
    return table
