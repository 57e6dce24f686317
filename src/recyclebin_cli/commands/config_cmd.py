from __future__ import annotations

import typer

from ..util import fail, get_global_root

app = typer.Typer(help="Config inspection and updates")


@app.command("show")
def show():
    """Print the effective configuration."""
    from recyclebin_core.config import ConfigLoader
    from recyclebin_core.errors import RecycleBinError

    try:
        ctx = ConfigLoader.from_root(get_global_root())
    except RecycleBinError as exc:
        fail(exc)
    source = ctx.config_file if ctx.config_file.exists() else "defaults"
    typer.echo(f"Config: {source}")
    typer.echo(f"MAX_SIZE_MB={ctx.config.quota_mb}")
    typer.echo(f"RETENTION_DAYS={ctx.config.retention_days}")


@app.command("set")
def set_value(
    key: str = typer.Argument(..., help="quota|retention (or MAX_SIZE_MB|RETENTION_DAYS)"),
    value: str = typer.Argument(..., help="Positive integer"),
):
    """Validate and persist one setting."""
    from recyclebin_core.config import CONFIG_FILE_NAME, ConfigLoader
    from recyclebin_core.errors import RecycleBinError

    root = ConfigLoader.resolve_root(get_global_root())
    config_path = root / CONFIG_FILE_NAME
    try:
        updated = ConfigLoader.set_value(config_path, key, value)
    except RecycleBinError as exc:
        fail(exc)
    typer.echo(f"OK: MAX_SIZE_MB={updated.quota_mb} RETENTION_DAYS={updated.retention_days}")
