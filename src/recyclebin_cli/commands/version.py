from __future__ import annotations

import typer

from ..util import fail, get_global_root


def version():
    """Print the version and the resolved storage paths."""
    from recyclebin_core.__version__ import __version__
    from recyclebin_core.config import ConfigLoader
    from recyclebin_core.errors import RecycleBinError

    try:
        ctx = ConfigLoader.from_root(get_global_root())
    except RecycleBinError as exc:
        fail(exc)
    typer.echo(f"recyclebin {__version__}")
    typer.echo(f"  Metadata: {ctx.metadata_file}")
    typer.echo(f"  Files:    {ctx.files_dir}")
    typer.echo(f"  Config:   {ctx.config_file}")
    typer.echo(f"  Log:      {ctx.log_file}")
