from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from .util import configure_logging, configure_stdio, set_global_root, verbose_from_env

app = typer.Typer(help="recyclebin: reversible delete with restore, purge and retention")


@app.callback()
def _init(
    root: Optional[Path] = typer.Option(
        None,
        "--root",
        help="Recycle bin directory (default: $RECYCLE_BIN_DIR or ~/.recycle_bin)",
        file_okay=False,
        dir_okay=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    configure_stdio()
    configure_logging(verbose or verbose_from_env())

    # Store the root override globally for use by commands; reset on every invocation
    set_global_root(root)


from .commands import items as items_cmd  # noqa: E402
from .commands import query as query_cmd  # noqa: E402
from .commands import config_cmd as config_cmd  # noqa: E402
from .commands.version import version as version_fn  # noqa: E402

app.command(name="delete")(items_cmd.delete)
app.command(name="restore")(items_cmd.restore)
app.command(name="empty")(items_cmd.empty)
app.command(name="cleanup")(items_cmd.cleanup)
app.command(name="list")(query_cmd.list_items)
app.command(name="search")(query_cmd.search)
app.command(name="stats")(query_cmd.stats)
app.command(name="preview")(query_cmd.preview)
app.command(name="doctor")(query_cmd.doctor)
app.add_typer(config_cmd.app, name="config", help="Show or change quota and retention")
app.command(name="version")(version_fn)


def main():
    app()
