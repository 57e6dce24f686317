"""Recycle bin initialization operations."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List

from recyclebin_core.config import ConfigLoader, RecycleBinContext
from recyclebin_core.metadata import MetadataStore
from recyclebin_core.repository import ItemRepository


@dataclass
class InitRecycleBinResult:
    """Result of initializing the storage root."""

    context: RecycleBinContext
    created_paths: List[Path]

    @property
    def created(self) -> bool:
        return bool(self.created_paths)


def init_recycle_bin(ctx: RecycleBinContext) -> InitRecycleBinResult:
    """Create the storage layout if missing; existing files are left alone."""
    created: List[Path] = []

    if not ctx.root.exists():
        ctx.root.mkdir(parents=True, exist_ok=True)
        created.append(ctx.root)

    if ItemRepository(ctx.files_dir).initialize():
        created.append(ctx.files_dir)

    if MetadataStore(ctx.metadata_file, ctx.lock_file).initialize():
        created.append(ctx.metadata_file)

    if not ctx.config_file.exists():
        ConfigLoader.write(ctx.config_file, ctx.config)
        created.append(ctx.config_file)

    if not ctx.log_file.exists():
        ctx.log_file.touch()
        created.append(ctx.log_file)

    return InitRecycleBinResult(context=ctx, created_paths=created)
