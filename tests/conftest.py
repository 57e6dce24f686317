from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from hypothesis import settings

from recyclebin_core.config import RecycleBinConfig, RecycleBinContext
from recyclebin_core.metadata import MetadataStore
from recyclebin_core.models import ItemKind, TrashRecord
from recyclebin_ops.init import init_recycle_bin

# Prevent Hypothesis from writing a local example database (e.g. `.hypothesis/`) during tests.
settings.register_profile("recyclebin-tests", database=None)
settings.load_profile("recyclebin-tests")


class FrozenClock:
    """Callable clock for engines; advance it explicitly in tests."""

    def __init__(self, start: datetime = datetime(2025, 10, 5, 14, 3, 11)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_context(
    tmp_path: Path,
    *,
    quota_mb: int = 1024,
    retention_days: int = 30,
) -> RecycleBinContext:
    """Initialized recycle bin under tmp_path/bin.

    Files to delete should live outside it (see `make_file`), since the
    storage root and its ancestors are protected.
    """
    ctx = RecycleBinContext(
        root=tmp_path / "bin",
        config=RecycleBinConfig(quota_mb=quota_mb, retention_days=retention_days),
    )
    init_recycle_bin(ctx)
    return ctx


def make_file(tmp_path: Path, name: str, content: str = "hello", *, subdir: str = "work") -> Path:
    path = tmp_path / subdir / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def seed_record(
    ctx: RecycleBinContext,
    item_id: str,
    *,
    name: str = "old.txt",
    deleted_at: str = "2025-09-01 00:00:00",
    content: Optional[str] = "payload",
    original_dir: Optional[Path] = None,
) -> TrashRecord:
    """Write a record (and, unless content is None, its payload) directly."""
    record = TrashRecord(
        id=item_id,
        original_name=name,
        original_dir=str(original_dir or ctx.root.parent / "work"),
        deleted_at=deleted_at,
        size_bytes=len(content or ""),
        kind=ItemKind.FILE,
        mode=0o644,
        owner="me:me",
    )
    if content is not None:
        (ctx.files_dir / item_id).write_text(content, encoding="utf-8")
    MetadataStore(ctx.metadata_file, ctx.lock_file).append(record)
    return record
