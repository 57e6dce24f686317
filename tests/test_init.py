from pathlib import Path

import recyclebin_core
import recyclebin_ops
from recyclebin_core.config import RecycleBinConfig, RecycleBinContext
from recyclebin_core.metadata import HEADER_LINES
from recyclebin_ops.init import init_recycle_bin


def test_init_creates_layout_then_is_idempotent(tmp_path: Path):
    ctx = RecycleBinContext(root=tmp_path / "bin", config=RecycleBinConfig())

    first = init_recycle_bin(ctx)
    assert first.created
    assert ctx.files_dir.is_dir()
    assert tuple(ctx.metadata_file.read_text(encoding="utf-8").splitlines()) == HEADER_LINES
    assert ctx.config_file.exists()
    assert ctx.log_file.exists()

    second = init_recycle_bin(ctx)
    assert not second.created
    assert second.created_paths == []


def test_package_exports_resolve():
    for package in (recyclebin_core, recyclebin_ops):
        missing = [name for name in package.__all__ if not hasattr(package, name)]
        assert missing == [], package.__name__
