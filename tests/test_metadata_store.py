"""Tests for the metadata store file format and rewrites."""

import os
from pathlib import Path

import pytest

from recyclebin_core.errors import MetadataFormatError, ValidationError, WriteError
from recyclebin_core.metadata import HEADER_LINES, MetadataStore, decode_record, encode_record
from recyclebin_core.models import ItemKind, TrashRecord


def _record(item_id: str, name: str = "a.txt", **overrides) -> TrashRecord:
    values = dict(
        id=item_id,
        original_name=name,
        original_dir="/home/me/docs",
        deleted_at="2025-10-05 14:03:11",
        size_bytes=10,
        kind=ItemKind.FILE,
        mode=0o644,
        owner="me:me",
    )
    values.update(overrides)
    return TrashRecord(**values)


@pytest.fixture
def store(tmp_path: Path) -> MetadataStore:
    store = MetadataStore(tmp_path / "metadata.db", tmp_path / ".lock")
    store.initialize()
    return store


def test_initialize_writes_two_line_header(store: MetadataStore):
    lines = store.path.read_text(encoding="utf-8").splitlines()
    assert tuple(lines) == HEADER_LINES
    assert store.read_all() == []
    assert store.initialize() is False


def test_append_preserves_insertion_order(store: MetadataStore):
    for item_id in ["1000000001_aaaaaaaa", "1000000002_bbbbbbbb", "1000000003_cccccccc"]:
        store.append(_record(item_id))
    assert [r.id for r in store.read_all()] == [
        "1000000001_aaaaaaaa",
        "1000000002_bbbbbbbb",
        "1000000003_cccccccc",
    ]


def test_append_after_missing_trailing_newline_keeps_both_records(store: MetadataStore):
    store.append(_record("1000000001_aaaaaaaa", "x.txt"))
    store.path.write_bytes(store.path.read_bytes().rstrip(b"\n"))

    store.append(_record("1000000002_bbbbbbbb", "y.txt"))

    assert [r.original_name for r in store.read_all()] == ["x.txt", "y.txt"]
    assert store.path.read_bytes().endswith(b"\n")
    assert b"\n\n" not in store.path.read_bytes()


def test_record_line_layout(store: MetadataStore):
    store.append(_record("1761607543_xPfnR2k9Qa", "my report.txt", mode=0o755))
    last = store.path.read_text(encoding="utf-8").splitlines()[-1]
    assert last == "1761607543_xPfnR2k9Qa,my report.txt,/home/me/docs,2025-10-05 14:03:11,10,file,755,me:me"


def test_decode_round_trips_mode_as_octal():
    record = _record("1761607543_xPfnR2k9Qa", kind=ItemKind.DIRECTORY, mode=0o700)
    decoded = decode_record(encode_record(record))
    assert decoded == record
    assert decoded.mode_octal == "700"


def test_delimiter_in_name_is_rejected(store: MetadataStore):
    with pytest.raises(ValidationError):
        store.append(_record("1000000001_aaaaaaaa", "a,b.txt"))
    assert store.read_all() == []


def test_decode_rejects_wrong_field_count():
    with pytest.raises(MetadataFormatError):
        decode_record("only,three,fields", line_no=3)


def test_remove_where_returns_removed_and_keeps_header(store: MetadataStore):
    store.append(_record("1000000001_aaaaaaaa", "keep.txt"))
    store.append(_record("1000000002_bbbbbbbb", "drop.txt"))
    store.append(_record("1000000003_cccccccc", "keep2.txt"))

    removed = store.remove_where(lambda r: r.original_name == "drop.txt")

    assert [r.id for r in removed] == ["1000000002_bbbbbbbb"]
    lines = store.path.read_text(encoding="utf-8").splitlines()
    assert tuple(lines[:2]) == HEADER_LINES
    assert [r.original_name for r in store.read_all()] == ["keep.txt", "keep2.txt"]


def test_remove_where_without_match_does_not_rewrite(store: MetadataStore):
    store.append(_record("1000000001_aaaaaaaa"))
    before = store.path.stat().st_mtime_ns
    content = store.path.read_bytes()
    assert store.remove_where(lambda r: False) == []
    assert store.path.read_bytes() == content
    assert store.path.stat().st_mtime_ns == before


def test_malformed_rows_are_skipped_on_read_and_kept_on_rewrite(store: MetadataStore):
    store.append(_record("1000000001_aaaaaaaa"))
    with open(store.path, "a", encoding="utf-8") as f:
        f.write("garbage line\n")
    store.append(_record("1000000002_bbbbbbbb"))

    assert [r.id for r in store.read_all()] == ["1000000001_aaaaaaaa", "1000000002_bbbbbbbb"]
    store.remove_ids(["1000000001_aaaaaaaa"])
    assert "garbage line" in store.path.read_text(encoding="utf-8")


def test_failed_rewrite_leaves_store_intact(store: MetadataStore, monkeypatch):
    store.append(_record("1000000001_aaaaaaaa"))
    original = store.path.read_bytes()

    def boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", boom)
    with pytest.raises(WriteError):
        store.remove_ids(["1000000001_aaaaaaaa"])

    assert store.path.read_bytes() == original
    leftovers = [p for p in store.path.parent.iterdir() if p.name.endswith(".tmp")]
    assert leftovers == []


def test_find_by_id(store: MetadataStore):
    store.append(_record("1000000001_aaaaaaaa", "x.txt"))
    assert store.find("1000000001_aaaaaaaa").original_name == "x.txt"
    assert store.find("missing") is None
