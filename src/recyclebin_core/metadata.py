"""Metadata store: the ordered record log behind the recycle bin.

On disk the store is a comma-delimited text file with a fixed two-line header
followed by one record per line:

    # Recycle Bin Metadata
    ID,ORIGINAL_NAME,ORIGINAL_PATH,DELETION_DATE,FILE_SIZE,FILE_TYPE,PERMISSIONS,OWNER
    1761607543_xPfnR2k9Qa,report.txt,/home/me/docs,2025-10-05 14:03:11,10,file,644,me:me

Values holding the delimiter or a line break cannot be stored; callers get a
`ValidationError` instead of a silently mangled row. All parsing lives here so
the on-disk format can change without touching callers.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .errors import MetadataFormatError, ValidationError, WriteError
from .locking import StoreLock
from .models import DELIMITER, ItemKind, TrashRecord

logger = logging.getLogger(__name__)

HEADER_LINES = (
    "# Recycle Bin Metadata",
    "ID,ORIGINAL_NAME,ORIGINAL_PATH,DELETION_DATE,FILE_SIZE,FILE_TYPE,PERMISSIONS,OWNER",
)
FIELD_COUNT = 8


def encode_record(record: TrashRecord) -> str:
    """Encode a record as one line (without trailing newline)."""
    bad = record.unsupported_fields()
    if bad:
        raise ValidationError(
            [f"{name} contains '{DELIMITER}' or a line break (unsupported)" for name in bad]
        )
    return DELIMITER.join(record.field_values())


def decode_record(line: str, line_no: int = 0) -> TrashRecord:
    """Decode one data line into a TrashRecord."""
    parts = line.rstrip("\r\n").split(DELIMITER)
    if len(parts) != FIELD_COUNT:
        raise MetadataFormatError(line_no, f"expected {FIELD_COUNT} fields, got {len(parts)}")
    item_id, name, directory, deleted_at, size, kind, mode, owner = parts
    try:
        return TrashRecord(
            id=item_id,
            original_name=name,
            original_dir=directory,
            deleted_at=deleted_at,
            size_bytes=int(size),
            kind=ItemKind(kind),
            mode=int(mode, 8),
            owner=owner,
        )
    except ValueError as e:
        raise MetadataFormatError(line_no, str(e)) from None


class MetadataStore:
    """Append/compact record log with a fixed header.

    Every write holds the store lock. `remove_where` rewrites into a temp
    file in the same directory and swaps it in with `os.replace`, so a crash
    leaves either the old or the new file, never a partial one.
    """

    def __init__(self, path: Path, lock_path: Optional[Path] = None):
        self.path = path
        self.lock_path = lock_path or path.with_name(path.name + ".lock")

    def _lock(self) -> StoreLock:
        return StoreLock(self.lock_path)

    def initialize(self) -> bool:
        """Create the store with its header if missing. Returns True if created."""
        if self.path.exists():
            return False
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock():
            if self.path.exists():
                return False
            self._write_atomic(list(HEADER_LINES))
        return True

    def _read_lines(self) -> List[str]:
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8", newline="") as f:
            return [line.rstrip("\r\n") for line in f]

    def _split(self) -> Tuple[List[str], List[Tuple[int, str]]]:
        """Return (header lines, [(line_no, data line)])."""
        lines = self._read_lines()
        header = lines[: len(HEADER_LINES)]
        data = [
            (index + 1, line)
            for index, line in enumerate(lines)
            if index >= len(HEADER_LINES) and line.strip()
        ]
        return header, data

    def append(self, record: TrashRecord) -> None:
        """Append one record as a single write.

        A last line left without its newline (torn write, hand edit) is
        terminated first so the new row never merges into it.
        """
        line = (encode_record(record) + "\n").encode("utf-8")
        if not self.path.exists():
            self.initialize()
        with self._lock():
            try:
                with open(self.path, "a+b") as f:
                    f.seek(0, os.SEEK_END)
                    if f.tell() > 0:
                        f.seek(-1, os.SEEK_END)
                        if f.read(1) != b"\n":
                            line = b"\n" + line
                    f.write(line)
                    f.flush()
                    os.fsync(f.fileno())
            except OSError as e:
                raise WriteError(f"Failed to append to {self.path}: {e}") from e
        logger.debug(f"Appended record {record.id}")

    def read_all(self) -> List[TrashRecord]:
        """Records in insertion order; malformed rows are logged and skipped."""
        _, data = self._split()
        records: List[TrashRecord] = []
        for line_no, line in data:
            try:
                records.append(decode_record(line, line_no))
            except MetadataFormatError as e:
                logger.warning(f"{self.path}: {e}")
        return records

    def find(self, item_id: str) -> Optional[TrashRecord]:
        for record in self.read_all():
            if record.id == item_id:
                return record
        return None

    def remove_where(self, predicate: Callable[[TrashRecord], bool]) -> List[TrashRecord]:
        """Drop matching records in one rewrite and return them.

        Header and non-matching rows (malformed ones included) are kept in
        their original order. Nothing is rewritten when nothing matches.
        """
        with self._lock():
            _, data = self._split()
            kept: List[str] = []
            removed: List[TrashRecord] = []
            for line_no, line in data:
                try:
                    record = decode_record(line, line_no)
                except MetadataFormatError:
                    kept.append(line)
                    continue
                if predicate(record):
                    removed.append(record)
                else:
                    kept.append(line)
            if removed:
                self._write_atomic(list(HEADER_LINES) + kept)
        return removed

    def remove_ids(self, ids) -> List[TrashRecord]:
        wanted = set(ids)
        if not wanted:
            return []
        return self.remove_where(lambda record: record.id in wanted)

    def _write_atomic(self, lines: List[str]) -> None:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write("\n".join(lines) + "\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise WriteError(f"Failed to rewrite {self.path}: {e}") from e
