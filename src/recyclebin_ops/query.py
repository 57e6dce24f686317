"""
query.py - Read-only views over the recycle bin.

List, Search, Statistics, Preview and the consistency check. Nothing here
writes the metadata store or the item repository; Search only appends an
audit line.
"""

from __future__ import annotations

import logging
import mimetypes
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Union

from recyclebin_core.audit import AuditLog
from recyclebin_core.config import RecycleBinContext
from recyclebin_core.errors import PayloadMissingError, RecordNotFoundError, UserInputError
from recyclebin_core.metadata import MetadataStore
from recyclebin_core.models import TIMESTAMP_FORMAT, AuditAction, ItemKind, SortKey, TrashRecord
from recyclebin_core.repository import ItemRepository

logger = logging.getLogger(__name__)

SNIFF_BYTES = 8192
PREVIEW_LINES = 10

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATE_TIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")

COMPACT_COLUMNS = ["ID", "Name", "Deleted", "Size"]
DETAILED_COLUMNS = ["ID", "Name", "Original Path", "Deleted", "Size", "Type", "Permissions", "Owner"]


def normalize_date_bound(value: Optional[str], *, upper: bool) -> Optional[str]:
    """
    Validate a date bound and widen date-only values to the whole day.

    Args:
        value: ``YYYY-MM-DD`` or ``YYYY-MM-DD HH:MM:SS`` (or None)
        upper: True for ``date_to`` (widened to 23:59:59), False for ``date_from``

    Returns:
        Full timestamp string comparable with ``deleted_at``, or None

    Raises:
        UserInputError: Value is not a valid date
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if _DATE_ONLY_RE.match(value):
        fmt = "%Y-%m-%d"
    elif _DATE_TIME_RE.match(value):
        fmt = TIMESTAMP_FORMAT
    else:
        raise UserInputError(f"Invalid date '{value}' (expected YYYY-MM-DD or 'YYYY-MM-DD HH:MM:SS')")
    try:
        datetime.strptime(value, fmt)
    except ValueError:
        raise UserInputError(f"Invalid date '{value}'") from None
    if fmt == TIMESTAMP_FORMAT:
        return value
    return f"{value} 23:59:59" if upper else f"{value} 00:00:00"


def record_row(record: TrashRecord, detailed: bool = False) -> List[str]:
    """Raw column values for one record (sizes unformatted)."""
    if not detailed:
        return [record.id, record.original_name, record.deleted_at, str(record.size_bytes)]
    return [
        record.id,
        record.original_name,
        str(record.destination),
        record.deleted_at,
        str(record.size_bytes),
        record.kind.value,
        record.mode_octal,
        record.owner,
    ]


@dataclass
class ListResult:
    """Records in display order with aggregates."""
    records: List[TrashRecord]
    sort_key: SortKey
    reverse: bool
    detailed: bool

    @property
    def is_empty(self) -> bool:
        return not self.records

    @property
    def count(self) -> int:
        return len(self.records)

    @property
    def total_bytes(self) -> int:
        return sum(r.size_bytes for r in self.records)

    @property
    def columns(self) -> List[str]:
        return DETAILED_COLUMNS if self.detailed else COMPACT_COLUMNS

    def rows(self) -> List[List[str]]:
        return [record_row(r, self.detailed) for r in self.records]


class SearchOutcome(str, Enum):
    FOUND = "found"
    NO_CRITERIA = "no_criteria"
    NAME_EXCLUDED = "name_excluded"
    DATE_EXCLUDED = "date_excluded"
    BOTH_EXCLUDED = "both_excluded"


@dataclass
class SearchResult:
    """Search matches plus which criterion emptied the result, if any."""
    outcome: SearchOutcome
    records: List[TrashRecord] = field(default_factory=list)
    name: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    detailed: bool = False

    @property
    def count(self) -> int:
        return len(self.records)

    @property
    def columns(self) -> List[str]:
        return DETAILED_COLUMNS if self.detailed else COMPACT_COLUMNS

    def rows(self) -> List[List[str]]:
        return [record_row(r, self.detailed) for r in self.records]


@dataclass
class Statistics:
    total_items: int
    total_bytes: int
    quota_mb: int
    quota_percent: int
    file_count: int
    directory_count: int
    newest: Optional[TrashRecord]
    oldest: Optional[TrashRecord]
    average_file_bytes: int

    @property
    def is_empty(self) -> bool:
        return self.total_items == 0


class PreviewKind(str, Enum):
    TEXT = "text"
    BINARY = "binary"
    DIRECTORY = "directory"


@dataclass
class PreviewResult:
    record: TrashRecord
    kind: PreviewKind
    location: Path
    lines: List[str] = field(default_factory=list)
    mime_type: Optional[str] = None
    size_bytes: int = 0


@dataclass
class ConsistencyReport:
    """Mismatches between the metadata store and the item repository."""
    orphan_payloads: List[str] = field(default_factory=list)
    ghost_records: List[TrashRecord] = field(default_factory=list)
    duplicate_ids: List[str] = field(default_factory=list)
    record_count: int = 0
    payload_count: int = 0

    @property
    def ok(self) -> bool:
        return not (self.orphan_payloads or self.ghost_records or self.duplicate_ids)


def is_binary(path: Path, sample_size: int = SNIFF_BYTES) -> bool:
    """Binary if the first bytes hold a NUL or do not decode as UTF-8."""
    with open(path, "rb") as f:
        chunk = f.read(sample_size)
    if b"\x00" in chunk:
        return True
    try:
        chunk.decode("utf-8")
    except UnicodeDecodeError as e:
        # a multi-byte character cut at the sample boundary is still text
        return not (len(chunk) == sample_size and e.start >= len(chunk) - 3)
    return False


def _head(path: Path, max_lines: int) -> List[str]:
    lines: List[str] = []
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            lines.append(line.rstrip("\r\n"))
            if len(lines) >= max_lines:
                break
    return lines


class QueryEngine:
    """Read-side operations over the store and repository."""

    def __init__(
        self,
        ctx: RecycleBinContext,
        *,
        store: Optional[MetadataStore] = None,
        repository: Optional[ItemRepository] = None,
        audit: Optional[AuditLog] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.ctx = ctx
        self.store = store or MetadataStore(ctx.metadata_file, ctx.lock_file)
        self.repository = repository or ItemRepository(ctx.files_dir)
        self.audit = audit or AuditLog(ctx.log_file, clock=clock)

    def list_records(
        self,
        sort_key: Union[SortKey, str] = SortKey.NONE,
        reverse: bool = False,
        detailed: bool = False,
    ) -> ListResult:
        """
        All records ordered by `sort_key`, then reversed if requested.

        name sorts A-Z ignoring case; date and size sort newest/largest
        first; none keeps store order.

        Raises:
            UserInputError: Unknown sort key
        """
        try:
            key = SortKey(sort_key)
        except ValueError:
            valid = ", ".join(k.value for k in SortKey)
            raise UserInputError(f"Invalid sort key '{sort_key}' (expected one of: {valid})") from None

        records = self.store.read_all()
        if key == SortKey.NAME:
            records.sort(key=lambda r: r.original_name.lower())
        elif key == SortKey.DATE:
            records.sort(key=lambda r: r.deleted_at, reverse=True)
        elif key == SortKey.SIZE:
            records.sort(key=lambda r: r.size_bytes, reverse=True)
        if reverse:
            records.reverse()
        return ListResult(records=records, sort_key=key, reverse=reverse, detailed=detailed)

    def search(
        self,
        name: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        detailed: bool = False,
    ) -> SearchResult:
        """
        Records matching every supplied criterion.

        Args:
            name: Case-insensitive substring of the original name
            date_from: Inclusive lower bound on deletion time
            date_to: Inclusive upper bound on deletion time
            detailed: Render all fields

        Returns:
            SearchResult; `outcome` tells which criterion excluded everything

        Raises:
            UserInputError: Invalid date bound
        """
        name = (name or "").strip() or None
        lower = normalize_date_bound(date_from, upper=False)
        upper = normalize_date_bound(date_to, upper=True)
        result = SearchResult(
            outcome=SearchOutcome.NO_CRITERIA,
            name=name,
            date_from=lower,
            date_to=upper,
            detailed=detailed,
        )
        if name is None and lower is None and upper is None:
            return result
        if lower is not None and upper is not None and lower > upper:
            raise UserInputError(f"date_from ({lower}) is after date_to ({upper})")

        records = self.store.read_all()
        has_dates = lower is not None or upper is not None

        def in_range(record: TrashRecord) -> bool:
            if lower is not None and record.deleted_at < lower:
                return False
            if upper is not None and record.deleted_at > upper:
                return False
            return True

        by_name = [r for r in records if name is None or r.name_contains(name)]
        by_date = [r for r in records if in_range(r)]
        result.records = [r for r in by_name if in_range(r)]

        if result.records:
            result.outcome = SearchOutcome.FOUND
        elif name is not None and not by_name:
            result.outcome = (
                SearchOutcome.BOTH_EXCLUDED if has_dates and not by_date else SearchOutcome.NAME_EXCLUDED
            )
        else:
            result.outcome = SearchOutcome.DATE_EXCLUDED

        criteria = []
        if name is not None:
            criteria.append(f"name='{name}'")
        if lower is not None:
            criteria.append(f"from='{lower}'")
        if upper is not None:
            criteria.append(f"to='{upper}'")
        self.audit.record(AuditAction.SEARCH, f"Search {' '.join(criteria)} - {result.count} results")
        logger.debug(f"Search {criteria} -> {result.outcome.value} ({result.count})")
        return result

    def statistics(self) -> Statistics:
        records = self.store.read_all()
        total = sum(r.size_bytes for r in records)
        files = [r for r in records if r.kind == ItemKind.FILE]
        quota_bytes = self.ctx.config.quota_bytes
        by_date = sorted(records, key=lambda r: r.deleted_at)
        return Statistics(
            total_items=len(records),
            total_bytes=total,
            quota_mb=self.ctx.config.quota_mb,
            quota_percent=total * 100 // quota_bytes,
            file_count=len(files),
            directory_count=len(records) - len(files),
            newest=by_date[-1] if by_date else None,
            oldest=by_date[0] if by_date else None,
            average_file_bytes=round(sum(r.size_bytes for r in files) / len(files)) if files else 0,
        )

    def preview(self, item_id: str, max_lines: int = PREVIEW_LINES) -> PreviewResult:
        """
        Peek at a trashed item by exact ID.

        Raises:
            RecordNotFoundError: No record with that ID
            PayloadMissingError: Record exists but its payload is gone
        """
        record = self.store.find(item_id)
        if record is None:
            raise RecordNotFoundError(item_id)
        location = self.repository.path_for(item_id)
        if not self.repository.exists(item_id):
            raise PayloadMissingError(item_id, location)

        if record.kind == ItemKind.DIRECTORY or location.is_dir():
            return PreviewResult(record=record, kind=PreviewKind.DIRECTORY, location=location)

        try:
            size = location.stat().st_size
            binary = is_binary(location)
            lines = [] if binary else _head(location, max_lines)
        except OSError as e:
            # e.g. a trashed symlink whose target is gone
            logger.debug(f"Cannot read payload {location}: {e}")
            raise PayloadMissingError(item_id, location) from e

        if binary:
            mime_type, _ = mimetypes.guess_type(record.original_name)
            return PreviewResult(
                record=record,
                kind=PreviewKind.BINARY,
                location=location,
                mime_type=mime_type or "application/octet-stream",
                size_bytes=size,
            )
        return PreviewResult(
            record=record,
            kind=PreviewKind.TEXT,
            location=location,
            lines=lines,
            size_bytes=size,
        )

    def check_consistency(self) -> ConsistencyReport:
        """Compare record IDs with repository entries."""
        records = self.store.read_all()
        payload_ids = set(self.repository.ids())
        counts = Counter(r.id for r in records)
        record_ids = set(counts)
        return ConsistencyReport(
            orphan_payloads=sorted(payload_ids - record_ids),
            ghost_records=[r for r in records if r.id not in payload_ids],
            duplicate_ids=sorted(i for i, n in counts.items() if n > 1),
            record_count=len(records),
            payload_count=len(payload_ids),
        )
