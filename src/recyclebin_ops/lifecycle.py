"""
lifecycle.py - Delete, Restore, Purge and Retention-Sweep transitions.

The engine is the only writer of the metadata store and the item repository.
Per item, a record exists iff its payload exists: payloads are moved before
records are written on Delete, and records are removed only after payloads
are gone on Restore/Purge.
"""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set, Union

from recyclebin_core.audit import AuditLog
from recyclebin_core.config import RecycleBinContext
from recyclebin_core.errors import (
    AccessDeniedError,
    AmbiguousSelectorError,
    ConflictError,
    MoveError,
    PathNotFoundError,
    PayloadMissingError,
    ProtectedPathError,
    RecordNotFoundError,
    RecycleBinError,
    UserInputError,
    WriteError,
)
from recyclebin_core.ids import looks_like_id, new_id
from recyclebin_core.metadata import MetadataStore
from recyclebin_core.models import (
    TIMESTAMP_FORMAT,
    AuditAction,
    ConflictPolicy,
    ItemKind,
    PurgeScope,
    TrashRecord,
)
from recyclebin_core.repository import ItemRepository, remove_path

try:
    import grp
    import pwd
except ImportError:  # non-POSIX platforms
    grp = None  # type: ignore
    pwd = None  # type: ignore

logger = logging.getLogger(__name__)

RENAME_STAMP_FORMAT = "%Y%m%d_%H%M%S"


@dataclass
class ItemFailure:
    """One skipped item in a multi-item operation."""
    target: str
    error: RecycleBinError

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass
class DeleteResult:
    """Result of deleting one or more paths."""
    deleted: List[TrashRecord] = field(default_factory=list)
    failures: List[ItemFailure] = field(default_factory=list)
    over_quota: bool = False
    sweep_scheduled: bool = False


@dataclass
class RestoreResult:
    """Result of restoring one record."""
    record: TrashRecord
    destination: Path
    status: str
    renamed: bool = False
    overwritten: bool = False
    created_dir: bool = False


@dataclass
class PurgePlan:
    """Candidates a purge would remove; nothing has happened yet."""
    scope: PurgeScope
    candidates: List[TrashRecord]

    @property
    def is_empty(self) -> bool:
        return not self.candidates

    @property
    def total_bytes(self) -> int:
        return sum(r.size_bytes for r in self.candidates)


@dataclass
class PurgeResult:
    """Result of permanently deleting records and payloads."""
    action: AuditAction
    removed: List[TrashRecord] = field(default_factory=list)
    failures: List[ItemFailure] = field(default_factory=list)
    missing_payloads: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.removed)

    @property
    def bytes_freed(self) -> int:
        return sum(r.size_bytes for r in self.removed)


@dataclass
class SweepPlan:
    """Records at or before the retention cutoff."""
    cutoff: str
    retention_days: int
    candidates: List[TrashRecord]


@dataclass
class SweepResult:
    """Result of a retention sweep (or its dry run)."""
    plan: SweepPlan
    dry_run: bool
    purge: Optional[PurgeResult] = None

    @property
    def count(self) -> int:
        if self.dry_run or self.purge is None:
            return len(self.plan.candidates)
        return self.purge.count

    @property
    def bytes_freed(self) -> int:
        if self.dry_run or self.purge is None:
            return sum(r.size_bytes for r in self.plan.candidates)
        return self.purge.bytes_freed


def _owner_of(st: os.stat_result) -> str:
    """user:group for a stat result; numeric IDs when names are unknown."""
    user = str(getattr(st, "st_uid", ""))
    group = str(getattr(st, "st_gid", ""))
    if pwd is not None:
        try:
            user = pwd.getpwuid(st.st_uid).pw_name
        except KeyError:
            pass
    if grp is not None:
        try:
            group = grp.getgrgid(st.st_gid).gr_name
        except KeyError:
            pass
    return f"{user}:{group}"


def timestamped_name(name: str, stamp: str, counter: int = 0) -> str:
    """``note.txt`` -> ``note_<stamp>.txt``; names without extension get ``name_<stamp>``."""
    tag = stamp if counter == 0 else f"{stamp}_{counter}"
    stem, dot, ext = name.rpartition(".")
    if stem and dot:
        return f"{stem}_{tag}.{ext}"
    return f"{name}_{tag}"


class LifecycleEngine:
    """Orchestrates Delete, Restore, Purge and Retention-Sweep."""

    def __init__(
        self,
        ctx: RecycleBinContext,
        *,
        store: Optional[MetadataStore] = None,
        repository: Optional[ItemRepository] = None,
        audit: Optional[AuditLog] = None,
        sweeper=None,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.ctx = ctx
        self.store = store or MetadataStore(ctx.metadata_file, ctx.lock_file)
        self.repository = repository or ItemRepository(ctx.files_dir)
        self.audit = audit or AuditLog(ctx.log_file, clock=clock)
        self.sweeper = sweeper
        self._clock = clock
        self._id_factory = id_factory or (lambda: new_id(now=lambda: self._clock().timestamp()))
        self._issued: Set[str] = set()

    def _now(self) -> str:
        return self._clock().strftime(TIMESTAMP_FORMAT)

    # -------- Delete --------

    def delete(self, paths: Iterable[Union[str, Path]]) -> DeleteResult:
        """
        Move each path into the repository and record it.

        Paths are processed independently: a failure is recorded in the
        result (and the audit log) and the remaining paths still run.
        Afterwards a retention sweep is handed to the sweeper, if any.

        Args:
            paths: Files or directories to delete

        Returns:
            DeleteResult with created records and per-path failures
        """
        result = DeleteResult()
        for raw in paths:
            try:
                record = self._delete_one(Path(raw))
            except RecycleBinError as e:
                logger.warning(f"Skipping '{raw}': {e}")
                self.audit.record(AuditAction.DELETE, f"Skipped '{raw}': {e}")
                result.failures.append(ItemFailure(target=str(raw), error=e))
                continue
            result.deleted.append(record)

        if result.deleted:
            total = sum(r.size_bytes for r in self.store.read_all())
            result.over_quota = total > self.ctx.config.quota_bytes
            if result.over_quota:
                logger.warning(
                    f"Recycle bin holds {total} bytes, above the advisory quota of {self.ctx.config.quota_mb}MB"
                )

        if self.sweeper is not None:
            try:
                self.sweeper.submit(self.sweep)
                result.sweep_scheduled = True
            except RuntimeError as e:
                logger.warning(f"Could not schedule background sweep: {e}")
        return result

    def _guard_protected(self, target: Path) -> None:
        root = Path(os.path.realpath(self.ctx.root))
        # resolve the parent only, so a symlink pointing into the bin can still be deleted
        real = Path(os.path.realpath(target.parent)) / target.name
        if real == root or root in real.parents or real in root.parents:
            raise ProtectedPathError(target, self.ctx.root)

    def _next_id(self) -> str:
        item_id = self._id_factory()
        while item_id in self._issued or self.repository.exists(item_id):
            item_id = self._id_factory()
        self._issued.add(item_id)
        return item_id

    def _delete_one(self, path: Path) -> TrashRecord:
        absolute = Path(os.path.abspath(os.fspath(path)))
        if not absolute.name:
            raise ProtectedPathError(absolute, self.ctx.root)
        self._guard_protected(absolute)

        if not os.path.lexists(absolute):
            raise PathNotFoundError(absolute)
        is_link = absolute.is_symlink()
        if (not is_link and not os.access(absolute, os.R_OK)) or not os.access(absolute.parent, os.W_OK):
            raise AccessDeniedError(absolute)

        st = os.lstat(absolute)
        record = TrashRecord(
            id=self._next_id(),
            original_name=absolute.name,
            original_dir=str(absolute.parent),
            deleted_at=self._now(),
            size_bytes=st.st_size,
            kind=ItemKind.DIRECTORY if stat.S_ISDIR(st.st_mode) else ItemKind.FILE,
            mode=stat.S_IMODE(st.st_mode),
            owner=_owner_of(st),
        )
        bad = record.unsupported_fields()
        if bad:
            raise UserInputError(
                f"Cannot delete '{absolute}': {', '.join(bad)} contains ',' or a line break (unsupported)"
            )

        self.repository.admit(absolute, record.id)
        try:
            self.store.append(record)
        except WriteError:
            # keep store and repository consistent: no record, no payload
            self.repository.release(record.id, absolute)
            raise

        self.audit.record(AuditAction.DELETE, f"Deleted '{absolute}' as ID '{record.id}'")
        logger.info(f"Deleted {absolute} as {record.id}")
        return record

    # -------- Restore --------

    def find_restore_candidates(self, selector: str, *, force_id: bool = False) -> List[TrashRecord]:
        """Exact-ID lookup for ID-shaped selectors (or `force_id`), else name substring."""
        selector = selector.strip()
        if not selector:
            raise UserInputError("No file ID or pattern specified")
        records = self.store.read_all()
        if force_id or looks_like_id(selector):
            logger.debug(f"Restore lookup by exact ID '{selector}'")
            return [r for r in records if r.id == selector]
        logger.debug(f"Restore lookup by name pattern '{selector}'")
        return [r for r in records if r.name_contains(selector)]

    def restore(
        self,
        selector: str,
        *,
        on_conflict: Optional[ConflictPolicy] = None,
        force_id: bool = False,
    ) -> RestoreResult:
        """
        Restore the single record matching `selector`.

        Raises:
            RecordNotFoundError: Nothing matched
            AmbiguousSelectorError: Several records matched (pattern mode)
            ConflictError: Destination occupied and no `on_conflict` given
            PayloadMissingError: Record has no payload
            MoveError: Destination could not be prepared or written
        """
        candidates = self.find_restore_candidates(selector, force_id=force_id)
        if not candidates:
            raise RecordNotFoundError(selector)
        if len(candidates) > 1:
            raise AmbiguousSelectorError(selector, candidates)
        return self.restore_record(candidates[0], on_conflict=on_conflict)

    def restore_record(
        self,
        record: TrashRecord,
        *,
        on_conflict: Optional[ConflictPolicy] = None,
    ) -> RestoreResult:
        if not self.repository.exists(record.id):
            raise PayloadMissingError(record.id, self.repository.path_for(record.id))

        destination = record.destination
        if os.path.lexists(destination) and on_conflict is None:
            raise ConflictError(destination, record)
        if os.path.lexists(destination) and on_conflict == ConflictPolicy.CANCEL:
            logger.info(f"Restore of {record.id} cancelled: {destination} exists")
            return RestoreResult(record=record, destination=destination, status="cancelled")

        created_dir = False
        if not destination.parent.is_dir():
            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise MoveError(f"Failed to create destination directory {destination.parent}: {e}", destination.parent) from e
            created_dir = True
            logger.info(f"Recreated missing directory {destination.parent}")

        renamed = overwritten = False
        if os.path.lexists(destination):
            if on_conflict == ConflictPolicy.RENAME:
                destination = self._renamed_destination(destination)
                renamed = True
            else:
                self._overwrite(record, destination)
                overwritten = True
        if not overwritten:
            self.repository.release(record.id, destination)

        if not destination.is_symlink():
            try:
                os.chmod(destination, record.mode)
            except OSError as e:
                logger.debug(f"Could not restore permissions {record.mode_octal} on {destination}: {e}")

        self.store.remove_ids([record.id])
        self.audit.record(AuditAction.RESTORE, f"Restored '{record.original_name}' to '{destination}'")
        logger.info(f"Restored {record.id} to {destination}")
        return RestoreResult(
            record=record,
            destination=destination,
            status="restored",
            renamed=renamed,
            overwritten=overwritten,
            created_dir=created_dir,
        )

    def _renamed_destination(self, destination: Path) -> Path:
        stamp = self._clock().strftime(RENAME_STAMP_FORMAT)
        counter = 0
        candidate = destination.with_name(timestamped_name(destination.name, stamp))
        while os.path.lexists(candidate):
            counter += 1
            candidate = destination.with_name(timestamped_name(destination.name, stamp, counter))
        return candidate

    def _overwrite(self, record: TrashRecord, destination: Path) -> None:
        """Stage the payload next to the destination, then swap it in."""
        staging = destination.with_name(f".{destination.name}.restore-{record.id}")
        self.repository.release(record.id, staging)
        try:
            remove_path(destination)
        except OSError as e:
            self.repository.admit(staging, record.id)
            raise MoveError(f"Failed to replace existing '{destination}': {e}", destination) from e
        try:
            os.replace(staging, destination)
        except OSError as e:
            self.repository.admit(staging, record.id)
            raise MoveError(f"Failed to move file to destination '{destination}': {e}", destination) from e

    # -------- Purge --------

    def plan_purge(self, scope: Optional[PurgeScope] = None) -> PurgePlan:
        """Resolve a purge scope to candidates without changing anything."""
        scope = scope or PurgeScope()
        records = self.store.read_all()
        if scope.item_id is not None:
            candidates = [r for r in records if r.id == scope.item_id]
        elif scope.pattern is not None:
            candidates = [r for r in records if r.matches_text(scope.pattern)]
        else:
            candidates = records
        return PurgePlan(scope=scope, candidates=candidates)

    def execute_purge(self, plan: PurgePlan) -> PurgeResult:
        """Permanently delete a confirmed plan."""
        return self._purge(plan.candidates, AuditAction.EMPTY)

    def _purge(self, candidates: List[TrashRecord], action: AuditAction) -> PurgeResult:
        result = PurgeResult(action=action)
        if not candidates:
            return result

        discarded: List[TrashRecord] = []
        for record in candidates:
            try:
                existed = self.repository.discard(record.id)
            except MoveError as e:
                self.audit.record(action, f"Failed to delete '{record.original_name}' (ID: {record.id}): {e}")
                result.failures.append(ItemFailure(target=record.id, error=e))
                continue
            if not existed:
                logger.info(f"Payload for {record.id} already missing; dropping record")
                result.missing_payloads.append(record.id)
            discarded.append(record)

        result.removed = self.store.remove_ids(r.id for r in discarded)
        for record in result.removed:
            if action == AuditAction.AUTO_CLEAN:
                message = (
                    f"Removed '{record.original_name}' (ID: {record.id}) - "
                    f"originally deleted at {record.deleted_at}"
                )
            else:
                message = f"Deleted '{record.original_name}' (ID: {record.id})"
            self.audit.record(action, message)
        self.audit.record(action, f"Summary: {result.count} items removed - {result.bytes_freed} bytes freed")
        return result

    # -------- Retention --------

    def retention_cutoff(self) -> str:
        cutoff = self._clock() - timedelta(days=self.ctx.config.retention_days)
        return cutoff.strftime(TIMESTAMP_FORMAT)

    def plan_sweep(self) -> SweepPlan:
        cutoff = self.retention_cutoff()
        candidates = [r for r in self.store.read_all() if r.deleted_at <= cutoff]
        return SweepPlan(
            cutoff=cutoff,
            retention_days=self.ctx.config.retention_days,
            candidates=candidates,
        )

    def sweep(self, dry_run: bool = False) -> SweepResult:
        """
        Purge records at or before the retention cutoff.

        Pre-authorized by configuration, so there is no confirmation step.

        Args:
            dry_run: Report candidates without changing anything

        Returns:
            SweepResult
        """
        plan = self.plan_sweep()
        if dry_run:
            return SweepResult(plan=plan, dry_run=True)
        purge = self._purge(plan.candidates, AuditAction.AUTO_CLEAN)
        if purge.count:
            logger.info(f"Retention sweep removed {purge.count} items older than {plan.cutoff}")
        return SweepResult(plan=plan, dry_run=False, purge=purge)
