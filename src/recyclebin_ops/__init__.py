"""
recyclebin_ops - Use-case layer for recycle bin operations.

The CLI (and any future facade) delegates to these engines; they take a
`RecycleBinContext` at construction and return plain dataclasses.

Modules:
    init: Storage root initialization
    lifecycle: Delete / Restore / Purge / Retention-Sweep
    query: List / Search / Statistics / Preview / consistency check
    sweeper: Background worker for post-delete sweeps
"""

from .init import InitRecycleBinResult, init_recycle_bin
from .lifecycle import (
    LifecycleEngine,
    DeleteResult,
    RestoreResult,
    PurgePlan,
    PurgeResult,
    SweepPlan,
    SweepResult,
    ItemFailure,
    timestamped_name,
)
from .query import (
    QueryEngine,
    ListResult,
    SearchOutcome,
    SearchResult,
    Statistics,
    PreviewKind,
    PreviewResult,
    ConsistencyReport,
    is_binary,
    normalize_date_bound,
)
from .sweeper import SweepWorker

__all__ = [
    # init
    "InitRecycleBinResult",
    "init_recycle_bin",
    # lifecycle
    "LifecycleEngine",
    "DeleteResult",
    "RestoreResult",
    "PurgePlan",
    "PurgeResult",
    "SweepPlan",
    "SweepResult",
    "ItemFailure",
    "timestamped_name",
    # query
    "QueryEngine",
    "ListResult",
    "SearchOutcome",
    "SearchResult",
    "Statistics",
    "PreviewKind",
    "PreviewResult",
    "ConsistencyReport",
    "is_binary",
    "normalize_date_bound",
    # background
    "SweepWorker",
]
