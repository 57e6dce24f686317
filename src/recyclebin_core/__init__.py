"""Recycle Bin Core - Transport-agnostic trash lifecycle library."""

from .__version__ import __version__, __version_info__

from .config import ConfigLoader, RecycleBinConfig, RecycleBinContext
from .models import (
    AuditAction,
    ConflictPolicy,
    ItemKind,
    PurgeScope,
    SortKey,
    TrashRecord,
)
from .ids import looks_like_id, new_id
from .metadata import MetadataStore, decode_record, encode_record
from .repository import ItemRepository
from .audit import AuditEntry, AuditLog
from .locking import StoreLock
from .errors import (
    AccessDeniedError,
    AmbiguousSelectorError,
    ConfigError,
    ConflictError,
    MetadataFormatError,
    MoveError,
    NotFoundError,
    PathNotFoundError,
    PayloadMissingError,
    ProtectedPathError,
    RecordNotFoundError,
    RecycleBinError,
    UserInputError,
    ValidationError,
    WriteError,
)

__all__ = [
    # Version
    "__version__",
    "__version_info__",
    # Config
    "ConfigLoader",
    "RecycleBinConfig",
    "RecycleBinContext",
    # Models
    "AuditAction",
    "ConflictPolicy",
    "ItemKind",
    "PurgeScope",
    "SortKey",
    "TrashRecord",
    # IDs
    "looks_like_id",
    "new_id",
    # Storage
    "MetadataStore",
    "decode_record",
    "encode_record",
    "ItemRepository",
    "StoreLock",
    # Audit
    "AuditEntry",
    "AuditLog",
    # Errors
    "AccessDeniedError",
    "AmbiguousSelectorError",
    "ConfigError",
    "ConflictError",
    "MetadataFormatError",
    "MoveError",
    "NotFoundError",
    "PathNotFoundError",
    "PayloadMissingError",
    "ProtectedPathError",
    "RecordNotFoundError",
    "RecycleBinError",
    "UserInputError",
    "ValidationError",
    "WriteError",
]
