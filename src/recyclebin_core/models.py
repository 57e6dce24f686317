"""Pydantic models for recycle bin records."""

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DELIMITER = ","


class ItemKind(str, Enum):
    """Type of trashed payload."""

    FILE = "file"
    DIRECTORY = "directory"


class ConflictPolicy(str, Enum):
    """How Restore handles an occupied destination."""

    OVERWRITE = "overwrite"
    RENAME = "rename"      # <stem>_<timestamp><ext>
    CANCEL = "cancel"


class SortKey(str, Enum):
    """Ordering for List."""

    NONE = "none"
    NAME = "name"          # A-Z, case-insensitive
    DATE = "date"          # newest first
    SIZE = "size"          # largest first


class AuditAction(str, Enum):
    """Actions written to the audit log."""

    DELETE = "DELETE"
    RESTORE = "RESTORE"
    EMPTY = "EMPTY"
    AUTO_CLEAN = "AUTO_CLEAN"
    SEARCH = "SEARCH"


class TrashRecord(BaseModel):
    """One metadata row describing a single trashed item."""

    id: str = Field(..., description="Trash ID (<unix-seconds>_<random-alnum>)")
    original_name: str = Field(..., description="Basename at deletion time")
    original_dir: str = Field(..., description="Parent directory at deletion time")
    deleted_at: str = Field(..., description="YYYY-MM-DD HH:MM:SS")
    size_bytes: int = Field(..., ge=0)
    kind: ItemKind
    mode: int = Field(..., ge=0, description="Permission bits captured at deletion")
    owner: str = Field(..., description="user:group")

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    @property
    def destination(self) -> Path:
        return Path(self.original_dir) / self.original_name

    @property
    def mode_octal(self) -> str:
        """Permission bits as `stat -c %a` prints them."""
        return format(self.mode, "o")

    def field_values(self) -> List[str]:
        return [
            self.id,
            self.original_name,
            self.original_dir,
            self.deleted_at,
            str(self.size_bytes),
            self.kind.value,
            self.mode_octal,
            self.owner,
        ]

    def unsupported_fields(self) -> List[str]:
        """Names of fields holding the delimiter or a line break."""
        names = ["id", "original_name", "original_dir", "deleted_at", "size_bytes", "kind", "mode", "owner"]
        bad = []
        for name, value in zip(names, self.field_values()):
            if DELIMITER in value or "\n" in value or "\r" in value:
                bad.append(name)
        return bad

    def matches_text(self, needle: str) -> bool:
        """Case-insensitive substring match over every field."""
        lowered = needle.lower()
        return any(lowered in value.lower() for value in self.field_values())

    def name_contains(self, needle: str) -> bool:
        return needle.lower() in self.original_name.lower()


class PurgeScope(BaseModel):
    """Selection for Purge: everything, one exact ID, or a text pattern."""

    item_id: Optional[str] = None
    pattern: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_all(self) -> bool:
        return self.item_id is None and self.pattern is None

    def describe(self) -> str:
        if self.item_id is not None:
            return f"id={self.item_id}"
        if self.pattern is not None:
            return f"pattern={self.pattern}"
        return "all"
