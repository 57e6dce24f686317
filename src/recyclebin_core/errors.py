"""Exception taxonomy for recyclebin-core."""

from pathlib import Path
from typing import List, Optional


class RecycleBinError(Exception):
    """Base exception for all recycle bin errors."""

    pass


# Input errors


class UserInputError(RecycleBinError):
    """Bad argument, flag or value supplied by the caller."""

    pass


class ConfigError(UserInputError):
    """Invalid configuration value or unreadable config file."""

    pass


class ProtectedPathError(UserInputError):
    """Path lies inside (or contains) the managed storage root."""

    def __init__(self, path: Path, root: Path) -> None:
        self.path = path
        self.root = root
        super().__init__(f"Cannot delete the recycle bin itself: {path}")


# Lookup errors


class NotFoundError(RecycleBinError):
    """Requested record or payload does not exist."""

    pass


class PathNotFoundError(NotFoundError):
    """Path to delete does not exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"'{path}' does not exist")


class RecordNotFoundError(NotFoundError):
    """No metadata record matched the requested ID or selector."""

    def __init__(self, selector: str) -> None:
        self.selector = selector
        super().__init__(f"No matching entry found for '{selector}'")


class PayloadMissingError(NotFoundError):
    """Record exists but its payload is gone from the repository."""

    def __init__(self, item_id: str, path: Path) -> None:
        self.item_id = item_id
        self.path = path
        super().__init__(f"Stored item missing: {path}")


class AmbiguousSelectorError(RecycleBinError):
    """Selector matched several records; caller must pick one."""

    def __init__(self, selector: str, candidates: list) -> None:
        self.selector = selector
        self.candidates = candidates
        ids = ", ".join(c.id for c in candidates)
        super().__init__(f"Ambiguous selector '{selector}' matches: {ids}")


# Filesystem errors


class AccessDeniedError(RecycleBinError):
    """Caller lacks read permission on the path or write permission on its parent."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"No permission to delete '{path}'")


class ConflictError(RecycleBinError):
    """Restore destination is already occupied."""

    def __init__(self, destination: Path, record=None) -> None:
        self.destination = destination
        self.record = record
        super().__init__(f"File already exists at destination: {destination}")


class MoveError(RecycleBinError):
    """Moving, copying or removing a payload failed."""

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        self.path = path
        super().__init__(message)


# Metadata errors


class MetadataFormatError(RecycleBinError):
    """Metadata row could not be decoded."""

    def __init__(self, line_no: int, details: str) -> None:
        self.line_no = line_no
        self.details = details
        super().__init__(f"Malformed metadata row {line_no}: {details}")


class ValidationError(UserInputError):
    """Record data failed validation."""

    def __init__(self, errors: List[str]) -> None:
        self.errors = errors
        error_list = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Validation failed:\n{error_list}")


class WriteError(RecycleBinError):
    """Failed to write the metadata store."""

    pass
