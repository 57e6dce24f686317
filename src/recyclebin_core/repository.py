"""Item repository: flat directory of trashed payloads keyed by trash ID."""

import logging
import os
import shutil
from pathlib import Path
from typing import List

from .errors import MoveError

logger = logging.getLogger(__name__)


def remove_path(path: Path) -> None:
    """Remove a file, symlink or directory tree without following links."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


class ItemRepository:
    """Physical storage for trashed items. Entry names are exactly the record IDs."""

    def __init__(self, files_dir: Path):
        self.files_dir = files_dir

    def initialize(self) -> bool:
        if self.files_dir.is_dir():
            return False
        self.files_dir.mkdir(parents=True, exist_ok=True)
        return True

    def path_for(self, item_id: str) -> Path:
        return self.files_dir / item_id

    def exists(self, item_id: str) -> bool:
        return os.path.lexists(self.path_for(item_id))

    def ids(self) -> List[str]:
        if not self.files_dir.exists():
            return []
        return sorted(entry.name for entry in self.files_dir.iterdir())

    def admit(self, source: Path, item_id: str) -> Path:
        """Move `source` into the repository under `item_id`."""
        target = self.path_for(item_id)
        if os.path.lexists(target):
            raise MoveError(f"Repository entry already exists: {target}", target)
        self.files_dir.mkdir(parents=True, exist_ok=True)
        try:
            shutil.move(str(source), str(target))
        except (OSError, shutil.Error) as e:
            raise MoveError(f"Failed to move '{source}' into the recycle bin: {e}", source) from e
        return target

    def release(self, item_id: str, destination: Path) -> Path:
        """Move the payload for `item_id` out to `destination`."""
        source = self.path_for(item_id)
        try:
            shutil.move(str(source), str(destination))
        except (OSError, shutil.Error) as e:
            raise MoveError(f"Failed to move file to destination '{destination}': {e}", destination) from e
        return destination

    def discard(self, item_id: str) -> bool:
        """Permanently delete a payload. Returns False if it was already gone."""
        target = self.path_for(item_id)
        if not os.path.lexists(target):
            return False
        try:
            remove_path(target)
        except OSError as e:
            raise MoveError(f"Failed to delete stored item {target}: {e}", target) from e
        logger.debug(f"Discarded payload {item_id}")
        return True
